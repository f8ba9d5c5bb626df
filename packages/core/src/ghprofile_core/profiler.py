"""Core profiling orchestration.

Discovery → per repository (bounded by ``parallel_requests``): commit SHA,
tree, architecture review, file selection, chunk sampling, chunk scoring,
aggregation → ranking → headline and summary → HTML.

Only discovery can abort a run. Every later failure degrades the affected
repository or text block and is logged.
"""

from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from rich.console import Console

from ghprofile_core.aggregation import build_repo_result
from ghprofile_core.config import (
    PROMPT_ARCH_MONOREPO,
    PROMPT_ARCH_STANDARD,
    PROMPT_CODE_REVIEW,
    PROMPT_HEADLINE,
    PROMPT_SUMMARY,
    PROVIDER_KEY_ENV,
    SUPPORTED_PROVIDERS,
    load_prompt,
    resolve_api_key,
)
from ghprofile_core.discovery import DiscoverOptions, DiscoveryError, discover_user_repos
from ghprofile_core.evaluation import evaluate_all
from ghprofile_core.gh.client import GitHubClient
from ghprofile_core.models import ArchReview, FileChunk, RepoResult, RepoTarget
from ghprofile_core.providers.base import BaseProvider, Expect
from ghprofile_core.report import render_html
from ghprofile_core.utils.code import guess_language, select_paths
from ghprofile_core.utils.fanout import fan_out
from ghprofile_core.utils.layout import REPO_TYPE_MONOREPO, detect_repo_type
from ghprofile_store.base import BaseCache
from ghprofile_store.disk import DiskCache, default_cache_dir

console = Console()
logger = logging.getLogger(__name__)

MAX_TREE_LINES = 300
SUMMARY_UNAVAILABLE = "Summary unavailable."
NO_REPOSITORIES_SUMMARY = "No repositories were analyzed."


@dataclass
class Prompts:
    code_review: str
    arch_standard: str
    arch_monorepo: str
    headline: str
    summary: str

    @classmethod
    def load(cls, config: dict) -> Prompts:
        return cls(
            code_review=load_prompt(config, PROMPT_CODE_REVIEW),
            arch_standard=load_prompt(config, PROMPT_ARCH_STANDARD),
            arch_monorepo=load_prompt(config, PROMPT_ARCH_MONOREPO),
            headline=load_prompt(config, PROMPT_HEADLINE),
            summary=load_prompt(config, PROMPT_SUMMARY),
        )


@dataclass
class ProfileReport:
    """Everything a run produced; the CLI decides where the HTML goes."""

    user: str
    results: list[RepoResult] = field(default_factory=list)
    headline: str = ""
    summary: str = ""
    html: str = ""


def get_provider(config: dict) -> BaseProvider:
    """Build the provider named by ``config["provider"]``.

    Raises ValueError for an unknown provider or a missing API key.
    """
    name = config.get("provider")
    if name not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unknown LLM provider: {name!r}. Choose one of: {', '.join(SUPPORTED_PROVIDERS)}.")

    api_key = resolve_api_key(config)
    if not api_key:
        raise ValueError(f"No API key for provider {name!r}. Set api_key in the config or {PROVIDER_KEY_ENV[name]}.")

    options = dict(
        model=config.get("model"),
        endpoint=config.get("endpoint"),
        max_tokens=config.get("max_tokens"),
        temperature=config.get("temperature"),
    )
    if name == "anthropic":
        from ghprofile_core.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key, **options)
    if name == "gemini":
        from ghprofile_core.providers.gemini import GeminiProvider

        return GeminiProvider(api_key, **options)

    from ghprofile_core.providers.openai import OpenAIProvider

    return OpenAIProvider(api_key, **options)


def _fill(template: str, **values: str) -> str:
    # str.format would trip over the JSON braces in the prompts.
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


def _limited(limiter: Optional[threading.Semaphore]):
    return limiter if limiter is not None else nullcontext()


def sample_chunks(
    client: GitHubClient,
    repo: RepoTarget,
    paths: list[str],
    sha: str,
    max_chunks: int,
    max_chunk_bytes: int,
) -> list[FileChunk]:
    """Download the selected files as whole-file chunks, truncated to ``max_chunk_bytes``.

    Unreadable and empty files are skipped.
    """
    chunks: list[FileChunk] = []
    for path in paths:
        if len(chunks) >= max_chunks:
            break
        try:
            content = client.read_file(repo.owner, repo.name, path, sha)
        except Exception as e:
            logger.warning("Could not read %s in %s: %s", path, repo.full_name, e)
            continue
        if not content:
            continue
        if max_chunk_bytes > 0:
            encoded = content.encode("utf-8")
            if len(encoded) > max_chunk_bytes:
                content = encoded[:max_chunk_bytes].decode("utf-8", errors="ignore")
        chunks.append(
            FileChunk(
                path=path,
                start_line=1,
                end_line=1 + content.count("\n"),
                content=content,
                language=guess_language(path),
            )
        )
    return chunks


def evaluate_architecture(
    provider: BaseProvider,
    prompts: Prompts,
    repo: RepoTarget,
    tree: list[str],
    limiter: Optional[threading.Semaphore] = None,
) -> ArchReview:
    """Ask the model to judge the repository layout from its file tree.

    Returns an empty ArchReview when the call fails.
    """
    template = prompts.arch_monorepo if detect_repo_type(tree) == REPO_TYPE_MONOREPO else prompts.arch_standard
    prompt = _fill(template, language=repo.language or "unknown", tree="\n".join(tree[:MAX_TREE_LINES]))
    try:
        with _limited(limiter):
            return provider.evaluate(
                prompt, f"Review the architecture of {repo.full_name}.", Expect.one(ArchReview.from_json)
            )
    except Exception as e:
        logger.warning("Architecture evaluation failed for %s: %s", repo.full_name, e)
        return ArchReview()


def evaluate_repo(
    repo: RepoTarget,
    config: dict,
    client: GitHubClient,
    provider: BaseProvider,
    prompts: Prompts,
    limiter: Optional[threading.Semaphore] = None,
) -> RepoResult:
    """Evaluate one repository. Never raises; failures degrade the result."""
    try:
        sha = client.get_latest_commit_sha(repo.owner, repo.name, repo.default_branch)
    except Exception as e:
        logger.warning("Could not resolve %s@%s: %s", repo.full_name, repo.default_branch, e)
        return RepoResult(repo=repo, error=f"commit lookup failed: {e}")

    console.print(f"[dim]Fetching file tree for {repo.full_name} ({sha[:7]})...[/dim]")
    try:
        tree = client.list_tree(repo.owner, repo.name, sha)
    except Exception as e:
        logger.warning("Could not list the tree of %s: %s", repo.full_name, e)
        return RepoResult(repo=repo, error=f"tree listing failed: {e}")

    arch = evaluate_architecture(provider, prompts, repo, tree, limiter)

    chunks_per_repo = config["chunks_per_repo"]
    paths = select_paths(tree, chunks_per_repo, config.get("exclude") or [])
    console.print(f"[dim]{len(paths)} file(s) selected for {repo.full_name}[/dim]")

    chunks = sample_chunks(client, repo, paths, sha, chunks_per_repo, config["max_chunk_bytes"])
    if not chunks:
        console.print(f"[yellow]No readable files in {repo.full_name}[/yellow]")
        return replace(build_repo_result(repo, paths, [], [], arch), error="no readable files")

    batch = evaluate_all(
        provider,
        prompts.code_review,
        chunks,
        repo.owner,
        repo.name,
        repo.default_branch,
        parallelism=config["parallel_requests"],
        requests_per_minute=config["requests_per_minute"],
        limiter=limiter,
    )
    result = build_repo_result(repo, paths, chunks, batch.results, arch)
    if batch.succeeded == 0 and batch.first_error is not None:
        # Keep the zeroed result but say why.
        result = replace(result, error=f"scoring failed: {batch.first_error}")
    return result


def summary_table(results: list[RepoResult], arch: bool = False) -> str:
    """Tab-separated overview of the results fed to the headline and summary prompts."""
    lines = ["Repository Analysis Table:", "Repo\tScore\tStrengths\tRisks"]
    for r in results:
        if arch:
            strengths = [s.point for s in r.arch_strengths]
            risks = [c.point for c in r.arch_considerations]
        else:
            strengths, risks = r.strengths, r.risks
        lines.append(f"{r.repo.full_name}\t{r.score}\t{', '.join(strengths)}\t{', '.join(risks)}")
    return "\n".join(lines) + "\n"


def _text_field(key: str):
    def _decode(data: Any) -> str:
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object with {key!r}")
        return str(data.get(key) or "")

    return _decode


def generate_headline(
    provider: BaseProvider,
    prompts: Prompts,
    user: str,
    results: list[RepoResult],
    limiter: Optional[threading.Semaphore] = None,
) -> str:
    """One-sentence profile headline, or "" when unavailable."""
    if not results:
        return ""
    data = summary_table(results, arch=True)
    try:
        with _limited(limiter):
            return provider.evaluate(
                _fill(prompts.headline, summary_data=data), f"Profile of @{user}", Expect.one(_text_field("headline"))
            )
    except Exception as e:
        logger.warning("Headline generation failed for @%s: %s", user, e)
        return ""


def generate_summary(
    provider: BaseProvider,
    prompts: Prompts,
    user: str,
    results: list[RepoResult],
    limiter: Optional[threading.Semaphore] = None,
) -> str:
    if not results:
        return NO_REPOSITORIES_SUMMARY
    data = summary_table(results)
    try:
        with _limited(limiter):
            summary = provider.evaluate(
                _fill(prompts.summary, summary_data=data), f"Profile of @{user}", Expect.one(_text_field("summary"))
            )
    except Exception as e:
        logger.warning("Summary generation failed for @%s: %s", user, e)
        return SUMMARY_UNAVAILABLE
    return summary or SUMMARY_UNAVAILABLE


def run_profile(
    user: str,
    config: dict,
    client: GitHubClient | None = None,
    provider: BaseProvider | None = None,
    cache: BaseCache | None = None,
    prompts: Prompts | None = None,
) -> ProfileReport:
    """Run the full profiling pipeline for ``user``.

    Raises DiscoveryError when discovery fails or finds no repositories, and
    FileNotFoundError when ``prompts`` is not given and ``prompt_path`` is
    missing. Every other failure is absorbed into the report.
    """
    if cache is None:
        cache = DiskCache(config.get("cache_dir") or default_cache_dir())
    if client is None:
        client = GitHubClient(config.get("github_token"), cache=cache)
    if provider is None:
        provider = get_provider(config)
    if prompts is None:
        prompts = Prompts.load(config)

    parallel = config["parallel_requests"]
    # Shared by every LLM call of the run, so in-flight calls never exceed
    # parallel_requests even though repositories are evaluated concurrently.
    limiter = threading.BoundedSemaphore(parallel)

    console.print(f"[bold]Discovering repositories for @{user}...[/bold]")
    options = DiscoverOptions(
        limit=config.get("repos_limit") or 0,
        include_pinned=config.get("include_pinned", True),
        include_non_pinned=config.get("include_non_pinned", True),
        exclude_forks=config.get("exclude_forks", False),
        exclude_repos=list(config.get("exclude_repos") or []),
    )
    repos = discover_user_repos(client, user, options, cache=cache)
    if not repos:
        raise DiscoveryError(f"No repositories for @{user}")
    console.print(f"{len(repos)} repositories found. Analyzing...")

    def _evaluate(repo: RepoTarget) -> RepoResult:
        console.print(f"Analyzing {repo.full_name}...")
        result = evaluate_repo(repo, config, client, provider, prompts, limiter)
        console.print(f"[green]{repo.full_name} analyzed (score {result.score}).[/green]")
        return result

    outcome = fan_out(_evaluate, repos, limit=parallel)
    results = [
        r if r is not None else RepoResult(repo=repo, error=str(outcome.errors[i]))
        for i, (repo, r) in enumerate(zip(repos, outcome.results))
    ]
    # Stable: equal scores keep discovery order.
    results.sort(key=lambda r: r.score, reverse=True)

    console.print("All repositories analyzed. Generating report...")
    headline = generate_headline(provider, prompts, user, results, limiter)
    summary = generate_summary(provider, prompts, user, results, limiter)
    html = render_html(user, results, headline, summary)
    return ProfileReport(user=user, results=results, headline=headline, summary=summary, html=html)
