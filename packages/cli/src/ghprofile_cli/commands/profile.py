"""profile command: analyze a user's repositories and write the HTML report."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from ghprofile_core.models import RepoResult
from ghprofile_core.config import SUPPORTED_PROVIDERS

console = Console()


def _print_results(results: list[RepoResult]) -> None:
    table = Table(title="Repository scores", show_header=True, header_style="bold cyan")
    table.add_column("Repo", style="bold")
    table.add_column("Score", justify="right", width=6)
    table.add_column("Files", justify="right", width=6)
    table.add_column("Chunks", justify="right", width=7)
    table.add_column("Notes", max_width=50)

    for r in results:
        style = "green" if r.score >= 70 else "yellow" if r.score >= 40 else "red"
        note = f"[red]{r.error}[/red]" if r.error else "; ".join(r.strengths[:1] + r.risks[:1])
        table.add_row(r.repo.full_name, f"[{style}]{r.score}[/{style}]", str(r.files), str(r.chunks), note)

    console.print(table)


def _build_cache(config: dict, no_cache: bool):
    from ghprofile_store.disk import DiskCache, default_cache_dir
    from ghprofile_store.noop import NoOpCache

    if no_cache:
        return NoOpCache()
    return DiskCache(config.get("cache_dir") or default_cache_dir())


@click.command("profile")
@click.option("--user", "-u", required=True, help="GitHub handle to profile.")
@click.option(
    "--provider",
    type=click.Choice(SUPPORTED_PROVIDERS),
    default=None,
    help="LLM provider. Overrides config file.",
)
@click.option("--model", default=None, help="Model name. Overrides the provider default.")
@click.option("--out-dir", default=None, help="Directory for the HTML report. Overrides config file.")
@click.option("--limit", type=int, default=None, help="Maximum number of repositories to analyze.")
@click.option("--chunks", type=int, default=None, help="Files sampled per repository.")
@click.option("--no-cache", is_flag=True, help="Bypass the on-disk GitHub cache.")
@click.pass_context
def profile_cmd(
    ctx,
    user: str,
    provider: str | None,
    model: str | None,
    out_dir: str | None,
    limit: int | None,
    chunks: int | None,
    no_cache: bool,
):
    """Score a user's repositories with an LLM and render an HTML report.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      OPENAI_API_KEY       Required when using --provider openai
      ANTHROPIC_API_KEY    Required when using --provider anthropic
      GEMINI_API_KEY       Required when using --provider gemini
    """
    from ghprofile_cli.auth import resolve_github_token
    from ghprofile_core.config import PROVIDER_KEY_ENV, load_config, resolve_api_key
    from ghprofile_core.discovery import DiscoveryError
    from ghprofile_core.profiler import Prompts, get_provider, run_profile
    from ghprofile_core.report import write_report

    config_path = (ctx.obj or {}).get("config_path", ".ghprofile.yml")
    config = load_config(
        config_path,
        cli_overrides={
            "provider": provider,
            "model": model,
            "out_dir": out_dir,
            "repos_limit": limit,
            "chunks_per_repo": chunks,
        },
    )

    token = resolve_github_token(config.get("github_token"))
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token

    name = config.get("provider")
    if name not in SUPPORTED_PROVIDERS:
        raise click.UsageError(f"Unsupported provider {name!r}. Choose one of: {', '.join(SUPPORTED_PROVIDERS)}.")
    if not resolve_api_key(config):
        raise click.UsageError(f"{PROVIDER_KEY_ENV[name]} environment variable is not set.")

    try:
        llm = get_provider(config)
    except (ValueError, ImportError) as e:
        raise click.UsageError(str(e))

    try:
        prompts = Prompts.load(config)
    except FileNotFoundError as e:
        raise click.UsageError(str(e))

    try:
        report = run_profile(user, config, provider=llm, prompts=prompts, cache=_build_cache(config, no_cache))
    except DiscoveryError as e:
        raise click.ClickException(str(e))

    path = write_report(config["out_dir"], user, report.html)
    _print_results(report.results)
    if report.headline:
        console.print(f"\n[italic]{report.headline}[/italic]")
    console.print(f"\n[bold green]Report:[/bold green] {path}")
