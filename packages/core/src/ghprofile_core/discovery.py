"""Repository discovery: which of a user's repositories get profiled.

Pinned repositories are what the user chose to feature, so they come first
in the order the user pinned them. The remaining slots go to the most-starred
non-pinned repositories.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from ghprofile_core.models import RepoTarget
from ghprofile_store.base import BaseCache
from ghprofile_store.noop import NoOpCache

logger = logging.getLogger(__name__)

# Repeated runs within an hour reuse the list; an hour of staleness is fine
# for an overview of someone's public work.
REPOS_CACHE_TTL = timedelta(hours=1)


class DiscoveryError(RuntimeError):
    """Discovery failed or found nothing; the run cannot produce a report."""


@dataclass
class DiscoverOptions:
    limit: int = 0  # <= 0 means no limit
    include_pinned: bool = True
    include_non_pinned: bool = True
    exclude_forks: bool = False
    exclude_repos: list[str] = field(default_factory=list)


def repos_cache_key(handle: str) -> str:
    return f"repos-{handle}.json"


def _node_to_target(node: dict, pinned: bool) -> RepoTarget:
    owner = (node.get("owner") or {}).get("login") or node["nameWithOwner"].split("/", 1)[0]
    name = node.get("name") or node["nameWithOwner"].split("/", 1)[-1]
    return RepoTarget(
        owner=owner,
        name=name,
        default_branch=(node.get("defaultBranchRef") or {}).get("name", ""),
        stars=node.get("stargazerCount") or 0,
        pinned=pinned,
        language=(node.get("primaryLanguage") or {}).get("name", ""),
    )


def _is_repo_excluded(node: dict, patterns: list[str]) -> bool:
    full_name = node["nameWithOwner"]
    short_name = full_name.split("/", 1)[-1]
    return any(fnmatch.fnmatch(full_name, p) or fnmatch.fnmatch(short_name, p) for p in patterns)


def merge_repositories(pinned: list[dict], recent: list[dict], options: DiscoverOptions) -> list[RepoTarget]:
    """Merge pinned and recently pushed repository nodes into an ordered target list.

    Pinned first in query order, then non-pinned by descending stars. The
    sort is stable, so repositories with equal stars keep the query order
    (most recently pushed first) and missing star counts sort last as 0.
    """
    seen: set[str] = set()

    def _accept(node: dict) -> bool:
        full_name = node.get("nameWithOwner")
        if not full_name or full_name in seen:
            return False
        if options.exclude_forks and node.get("isFork"):
            return False
        if _is_repo_excluded(node, options.exclude_repos):
            return False
        seen.add(full_name)
        return True

    targets: list[RepoTarget] = []
    if options.include_pinned:
        # Pinned items that are not repositories (gists) come back as empty nodes.
        targets.extend(_node_to_target(n, pinned=True) for n in pinned if n and _accept(n))

    if options.include_non_pinned:
        remaining = [_node_to_target(n, pinned=False) for n in recent if n and _accept(n)]
        remaining.sort(key=lambda t: t.stars, reverse=True)
        targets.extend(remaining)

    if options.limit > 0:
        targets = targets[: options.limit]
    return targets


def discover_user_repos(
    client,
    handle: str,
    options: DiscoverOptions,
    cache: BaseCache | None = None,
) -> list[RepoTarget]:
    """Return the ordered repository targets for ``handle``.

    Raises DiscoveryError when the GitHub query fails; this aborts the run
    because there is nothing to report on.
    """
    cache = cache if cache is not None else NoOpCache()

    def _load() -> list[RepoTarget]:
        try:
            pinned, recent = client.query_user_repositories(handle)
        except Exception as e:
            raise DiscoveryError(f"Could not query repositories for @{handle}: {e}") from e
        return merge_repositories(pinned, recent, options)

    return cache.fetch(
        repos_cache_key(handle),
        REPOS_CACHE_TTL,
        _load,
        dump=lambda targets: [t.to_dict() for t in targets],
        load=lambda rows: [RepoTarget.from_dict(r) for r in rows],
    )
