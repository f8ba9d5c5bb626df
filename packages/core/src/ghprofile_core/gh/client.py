"""GitHub access for profiling: one GraphQL discovery query plus REST reads.

Tree listings and file contents are pinned to a commit SHA. A SHA is an
immutable pointer, so both are cached for 30 days: re-running a profile
within that window costs one ref lookup per repository instead of one call
per sampled file.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from github import Auth, Github, GithubException

from ghprofile_store.base import BaseCache
from ghprofile_store.noop import NoOpCache

logger = logging.getLogger(__name__)

COMMIT_CACHE_TTL = timedelta(days=30)

# Six is GitHub's own cap on pinned items; 100 is the page size limit.
_USER_REPOSITORIES_QUERY = """
query($login: String!) {
  user(login: $login) {
    pinnedItems(first: 6, types: REPOSITORY) {
      nodes {
        ... on Repository { ...repoFields }
      }
    }
    repositories(first: 100, ownerAffiliations: OWNER, orderBy: {field: PUSHED_AT, direction: DESC}) {
      nodes { ...repoFields }
    }
  }
}

fragment repoFields on Repository {
  nameWithOwner
  name
  owner { login }
  defaultBranchRef { name }
  stargazerCount
  isFork
  primaryLanguage { name }
}
"""


def tree_cache_key(owner: str, name: str, sha: str) -> str:
    return f"{owner}/{name}/{sha}-tree.json"


def blob_cache_key(owner: str, name: str, sha: str, path: str) -> str:
    # Flatten the file path so every blob of a commit lives in one directory.
    return f"{owner}/{name}/{sha}/{path.replace('/', '_')}.cache"


class GitHubClient:
    """The four GitHub operations the profiler needs, cache-aware where safe."""

    def __init__(self, token: str | None, cache: BaseCache | None = None, gh: Github | None = None):
        self._gh = gh if gh is not None else Github(auth=Auth.Token(token) if token else None)
        self._cache = cache if cache is not None else NoOpCache()

    def _repo(self, owner: str, name: str):
        # lazy=True skips the metadata request; only the sub-resources are fetched.
        return self._gh.get_repo(f"{owner}/{name}", lazy=True)

    def query_user_repositories(self, handle: str) -> tuple[list[dict], list[dict]]:
        """Return the raw ``(pinned, recently pushed)`` repository nodes of a user."""
        _, data = self._gh.requester.graphql_query(_USER_REPOSITORIES_QUERY, {"login": handle})
        user = (data.get("data") or {}).get("user")
        if user is None:
            raise GithubException(404, {"message": f"User {handle!r} not found"}, None)
        pinned = (user.get("pinnedItems") or {}).get("nodes") or []
        recent = (user.get("repositories") or {}).get("nodes") or []
        return pinned, recent

    def get_latest_commit_sha(self, owner: str, name: str, ref: str) -> str:
        return self._repo(owner, name).get_git_ref(f"heads/{ref}").object.sha

    def list_tree(self, owner: str, name: str, sha: str) -> list[str]:
        """Return every blob path of the recursive tree at ``sha``."""

        def _load() -> list[str]:
            tree = self._repo(owner, name).get_git_tree(sha, recursive=True)
            return [entry.path for entry in tree.tree if entry.type == "blob"]

        return self._cache.fetch(tree_cache_key(owner, name, sha), COMMIT_CACHE_TTL, _load)

    def read_file(self, owner: str, name: str, path: str, sha: str) -> str:
        """Return the decoded text of ``path`` at ``sha``."""

        def _load() -> str:
            contents = self._repo(owner, name).get_contents(path, ref=sha)
            if isinstance(contents, list):
                raise GithubException(422, {"message": f"{path} is a directory"}, None)
            return contents.decoded_content.decode("utf-8", errors="replace")

        return self._cache.fetch(blob_cache_key(owner, name, sha, path), COMMIT_CACHE_TTL, _load)
