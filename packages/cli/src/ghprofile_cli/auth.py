"""Where the GitHub token for a profiling run comes from."""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

# `gh auth token` answers from a local keyring; anything slower is stuck.
GH_CLI_TIMEOUT_SECONDS = 5


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=GH_CLI_TIMEOUT_SECONDS,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh CLI unavailable: %s", e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(configured: str | None = None) -> str | None:
    """Pick the token used for discovery and content reads.

    ``configured`` (``github_token`` in .ghprofile.yml) wins, then the
    GITHUB_TOKEN environment variable, then the session of a logged-in
    GitHub CLI. Discovery goes through GraphQL, which has no anonymous
    access, so None here is a setup error for the caller to report.
    """
    token = configured or os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    token = _gh_cli_token()
    if token:
        logger.debug("Using the GitHub CLI session token.")
    return token
