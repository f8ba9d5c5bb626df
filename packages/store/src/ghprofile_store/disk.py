"""DiskCache: JSON files under a per-user cache directory.

Staleness is derived from the file's modification time rather than a stored
expiry field, so a TTL can be chosen per call: the repository list of a user
goes stale after an hour while a tree listing keyed by commit SHA is
effectively permanent.

Layout under the cache root:
  repos-<handle>.json                     discovered repositories (1 hour)
  <owner>/<repo>/<sha>-tree.json          blob paths of a commit (30 days)
  <owner>/<repo>/<sha>/<escaped path>.cache file contents (30 days)

There is no locking. Concurrent writers of the same key race harmlessly
because every writer derives the value from the same remote state.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import timedelta
from pathlib import Path, PurePosixPath
from typing import Any

from ghprofile_store.base import BaseCache

logger = logging.getLogger(__name__)

_APP_DIR_NAME = "ghprofile"


def default_cache_dir() -> Path:
    """Return the platform per-user cache directory for ghprofile."""
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / _APP_DIR_NAME / "Cache"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / _APP_DIR_NAME
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / _APP_DIR_NAME


class DiskCache(BaseCache):
    """Stores each entry as a JSON file at ``root / key``."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """Map a cache key to its file, refusing keys that escape the root."""
        rel = PurePosixPath(key)
        if not key or rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Invalid cache key: {key!r}")
        return self._root.joinpath(*rel.parts)

    def write(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(value), encoding="utf-8")

    def read(self, key: str, ttl: timedelta) -> tuple[bool, Any]:
        path = self.path_for(key)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return False, None

        if time.time() - mtime > ttl.total_seconds():
            logger.debug("Cache entry expired: %s", key)
            return False, None

        return True, json.loads(path.read_text(encoding="utf-8"))
