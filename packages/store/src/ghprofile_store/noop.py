"""No-op cache: used when caching is disabled with ``--no-cache``.

Using a NoOpCache rather than None lets the GitHub layer always go through
``cache.fetch()`` without conditional checks.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from ghprofile_store.base import BaseCache


class NoOpCache(BaseCache):
    """Every read misses and every write is discarded."""

    def write(self, key: str, value: Any) -> None:
        pass  # intentional no-op

    def read(self, key: str, ttl: timedelta) -> tuple[bool, Any]:
        return False, None
