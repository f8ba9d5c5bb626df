"""Abstract cache interface.

The GitHub layer depends on BaseCache, not on a concrete backend, so the
on-disk cache can be swapped for NoOpCache (``--no-cache``) or a fake in tests
without touching the fetch code.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Callable

logger = logging.getLogger(__name__)


class BaseCache(ABC):
    """Key/value cache with staleness checked at read time.

    Keys are relative POSIX paths (``octocat/hello/<sha>-tree.json``). Values
    must be JSON-serialisable. There is no invalidation API: entries are
    overwritten on every successful live fetch.
    """

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``, replacing any previous entry."""

    @abstractmethod
    def read(self, key: str, ttl: timedelta) -> tuple[bool, Any]:
        """Return ``(True, value)`` on a fresh hit, ``(False, None)`` otherwise.

        An absent or expired entry is a miss, not an error. Any other failure
        (permissions, corrupt JSON) is raised to the caller.
        """

    def fetch(
        self,
        key: str,
        ttl: timedelta,
        loader: Callable[[], Any],
        dump: Callable[[Any], Any] | None = None,
        load: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Return the cached value for ``key`` or call ``loader`` and cache its result.

        Cache failures are never fatal: a read error, or a cached value that
        ``load`` cannot convert, is logged and treated as a miss; a write error is logged and the live value is still returned.
        Errors raised by ``loader`` itself propagate unchanged.

        ``dump``/``load`` convert between the live value and its JSON form,
        e.g. a list of dataclasses and a list of dicts.
        """
        try:
            hit, cached = self.read(key, ttl)
            if hit:
                # A well-formed entry of the wrong shape is a miss too.
                value = load(cached) if load else cached
                logger.debug("Cache hit: %s", key)
                return value
        except Exception as e:
            logger.warning("Cache read failed for %s (%s): %s", key, type(e).__name__, e)

        value = loader()
        try:
            self.write(key, dump(value) if dump else value)
        except Exception as e:
            logger.warning("Cache write failed for %s (%s): %s", key, type(e).__name__, e)
        return value
