"""In-process cache store for single-process deployments and tests.

Same contract as the Redis CacheService: values are JSON-encoded on write so
callers never share mutable state with the cache, and glob patterns use the
same semantics as Redis SCAN MATCH for the patterns this package builds.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """One stored value. Never partially updated; replaced or removed whole."""

    key: str
    value: str
    stored_at: float
    ttl: int | None

    def is_expired(self, now: float) -> bool:
        return self.ttl is not None and now - self.stored_at >= self.ttl


class MemoryCache:
    """Dict-backed cache with TTL expiry driven by a monotonic clock.

    Expired entries are evicted lazily on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def is_available(self) -> bool:
        return True

    def _live(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Any | None:
        entry = self._live(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(entry.value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        self._entries[key] = CacheEntry(key, json.dumps(value), self._clock(), ttl)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl if ttl is not None else "none")
        return True

    async def delete(self, key: str) -> bool:
        self._entries.pop(key, None)
        logger.debug("Cache DELETE: %s", key)
        return True

    async def delete_pattern(self, pattern: str) -> int:
        matched = [k for k in self._entries if fnmatchcase(k, pattern)]
        for key in matched:
            del self._entries[key]
        if matched:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, len(matched))
        return len(matched)

    def keys(self) -> list[str]:
        """Return live keys (expired entries are evicted first)."""
        return [k for k in list(self._entries) if self._live(k) is not None]

    def clear(self) -> None:
        self._entries.clear()
