"""Invalidation targets and the per-operation pending set.

A target is either an exact key or a glob pattern. Targets are queued while
a transaction is open and applied only after commit; applying one is
idempotent, so order among targets never changes the final cache state.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from catalog.infrastructure.cache.cache_protocol import CacheProtocol
from catalog.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True)
class InvalidationTarget:
    """Exact cache key or glob pattern to remove."""

    value: str
    is_pattern: bool = False

    @classmethod
    def key(cls, key: str) -> InvalidationTarget:
        return cls(key, False)

    @classmethod
    def pattern(cls, pattern: str) -> InvalidationTarget:
        return cls(pattern, True)

    @classmethod
    def parse(cls, value: str | InvalidationTarget) -> InvalidationTarget:
        """Accept a target or a string; strings with glob characters become patterns."""
        if isinstance(value, InvalidationTarget):
            return value
        return cls(value, any(c in _GLOB_CHARS for c in value))

    async def apply(self, cache: CacheProtocol) -> None:
        if self.is_pattern:
            await cache.delete_pattern(self.value)
        else:
            await cache.delete(self.value)


class PendingInvalidationSet:
    """Ordered, de-duplicated targets owned by one in-flight operation."""

    def __init__(self) -> None:
        self._targets: dict[InvalidationTarget, None] = {}

    def add(self, target: str | InvalidationTarget) -> None:
        self._targets.setdefault(InvalidationTarget.parse(target), None)

    def extend(self, targets: Iterable[str | InvalidationTarget]) -> None:
        for target in targets:
            self.add(target)

    def clear(self) -> None:
        self._targets.clear()

    def __iter__(self) -> Iterator[InvalidationTarget]:
        return iter(list(self._targets))

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, target: object) -> bool:
        if isinstance(target, str | InvalidationTarget):
            return InvalidationTarget.parse(target) in self._targets
        return False


async def apply_targets(cache: CacheProtocol, targets: Iterable[InvalidationTarget]) -> int:
    """Apply targets in order; a failing target is logged and skipped.

    Returns:
        Number of targets applied without error.
    """
    applied = 0
    for target in targets:
        try:
            await target.apply(cache)
            applied += 1
        except Exception:
            # Stale entry remains until its TTL expires; the committed write stands.
            logger.warning(
                "Cache invalidation failed for %s %s",
                "pattern" if target.is_pattern else "key",
                target.value,
                exc_info=True,
            )
    return applied
