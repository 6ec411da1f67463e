"""Read-through cache ("remember") over a CacheProtocol store.

Results are typed read-models (frozen dataclasses, lists of them, scalars).
They are encoded to JSON-compatible data with a pydantic TypeAdapter and
wrapped in an envelope, so None, 0, False and empty lists are cacheable and
distinguishable from a miss.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from catalog.infrastructure.cache.cache_protocol import CacheProtocol
from catalog.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from catalog.core.config import Settings

logger = get_logger(__name__)

T = TypeVar("T")

_ENVELOPE_FIELD = "v"


@lru_cache(maxsize=256)
def _adapter(result_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(result_type)


def encode_value(value: Any, result_type: Any) -> Any:
    """Return JSON-compatible data for value."""
    return _adapter(result_type).dump_python(value, mode="json")


def decode_value(data: Any, result_type: Any) -> Any:
    """Rebuild a typed value from JSON-compatible data."""
    return _adapter(result_type).validate_python(data)


class ReadThroughCache:
    """Cache-aside reads with TTL policy and transaction-aware bypass.

    Args:
        store: Cache backend.
        default_ttl: TTL used when remember() is called with ttl=None.
        bypass: Callable returning True while reads must skip the cache
            (an open transaction may read its own uncommitted writes, which
            must never be stored).
    """

    def __init__(
        self,
        store: CacheProtocol,
        default_ttl: int = 3600,
        bypass: Callable[[], bool] | None = None,
    ) -> None:
        self.store = store
        self.default_ttl = default_ttl
        self._bypass = bypass or (lambda: False)

    async def remember(
        self,
        key: str,
        ttl: int | None,
        loader: Callable[[], Awaitable[T]],
        result_type: Any,
    ) -> T:
        """Return the cached value for key, or load, store with ttl and return it.

        Loader errors propagate and nothing is stored.
        """
        return await self._remember(
            key, self.default_ttl if ttl is None else ttl, loader, result_type
        )

    async def remember_forever(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        result_type: Any,
    ) -> T:
        """Like remember() but stored without expiry; removed only by invalidation."""
        return await self._remember(key, None, loader, result_type)

    async def _remember(
        self,
        key: str,
        ttl: int | None,
        loader: Callable[[], Awaitable[T]],
        result_type: Any,
    ) -> T:
        if self._bypass():
            return await loader()
        found, value = await self._lookup(key, result_type)
        if found:
            return value
        value = await loader()
        await self._store(key, value, ttl, result_type)
        return value

    async def _lookup(self, key: str, result_type: Any) -> tuple[bool, Any]:
        if not self.store.is_available():
            return False, None
        try:
            cached = await self.store.get(key)
        except Exception:
            logger.warning("Cache read failed for %s; loading from store", key, exc_info=True)
            return False, None
        if not isinstance(cached, dict) or _ENVELOPE_FIELD not in cached:
            return False, None
        try:
            return True, decode_value(cached[_ENVELOPE_FIELD], result_type)
        except ValidationError:
            logger.warning("Discarding undecodable cache entry %s", key, exc_info=True)
            return False, None

    async def _store(self, key: str, value: Any, ttl: int | None, result_type: Any) -> None:
        if not self.store.is_available():
            return
        try:
            await self.store.set(key, {_ENVELOPE_FIELD: encode_value(value, result_type)}, ttl)
        except Exception:
            logger.warning("Cache write failed for %s", key, exc_info=True)


@dataclass(frozen=True)
class CacheTtlPolicy:
    """TTL per query shape, in seconds."""

    entity: int = 3600
    query: int = 300
    volatile: int = 120
    reference: int = 86400

    @classmethod
    def from_settings(cls, settings: Settings) -> CacheTtlPolicy:
        return cls(
            entity=settings.cache_ttl_entity,
            query=settings.cache_ttl_query,
            volatile=settings.cache_ttl_volatile,
            reference=settings.cache_ttl_reference,
        )
