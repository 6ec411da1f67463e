"""Cache store factory: creates the Redis or in-memory backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog.infrastructure.cache.cache_protocol import CacheProtocol

if TYPE_CHECKING:
    from catalog.core.config import Settings


async def create_cache_backend(settings: "Settings | None" = None) -> CacheProtocol:
    """Create and connect the cache store selected by settings.cache_backend.

    Args:
        settings: Application settings; if None, uses get_settings().

    Returns:
        CacheService (connected, or disabled if Redis is unreachable) or MemoryCache.

    Raises:
        ValueError: Unknown backend.
    """
    from catalog.core.config import get_settings

    s = settings or get_settings()
    backend = s.cache_backend.lower()

    if backend == "redis":
        from catalog.infrastructure.cache.redis_cache import CacheService

        service = CacheService(settings=s)
        await service.connect()
        return service
    if backend == "memory":
        from catalog.infrastructure.cache.memory_cache import MemoryCache

        return MemoryCache()
    raise ValueError(f"Unknown cache backend: {s.cache_backend!r}")
