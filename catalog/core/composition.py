"""Repository composition: wire one unit of work around a session.

One TransactionCoordinator and one ReadThroughCache per session; every
repository built here shares them, so a write that spans repositories
commits once and flushes its invalidations once.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from catalog.core.config import Settings, get_settings
from catalog.domain.commission import CommissionRevenueDeriver
from catalog.infrastructure.cache.cache_protocol import CacheProtocol
from catalog.infrastructure.cache.factory import create_cache_backend
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.database import get_session_factory
from catalog.infrastructure.persistence.repositories import (
    AdminRepository,
    AuditLogRepository,
    BadgeRepository,
    CategoryRepository,
    LinkRepository,
    ProductBadgeRepository,
    ProductRepository,
)
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.infrastructure.services.audit_recorder import AuditRecorder
from catalog.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CatalogRepositories:
    """Repositories sharing one session, coordinator and cache."""

    coordinator: TransactionCoordinator
    cache: ReadThroughCache
    audit_log: AuditLogRepository
    categories: CategoryRepository
    products: ProductRepository
    links: LinkRepository
    badges: BadgeRepository
    product_badges: ProductBadgeRepository
    admins: AdminRepository


def build_repositories(
    db: AsyncSession,
    cache_store: CacheProtocol,
    settings: Settings | None = None,
) -> CatalogRepositories:
    settings = settings or get_settings()
    ttls = CacheTtlPolicy.from_settings(settings)
    audit_log = AuditLogRepository(db)
    coordinator = TransactionCoordinator(
        db,
        cache_store,
        recorder=AuditRecorder(enabled=settings.audit_enabled),
        audit_sink=audit_log,
    )
    cache = ReadThroughCache(
        cache_store, default_ttl=ttls.entity, bypass=lambda: coordinator.is_open
    )
    return CatalogRepositories(
        coordinator=coordinator,
        cache=cache,
        audit_log=audit_log,
        categories=CategoryRepository(coordinator, cache, ttls),
        products=ProductRepository(coordinator, cache, ttls),
        links=LinkRepository(
            coordinator,
            cache,
            ttls,
            CommissionRevenueDeriver(settings.default_commission_rate),
        ),
        badges=BadgeRepository(coordinator, cache, ttls),
        product_badges=ProductBadgeRepository(coordinator, cache, ttls),
        admins=AdminRepository(coordinator, cache, ttls),
    )


@asynccontextmanager
async def open_catalog(settings: Settings | None = None) -> AsyncIterator[CatalogRepositories]:
    """Connect the cache backend, open a session and yield wired repositories.

    The cache backend is disconnected and the session closed on exit.
    """
    settings = settings or get_settings()
    cache_store = await create_cache_backend(settings)
    factory = get_session_factory()
    try:
        async with factory() as session:
            yield build_repositories(session, cache_store, settings)
    finally:
        disconnect = getattr(cache_store, "disconnect", None)
        if disconnect is not None:
            await disconnect()
            logger.info("Cache backend disconnected")
