"""Persistence repositories. Re-exports for composition."""

from catalog.infrastructure.persistence.repositories.admin_repo import AdminRepository
from catalog.infrastructure.persistence.repositories.audit_log_repo import AuditLogRepository
from catalog.infrastructure.persistence.repositories.badge_repo import (
    COMMON_BADGES,
    BadgeRepository,
)
from catalog.infrastructure.persistence.repositories.base import BaseRepository
from catalog.infrastructure.persistence.repositories.cached_repo import CachedRepository
from catalog.infrastructure.persistence.repositories.category_repo import CategoryRepository
from catalog.infrastructure.persistence.repositories.composite_repo import (
    CompositeKeyRepository,
    parse_composite_id,
)
from catalog.infrastructure.persistence.repositories.link_repo import LinkRepository
from catalog.infrastructure.persistence.repositories.product_badge_repo import (
    ProductBadgeRepository,
)
from catalog.infrastructure.persistence.repositories.product_repo import ProductRepository

__all__ = [
    "COMMON_BADGES",
    "AdminRepository",
    "AuditLogRepository",
    "BadgeRepository",
    "BaseRepository",
    "CachedRepository",
    "CategoryRepository",
    "CompositeKeyRepository",
    "LinkRepository",
    "ProductBadgeRepository",
    "ProductRepository",
    "parse_composite_id",
]
