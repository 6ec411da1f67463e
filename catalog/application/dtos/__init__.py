"""Read-model DTOs returned by repositories (frozen, ORM-free, cacheable)."""

from catalog.application.dtos.admin import AdminResult
from catalog.application.dtos.audit import AuditLogResult, AuditRecord
from catalog.application.dtos.badge import BadgeResult, CommonBadge, ProductBadgeResult
from catalog.application.dtos.category import CategoryNode, CategoryResult, CategoryStats
from catalog.application.dtos.link import LinkResult
from catalog.application.dtos.product import ProductResult

__all__ = [
    "AdminResult",
    "AuditLogResult",
    "AuditRecord",
    "BadgeResult",
    "CategoryNode",
    "CategoryResult",
    "CategoryStats",
    "CommonBadge",
    "LinkResult",
    "ProductBadgeResult",
    "ProductResult",
]
