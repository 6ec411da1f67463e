"""Persistence models: ORM entities and mixins."""

from catalog.infrastructure.persistence.models.admin import Admin
from catalog.infrastructure.persistence.models.audit_log import AuditLog
from catalog.infrastructure.persistence.models.badge import Badge, ProductBadge
from catalog.infrastructure.persistence.models.category import Category
from catalog.infrastructure.persistence.models.link import Link
from catalog.infrastructure.persistence.models.mixins import (
    CatalogModel,
    IntegerIdMixin,
    SoftDeleteMixin,
    TimestampMixin,
)
from catalog.infrastructure.persistence.models.product import Product

__all__ = [
    "Admin",
    "AuditLog",
    "Badge",
    "CatalogModel",
    "Category",
    "IntegerIdMixin",
    "Link",
    "Product",
    "ProductBadge",
    "SoftDeleteMixin",
    "TimestampMixin",
]
