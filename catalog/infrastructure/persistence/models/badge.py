"""Badge ORM models: badge definitions and the product-badge association."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.models.mixins import CatalogModel


class Badge(CatalogModel, Base):
    """Display badge (e.g. Best Seller). Soft delete archives it."""

    __tablename__ = "badge"

    label: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#3B82F6")


class ProductBadge(Base):
    """Association row identified by the ordered pair (product_id, badge_id).

    No surrogate id and no soft delete: dissociation removes the row.
    """

    __tablename__ = "product_badge"

    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product.id", ondelete="CASCADE"), primary_key=True
    )
    badge_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("badge.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    assigned_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("admin.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
