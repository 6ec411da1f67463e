"""Affiliate link ORM model.

Commission rates are request-scoped and have no column here; only the
accumulated affiliate_revenue is persisted.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.models.mixins import CatalogModel


class Link(CatalogModel, Base):
    """Marketplace offer for a product."""

    __tablename__ = "link"

    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True
    )
    marketplace_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    affiliate_revenue: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    last_price_update: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_validation: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
