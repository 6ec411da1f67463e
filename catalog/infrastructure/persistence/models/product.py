"""Product ORM model."""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.models.mixins import CatalogModel


class Product(CatalogModel, Base):
    """Catalog product, optionally filed under one category."""

    __tablename__ = "product"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("category.id", ondelete="SET NULL"), nullable=True, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
