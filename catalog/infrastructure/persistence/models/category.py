"""Category ORM model. Self-referencing tree via parent_id."""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.models.mixins import CatalogModel


class Category(CatalogModel, Base):
    """Product category. Root categories have parent_id NULL."""

    __tablename__ = "category"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("category.id", ondelete="SET NULL"), nullable=True, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
