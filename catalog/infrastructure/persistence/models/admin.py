"""Admin ORM model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.models.mixins import CatalogModel
from catalog.shared.enums import AdminRole


class Admin(CatalogModel, Base):
    """Back-office administrator. role is 'admin' or 'super_admin'."""

    __tablename__ = "admin"

    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AdminRole.ADMIN.value, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
