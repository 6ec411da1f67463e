"""Audit log ORM model. Append-only record of catalog mutations."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Connection, DateTime, Integer, String, Text, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, Mapper, mapped_column

from catalog.infrastructure.exceptions import ImmutableAuditRecordException
from catalog.infrastructure.persistence.database import Base

_JSON = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(Base):
    """Who changed what, when, with before/after snapshots. No update/delete.

    entity_id is a string so composite identities ("7_3") fit alongside
    integer ids.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    changes_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )


@event.listens_for(AuditLog, "before_update")
def _prevent_audit_log_updates(
    _mapper: Mapper[Any], _connection: Connection, _target: AuditLog
) -> None:
    """Audit log entries are append-only; updates are forbidden."""
    raise ImmutableAuditRecordException("updated")


@event.listens_for(AuditLog, "before_delete")
def _prevent_audit_log_deletes(
    _mapper: Mapper[Any], _connection: Connection, _target: AuditLog
) -> None:
    """Audit log entries are removed only by retention cleanup, never by the ORM."""
    raise ImmutableAuditRecordException("deleted")
