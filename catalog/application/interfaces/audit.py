"""Audit sink port used by TransactionCoordinator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from catalog.application.dtos.audit import AuditLogResult, AuditRecord


class AuditSink(Protocol):
    """Append-only destination for audit records; no update or delete surface."""

    async def append(self, record: AuditRecord) -> AuditLogResult:
        """Persist one record in the caller's open transaction."""
        ...
