"""Audit log repository: the append-only audit sink.

append() runs inside the caller's open transaction (TransactionCoordinator
calls it just before commit), so an audit entry exists if and only if the
mutation it describes was committed. Reads are uncached. Entries are never
updated, deleted or restored; those operations always raise.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.application.dtos.audit import AuditLogResult, AuditRecord
from catalog.infrastructure.exceptions import ImmutableAuditRecordException
from catalog.infrastructure.persistence.criteria import QuerySpec, apply_criteria
from catalog.infrastructure.persistence.models.audit_log import AuditLog
from catalog.shared.utils.datetime import ensure_utc


class AuditLogRepository:
    """Persists and queries audit entries. Implements the AuditSink port."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @staticmethod
    def _to_result(obj: AuditLog) -> AuditLogResult:
        return AuditLogResult(
            id=obj.id,
            entity_type=obj.entity_type,
            entity_id=obj.entity_id,
            action_type=obj.action_type,
            performed_at=ensure_utc(obj.performed_at),
            actor_id=obj.actor_id,
            old_values=obj.old_values,
            new_values=obj.new_values,
            changes_summary=obj.changes_summary,
            ip_address=obj.ip_address,
            user_agent=obj.user_agent,
        )

    async def append(self, record: AuditRecord) -> AuditLogResult:
        entry = AuditLog(
            actor_id=record.actor_id,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            action_type=record.action_type,
            old_values=record.old_values,
            new_values=record.new_values,
            changes_summary=record.changes_summary,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            performed_at=record.performed_at,
        )
        self.db.add(entry)
        await self.db.flush()
        return self._to_result(entry)

    async def find_by_id(self, entry_id: int) -> AuditLogResult | None:
        result = await self.db.execute(select(AuditLog).where(AuditLog.id == entry_id))
        obj = result.scalar_one_or_none()
        return self._to_result(obj) if obj is not None else None

    async def find_by_entity(
        self, entity_type: str, entity_id: int | str, limit: int | None = None
    ) -> list[AuditLogResult]:
        """History of one entity, oldest first."""
        spec = QuerySpec.of(
            {"entity_type": entity_type, "entity_id": str(entity_id)},
            order_by=("performed_at", "id"),
            limit=limit,
        )
        return await self.list(spec)

    async def find_by_actor(self, actor_id: int, limit: int | None = 100) -> list[AuditLogResult]:
        """Most recent entries by one actor first."""
        spec = QuerySpec.of({"actor_id": actor_id}, order_by=("-performed_at", "-id"), limit=limit)
        return await self.list(spec)

    async def list(
        self, criteria: QuerySpec | Mapping[str, Any] | None = None
    ) -> list[AuditLogResult]:
        spec = criteria if isinstance(criteria, QuerySpec) else QuerySpec.of(criteria)
        if not spec.order_by:
            spec = spec.ordered_by("id")
        result = await self.db.execute(apply_criteria(select(AuditLog), AuditLog, spec))
        return [self._to_result(obj) for obj in result.scalars().all()]

    async def count(self, criteria: QuerySpec | Mapping[str, Any] | None = None) -> int:
        spec = criteria if isinstance(criteria, QuerySpec) else QuerySpec.of(criteria)
        stmt = apply_criteria(
            select(func.count()).select_from(AuditLog), AuditLog, spec.without_paging()
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def update(self, entry_id: int, values: Mapping[str, Any]) -> None:
        raise ImmutableAuditRecordException("updated")

    async def delete(self, entry_id: int) -> None:
        raise ImmutableAuditRecordException("deleted")

    async def restore(self, entry_id: int) -> None:
        raise ImmutableAuditRecordException("restored")
