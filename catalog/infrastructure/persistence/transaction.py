"""Transaction coordinator: one logical write as one atomic unit.

Every repository write runs inside ``coordinator.transaction()``. While the
unit is open, cache invalidations are queued on a PendingInvalidationSet and
audit records are buffered; nothing touches the cache store. On success the
buffered audit records are appended to the audit sink in the same database
transaction, the transaction commits, and only then are the queued targets
applied to the cache store. On any failure, including task cancellation,
the database transaction is rolled back and the queue and buffer are
discarded, so no partial invalidation or audit entry survives.

Invalidating only after commit closes the window in which a concurrent
reader could repopulate a key with pre-write data.

Nested ``transaction()`` blocks join the open unit; only the outermost block
commits or rolls back. An exception leaving a nested block marks the unit
rollback-only: the outermost exit rolls back and raises
InfrastructureException even if a caller caught the inner error.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from catalog.infrastructure.cache.invalidation import (
    InvalidationTarget,
    PendingInvalidationSet,
    apply_targets,
)
from catalog.infrastructure.exceptions import InfrastructureException
from catalog.infrastructure.services.audit_recorder import AuditRecorder
from catalog.shared.enums import AuditAction
from catalog.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from catalog.application.dtos.audit import AuditRecord
    from catalog.application.interfaces.audit import AuditSink
    from catalog.infrastructure.cache.cache_protocol import CacheProtocol

logger = get_logger(__name__)


class TransactionState(str, Enum):
    """Lifecycle of the most recent logical operation."""

    IDLE = "idle"
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionCoordinator:
    """Owns commit, rollback, invalidation flush and audit persistence for one session.

    One coordinator per AsyncSession; repositories built around the same
    session share it, so a write in one repository that calls another joins
    the same unit.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache_store: CacheProtocol,
        recorder: AuditRecorder | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self.db = db
        self.cache_store = cache_store
        self.recorder = recorder or AuditRecorder()
        self.audit_sink = audit_sink
        self._state = TransactionState.IDLE
        self._depth = 0
        self._pending = PendingInvalidationSet()
        self._audit_buffer: list[AuditRecord] = []
        self._rollback_cause: BaseException | None = None

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is TransactionState.OPEN

    @property
    def pending_invalidations(self) -> list[InvalidationTarget]:
        """Snapshot of queued targets (empty unless a unit is open)."""
        return list(self._pending)

    @property
    def buffered_audit_records(self) -> list[AuditRecord]:
        return list(self._audit_buffer)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionCoordinator]:
        """Open a unit, or join the one already open."""
        if self._depth > 0:
            self._depth += 1
            try:
                yield self
            except BaseException as e:
                # The unit can no longer commit, even if a caller swallows e.
                if self._rollback_cause is None:
                    self._rollback_cause = e
                raise
            finally:
                self._depth -= 1
            return

        await self._open()
        try:
            yield self
            if self._rollback_cause is not None:
                raise InfrastructureException(
                    "Transaction rolled back: a nested operation failed", "transaction"
                ) from self._rollback_cause
            await self._persist_audit()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback(e)
            raise InfrastructureException(f"Database operation failed: {e}", "transaction") from e
        except BaseException as e:
            await self._rollback(e)
            raise
        finally:
            self._depth = 0
        self._state = TransactionState.COMMITTED
        targets = list(self._pending)
        self._pending.clear()
        await apply_targets(self.cache_store, targets)

    def invalidate(self, *targets: str | InvalidationTarget) -> None:
        """Queue targets for removal after commit."""
        self._require_open("invalidate")
        self._pending.extend(targets)

    def record_audit(
        self,
        entity_type: str,
        entity_id: int | str,
        action_type: AuditAction | str,
        old_values: Mapping[str, Any] | None = None,
        new_values: Mapping[str, Any] | None = None,
        actor_id: int | None = None,
    ) -> AuditRecord | None:
        """Buffer an audit record for this unit. Returns None when auditing is disabled."""
        self._require_open("record_audit")
        if not self.recorder.enabled:
            return None
        record = self.recorder.record(
            entity_type,
            entity_id,
            action_type,
            old_values=old_values,
            new_values=new_values,
            actor_id=actor_id,
        )
        self._audit_buffer.append(record)
        return record

    def _require_open(self, operation: str) -> None:
        if not self.is_open:
            raise RuntimeError(f"{operation}() requires an open transaction")

    async def _open(self) -> None:
        if self.db.in_transaction():
            # Close the implicit transaction left by reads outside a unit.
            await self.db.rollback()
        self._pending = PendingInvalidationSet()
        self._audit_buffer = []
        self._depth = 1
        self._rollback_cause = None
        self._state = TransactionState.OPEN

    async def _persist_audit(self) -> None:
        if not self._audit_buffer:
            return
        if self.audit_sink is None:
            logger.debug("No audit sink configured; dropping %d record(s)", len(self._audit_buffer))
            return
        for record in self._audit_buffer:
            await self.audit_sink.append(record)

    async def _rollback(self, cause: BaseException) -> None:
        discarded = len(self._pending)
        self._pending.clear()
        self._audit_buffer = []
        self._state = TransactionState.ROLLED_BACK
        try:
            await self.db.rollback()
        except Exception:
            logger.exception("Rollback failed after %s", type(cause).__name__)
        logger.warning(
            "Transaction rolled back (%s); discarded %d pending invalidation(s)",
            type(cause).__name__,
            discarded,
        )
