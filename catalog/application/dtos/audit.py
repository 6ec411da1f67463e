"""DTOs for audit records (append-only)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AuditRecord:
    """One audit entry as built by AuditRecorder, before it is persisted."""

    entity_type: str
    entity_id: str
    action_type: str
    performed_at: datetime
    actor_id: int | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    changes_summary: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class AuditLogResult:
    """Persisted audit log entry (read-model)."""

    id: int
    entity_type: str
    entity_id: str
    action_type: str
    performed_at: datetime
    actor_id: int | None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    changes_summary: str | None
    ip_address: str | None
    user_agent: str | None
