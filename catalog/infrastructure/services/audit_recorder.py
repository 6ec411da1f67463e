"""Builds audit records from before/after snapshots.

Snapshots are plain dicts (column name -> value). The recorder redacts
sensitive fields, converts values to JSON-compatible form, and writes a
human-readable change summary. It does not persist anything; the
TransactionCoordinator buffers the record and hands it to the audit sink
with the commit of the mutation it describes.
"""

from collections.abc import Mapping
from typing import Any

from pydantic_core import to_jsonable_python

from catalog.application.dtos.audit import AuditRecord
from catalog.core.constants import AUDIT_REDACTED, AUDIT_SENSITIVE_FIELDS
from catalog.shared.context import get_actor_context
from catalog.shared.enums import AuditAction
from catalog.shared.utils.datetime import utc_now

_SUMMARY_IGNORED_FIELDS = frozenset({"updated_at"})
_MAX_VALUE_LENGTH = 50


def redact(values: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Return a JSON-compatible copy with sensitive fields masked."""
    if values is None:
        return None
    return {
        key: AUDIT_REDACTED if key in AUDIT_SENSITIVE_FIELDS else to_jsonable_python(value)
        for key, value in values.items()
    }


def format_field_name(name: str) -> str:
    """'parent_id' -> 'Parent id'."""
    text = name.replace("_", " ")
    return text[:1].upper() + text[1:]


def format_value(value: Any) -> str:
    if value is None:
        return "(empty)"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list | tuple):
        return "[Array]"
    if isinstance(value, Mapping):
        return "[Object]"
    text = str(value)
    if len(text) > _MAX_VALUE_LENGTH:
        return text[:47] + "..."
    return text


def summarize_changes(
    old_values: Mapping[str, Any] | None,
    new_values: Mapping[str, Any] | None,
) -> str | None:
    """Human-readable summary of a before/after pair."""
    if old_values is None and new_values is not None:
        return "Entity created"
    if old_values is not None and new_values is None:
        return "Entity deleted"
    if old_values is None or new_values is None:
        return None
    changes = [
        f"{format_field_name(key)}: {format_value(old_values.get(key))} -> "
        f"{format_value(new_values.get(key))}"
        for key in dict.fromkeys([*old_values, *new_values])
        if key not in _SUMMARY_IGNORED_FIELDS and old_values.get(key) != new_values.get(key)
    ]
    if not changes:
        return "No significant changes detected"
    return "Changed: " + "; ".join(changes)


class AuditRecorder:
    """Creates AuditRecord values; actor, IP and user agent default to request context."""

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled

    def record(
        self,
        entity_type: str,
        entity_id: int | str,
        action_type: AuditAction | str,
        old_values: Mapping[str, Any] | None = None,
        new_values: Mapping[str, Any] | None = None,
        actor_id: int | None = None,
    ) -> AuditRecord:
        context = get_actor_context()
        old = redact(old_values)
        new = redact(new_values)
        action = action_type.value if isinstance(action_type, AuditAction) else action_type
        return AuditRecord(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action_type=action,
            performed_at=utc_now(),
            actor_id=actor_id if actor_id is not None else context.actor_id,
            old_values=old,
            new_values=new,
            changes_summary=summarize_changes(old, new),
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
