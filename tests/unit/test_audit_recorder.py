"""Tests for audit record building (redaction, summaries, context)."""

from decimal import Decimal

from catalog.infrastructure.services.audit_recorder import (
    AuditRecorder,
    format_field_name,
    format_value,
    redact,
    summarize_changes,
)
from catalog.shared.context import set_current_actor
from catalog.shared.enums import AuditAction


def test_redact_masks_sensitive_fields() -> None:
    values = {"username": "root", "password_hash": "x", "token": "t", "price": Decimal("12.50")}
    assert redact(values) == {
        "username": "root",
        "password_hash": "***REDACTED***",
        "token": "***REDACTED***",
        "price": "12.50",
    }
    assert redact(None) is None


def test_summary_for_create_and_delete() -> None:
    assert summarize_changes(None, {"name": "A"}) == "Entity created"
    assert summarize_changes({"name": "A"}, None) == "Entity deleted"


def test_summary_lists_changed_fields() -> None:
    old = {"name": "A", "active": True, "parent_id": None, "updated_at": "t1"}
    new = {"name": "B", "active": False, "parent_id": 3, "updated_at": "t2"}
    assert summarize_changes(old, new) == (
        "Changed: Name: A -> B; Active: Yes -> No; Parent id: (empty) -> 3"
    )


def test_summary_without_changes() -> None:
    old = {"name": "A", "updated_at": "t1"}
    new = {"name": "A", "updated_at": "t2"}
    assert summarize_changes(old, new) == "No significant changes detected"


def test_format_value() -> None:
    assert format_value(None) == "(empty)"
    assert format_value(True) == "Yes"
    assert format_value([1]) == "[Array]"
    assert format_value({"a": 1}) == "[Object]"
    assert format_value("x" * 50) == "x" * 50
    long = format_value("y" * 51)
    assert long == "y" * 47 + "..."
    assert len(long) == 50


def test_format_field_name() -> None:
    assert format_field_name("parent_id") == "Parent id"


def test_record_uses_actor_context() -> None:
    set_current_actor(7, ip_address="10.0.0.1", user_agent="pytest")

    record = AuditRecorder().record(
        "category", 5, AuditAction.UPDATED, {"name": "A"}, {"name": "B"}
    )

    assert record.entity_id == "5"
    assert record.action_type == "updated"
    assert record.actor_id == 7
    assert record.ip_address == "10.0.0.1"
    assert record.user_agent == "pytest"
    assert record.changes_summary == "Changed: Name: A -> B"
    assert record.performed_at.tzinfo is not None


def test_record_explicit_actor_wins() -> None:
    set_current_actor(7)
    record = AuditRecorder().record("link", "3", "created", None, {"url": "u"}, actor_id=9)
    assert record.actor_id == 9
    assert record.old_values is None


def test_record_without_context_is_system() -> None:
    record = AuditRecorder().record("admin", 1, AuditAction.CREATED, None, {"password_hash": "h"})
    assert record.actor_id is None
    assert record.new_values == {"password_hash": "***REDACTED***"}
