"""Tests for settings validation and the actor context."""

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from catalog.core.config import Settings
from catalog.shared.context import (
    clear_current_actor,
    get_actor_context,
    get_current_actor_id,
    set_current_actor,
)
from catalog.shared.enums import ActorType, AdminRole, AuditAction
from catalog.shared.telemetry import logging as catalog_logging


def test_settings_defaults() -> None:
    s = Settings(database_url="sqlite+aiosqlite:///:memory:", cache_backend="memory")
    assert s.cache_ttl_query == 300
    assert s.cache_ttl_volatile == 120
    assert s.default_commission_rate == Decimal("2")
    assert s.audit_enabled is True


def test_settings_require_database_url() -> None:
    with pytest.raises(ValidationError):
        Settings(database_url="")


def test_settings_reject_unknown_cache_backend() -> None:
    with pytest.raises(ValidationError):
        Settings(database_url="sqlite+aiosqlite:///:memory:", cache_backend="memcached")


def test_settings_reject_commission_out_of_range() -> None:
    with pytest.raises(ValidationError):
        Settings(database_url="sqlite+aiosqlite:///:memory:", default_commission_rate="150")


def test_actor_context() -> None:
    set_current_actor(3, ip_address="127.0.0.1", user_agent="cli")
    assert get_current_actor_id() == 3
    context = get_actor_context()
    assert context.actor_type is ActorType.ADMIN
    assert context.ip_address == "127.0.0.1"

    clear_current_actor()
    assert get_actor_context().actor_id is None
    assert get_actor_context().actor_type is ActorType.SYSTEM


def test_admin_actor_requires_id() -> None:
    with pytest.raises(ValueError):
        set_current_actor(None)
    set_current_actor(None, actor_type=ActorType.SYSTEM)
    assert get_current_actor_id() is None


def test_enum_values() -> None:
    assert AdminRole.values() == ["admin", "super_admin"]
    assert "revenue_added" in AuditAction.values()


@pytest.mark.parametrize(("debug", "level"), [("true", logging.DEBUG), ("false", logging.INFO)])
def test_setup_logging_level_follows_debug(monkeypatch, debug, level) -> None:
    calls = []
    monkeypatch.setenv("DEBUG", debug)
    monkeypatch.setattr(catalog_logging.logging, "basicConfig", lambda **kw: calls.append(kw))

    catalog_logging.setup_logging()

    assert calls[0]["level"] == level
    assert catalog_logging.get_logger("catalog.test").name == "catalog.test"
