"""Shared enumerations for the catalog core.

Cross-cutting enums used by domain and infrastructure (actor type, audit
actions, admin roles).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ActorType(_ValuesMixin, str, Enum):
    """Actor type for audit tracking (who performed the action)."""

    ADMIN = "admin"
    SYSTEM = "system"


class AdminRole(_ValuesMixin, str, Enum):
    """Administrator role."""

    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AuditAction(_ValuesMixin, str, Enum):
    """Audit action types recorded for catalog mutations."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    RESTORED = "restored"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    MOVED = "moved"
    STATUS_CHANGED = "status_changed"
    ROLE_CHANGED = "role_changed"
    PRICE_UPDATED = "price_updated"
    REVENUE_ADDED = "revenue_added"
    ASSOCIATED = "associated"
    DISSOCIATED = "dissociated"
