"""Shared utilities: context, enums, telemetry, and cross-cutting helpers.

Used by domain and infrastructure. No business logic.
"""

from catalog.shared.context import (
    ActorContext,
    clear_current_actor,
    get_actor_context,
    get_current_actor_id,
    set_current_actor,
)
from catalog.shared.enums import ActorType, AdminRole, AuditAction

__all__ = [
    "ActorContext",
    "ActorType",
    "AdminRole",
    "AuditAction",
    "clear_current_actor",
    "get_actor_context",
    "get_current_actor_id",
    "set_current_actor",
]
