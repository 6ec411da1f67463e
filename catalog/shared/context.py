"""Request context management using contextvars.

Provides async-safe storage for request-scoped data used by audit records:
the acting admin, client IP and user agent. Authentication itself happens
outside this package; callers set the context once they know the actor.

Usage:
    set_current_actor(actor_id=7, ip_address="10.0.0.1")
    actor_id = get_current_actor_id()
"""

from contextvars import ContextVar
from dataclasses import dataclass

from catalog.shared.enums import ActorType

_current_actor_id: ContextVar[int | None] = ContextVar("current_actor_id", default=None)
_current_actor_type: ContextVar[ActorType] = ContextVar(
    "current_actor_type", default=ActorType.SYSTEM
)
_current_ip_address: ContextVar[str | None] = ContextVar(
    "current_ip_address", default=None
)
_current_user_agent: ContextVar[str | None] = ContextVar(
    "current_user_agent", default=None
)


@dataclass(frozen=True)
class ActorContext:
    """Immutable snapshot of the current actor context."""

    actor_id: int | None
    actor_type: ActorType
    ip_address: str | None = None
    user_agent: str | None = None


def set_current_actor(
    actor_id: int | None,
    actor_type: ActorType = ActorType.ADMIN,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Set the current actor context for this request.

    Context is scoped to the current async task.

    Args:
        actor_id: Authenticated admin ID or None.
        actor_type: Who is performing the action (ADMIN or SYSTEM).
        ip_address: Optional client IP.
        user_agent: Optional client user agent.

    Raises:
        ValueError: If actor_type is ADMIN and actor_id is missing.
    """
    if actor_type == ActorType.ADMIN and actor_id is None:
        raise ValueError("actor_id is required when actor_type is ADMIN")
    _current_actor_id.set(actor_id)
    _current_actor_type.set(actor_type)
    _current_ip_address.set(ip_address)
    _current_user_agent.set(user_agent)


def clear_current_actor() -> None:
    """Clear the current actor context."""
    _current_actor_id.set(None)
    _current_actor_type.set(ActorType.SYSTEM)
    _current_ip_address.set(None)
    _current_user_agent.set(None)


def get_current_actor_id() -> int | None:
    """Return the current admin ID, or None for system actions."""
    return _current_actor_id.get()


def get_actor_context() -> ActorContext:
    """Return a snapshot of the current actor context."""
    return ActorContext(
        actor_id=_current_actor_id.get(),
        actor_type=_current_actor_type.get(),
        ip_address=_current_ip_address.get(),
        user_agent=_current_user_agent.get(),
    )
