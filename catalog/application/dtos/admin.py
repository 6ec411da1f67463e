"""DTOs for admins. password_hash is never part of a read-model."""

from dataclasses import dataclass
from datetime import datetime

from catalog.domain.value_objects import Lifecycle
from catalog.shared.enums import AdminRole


@dataclass(frozen=True)
class AdminResult:
    """Admin read-model."""

    id: int
    username: str
    email: str
    role: AdminRole
    active: bool
    last_login_at: datetime | None
    created_at: datetime | None
    lifecycle: Lifecycle

    @property
    def is_super_admin(self) -> bool:
        return self.role is AdminRole.SUPER_ADMIN
