"""Value objects shared by repositories: composite identity and entity lifecycle.

Immutable and self-validating. Validation failures raise ValidationException.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from catalog.core.constants import COMPOSITE_ID_SEP
from catalog.domain.exceptions import ValidationException


@dataclass(frozen=True)
class CompositeIdentity:
    """Ordered (owner_id, related_id) pair identifying an association row.

    Serialized as "owner_related". Order is significant: (7, 3) and (3, 7)
    are different associations. Not interchangeable with surrogate ids.
    """

    owner_id: int
    related_id: int

    def __post_init__(self) -> None:
        for name, value in (("owner_id", self.owner_id), ("related_id", self.related_id)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationException(
                    f"{name} must be a positive integer, got {value!r}", field=name
                )

    def __str__(self) -> str:
        return f"{self.owner_id}{COMPOSITE_ID_SEP}{self.related_id}"

    @classmethod
    def parse(cls, value: object) -> CompositeIdentity:
        """Parse "owner_related"; reject malformed or non-positive components."""
        if not isinstance(value, str):
            raise ValidationException(
                "Composite id must be a string in 'owner_related' format", field="id"
            )
        parts = value.split(COMPOSITE_ID_SEP)
        if len(parts) != 2 or not all(p.isascii() and p.isdigit() for p in parts):
            raise ValidationException(
                f"Invalid composite id {value!r}: expected 'owner_related'", field="id"
            )
        return cls(int(parts[0]), int(parts[1]))


@dataclass(frozen=True)
class Active:
    """Lifecycle state of a live (not soft-deleted) entity."""

    state: Literal["active"] = "active"


@dataclass(frozen=True)
class Deleted:
    """Lifecycle state of a soft-deleted entity."""

    at: datetime
    state: Literal["deleted"] = "deleted"


Lifecycle = Active | Deleted


def lifecycle_of(deleted_at: datetime | None) -> Lifecycle:
    """Map a nullable deleted_at column to the tagged lifecycle state."""
    if deleted_at is None:
        return Active()
    return Deleted(at=deleted_at)
