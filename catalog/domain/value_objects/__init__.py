"""Domain value objects."""

from catalog.domain.value_objects.core import (
    Active,
    CompositeIdentity,
    Deleted,
    Lifecycle,
    lifecycle_of,
)

__all__ = [
    "Active",
    "CompositeIdentity",
    "Deleted",
    "Lifecycle",
    "lifecycle_of",
]
