"""DTOs for products."""

from dataclasses import dataclass
from datetime import datetime

from catalog.domain.value_objects import Lifecycle


@dataclass(frozen=True)
class ProductResult:
    """Product read-model."""

    id: int
    name: str
    slug: str
    category_id: int | None
    active: bool
    created_at: datetime | None
    updated_at: datetime | None
    lifecycle: Lifecycle
