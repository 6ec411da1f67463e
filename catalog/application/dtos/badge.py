"""DTOs for badges and product-badge associations."""

from dataclasses import dataclass
from datetime import datetime

from catalog.core.constants import COMPOSITE_ID_SEP
from catalog.domain.value_objects import Lifecycle


@dataclass(frozen=True)
class BadgeResult:
    """Badge read-model."""

    id: int
    label: str
    color: str
    created_at: datetime | None
    lifecycle: Lifecycle


@dataclass(frozen=True)
class CommonBadge:
    """Entry of the fixed reference set of common badges."""

    key: str
    label: str
    color: str


@dataclass(frozen=True)
class ProductBadgeResult:
    """Product-badge association read-model."""

    product_id: int
    badge_id: int
    assigned_by: int | None
    assigned_at: datetime | None

    @property
    def composite_id(self) -> str:
        return f"{self.product_id}{COMPOSITE_ID_SEP}{self.badge_id}"
