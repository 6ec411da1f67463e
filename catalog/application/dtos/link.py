"""DTOs for affiliate links. Commission rates never appear here."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from catalog.domain.value_objects import Lifecycle


@dataclass(frozen=True)
class LinkResult:
    """Link read-model."""

    id: int
    product_id: int
    marketplace_id: int | None
    store_name: str
    price: Decimal
    url: str
    active: bool
    clicks: int
    sold_count: int
    affiliate_revenue: Decimal
    last_price_update: datetime | None
    last_validation: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    lifecycle: Lifecycle
