"""Bulk update commands for links.

A closed set of variants, one per updatable field group. LinkRepository
dispatches on the variant type with match; there is no field-name lookup.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class SetLinkStatus:
    """Activate or deactivate links."""

    active: bool


@dataclass(frozen=True)
class SetLinkPrice:
    """Set the price of links (also stamps last_price_update)."""

    price: Decimal | str


@dataclass(frozen=True)
class MarkLinksValidated:
    """Stamp last_validation with the current time."""


LinkUpdateCommand = SetLinkStatus | SetLinkPrice | MarkLinksValidated
