"""Tests for link price parsing."""

from decimal import Decimal

import pytest

from catalog.domain.exceptions import ValidationException
from catalog.infrastructure.persistence.repositories.link_repo import parse_price


@pytest.mark.parametrize(
    "value,expected",
    [
        ("123", Decimal("123.00")),
        ("123.4", Decimal("123.40")),
        ("123.45", Decimal("123.45")),
        (" 0.99 ", Decimal("0.99")),
        (Decimal("10.5"), Decimal("10.50")),
        (42, Decimal("42.00")),
    ],
)
def test_valid_prices(value, expected) -> None:
    assert parse_price(value) == expected


@pytest.mark.parametrize("value", ["123.456", "-1", "abc", "", "1,50", 1.5, True, Decimal("1.234"), None])
def test_invalid_prices(value) -> None:
    with pytest.raises(ValidationException) as exc_info:
        parse_price(value)
    assert exc_info.value.details == {"field": "price"}
