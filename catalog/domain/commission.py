"""Commission-to-revenue derivation.

A commission rate arrives with a single request and is used only to compute
a revenue delta from the persisted link price. The rate itself is never
stored; only the delta is accumulated onto the link's affiliate revenue.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from catalog.domain.exceptions import ValidationException

_CENTS = Decimal("0.01")
_HUNDRED = Decimal("100")


def to_decimal(value: object, field: str) -> Decimal:
    """Coerce str/int/Decimal to a finite Decimal; reject floats and garbage."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationException(f"{field} must be a decimal string or integer", field=field)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationException(f"{field} is not a valid decimal: {value!r}", field=field) from e
    if not result.is_finite():
        raise ValidationException(f"{field} must be finite", field=field)
    return result


class CommissionRevenueDeriver:
    """Derives revenue deltas: price x rate / 100, rounded half-up to cents."""

    def __init__(self, default_rate: Decimal | str | int = Decimal("2")) -> None:
        self.default_rate = self._validate_rate(default_rate)

    @staticmethod
    def _validate_rate(rate: object) -> Decimal:
        value = to_decimal(rate, "commission_rate")
        if value < 0 or value > _HUNDRED:
            raise ValidationException(
                f"commission_rate must be between 0 and 100, got {value}",
                field="commission_rate",
            )
        return value

    def derive(
        self,
        price: Decimal | str | int,
        commission_rate: Decimal | str | int | None = None,
    ) -> Decimal:
        """Return the revenue delta for one sale at the given (or default) rate."""
        amount = to_decimal(price, "price")
        if amount < 0:
            raise ValidationException("price must not be negative", field="price")
        rate = self.default_rate if commission_rate is None else self._validate_rate(commission_rate)
        return (amount * rate / _HUNDRED).quantize(_CENTS, rounding=ROUND_HALF_UP)

    @staticmethod
    def accumulate(current: Decimal | str | int | None, delta: Decimal) -> Decimal:
        """Add delta to the running total. Applying twice adds twice."""
        base = Decimal("0") if current is None else to_decimal(current, "affiliate_revenue")
        return (base + delta).quantize(_CENTS, rounding=ROUND_HALF_UP)
