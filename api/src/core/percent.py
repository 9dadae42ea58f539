"""Percentage helpers shared by progress, quiz scoring and stats."""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal


PERCENT_MIN = Decimal(0)
PERCENT_MAX = Decimal(100)
_CENTS = Decimal("0.01")


def quantize_percent(value: Decimal | int | float) -> Decimal:
    """Round to two decimal places (matches DECIMAL(5,2) semantics)."""
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def is_valid_percent(value: Decimal | int | float) -> bool:
    """Check that a value lies within [0, 100]."""
    return PERCENT_MIN <= Decimal(str(value)) <= PERCENT_MAX


def ratio_percent(part: int | Decimal, whole: int | Decimal) -> Decimal:
    """Return 100 * part / whole, or 0 when whole is 0."""
    if not whole:
        return quantize_percent(0)
    return quantize_percent(Decimal(part) * PERCENT_MAX / Decimal(whole))


def mean_percent(values: Iterable[Decimal]) -> Decimal:
    """Arithmetic mean of percentages, 0 for an empty input."""
    items = [Decimal(v) for v in values]
    if not items:
        return quantize_percent(0)
    return quantize_percent(sum(items, Decimal(0)) / len(items))
