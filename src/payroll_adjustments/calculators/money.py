"""Decimal money helpers.

Rounding:
- Amounts persisted at 2 decimals, ROUND_HALF_UP
- Day weights and internal ratios kept at 4 decimals
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

PRECISION = Decimal("0.0001")
OUTPUT_PRECISION = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored amount (str, int, float, Decimal, None) to Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their shortest repr rather than binary noise
    return Decimal(str(value))


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(OUTPUT_PRECISION, rounding=ROUND_HALF_UP)


def round_internal(amount: Decimal) -> Decimal:
    """Round to the 4-decimal internal precision."""
    return amount.quantize(PRECISION, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Return ``percentage``% of ``amount`` rounded to cents."""
    return round_to_cents(amount * percentage / HUNDRED)
