"""Retroactive adjustment arithmetic."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

from payroll_adjustments.calculators.money import percent_of, round_to_cents, to_decimal
from payroll_adjustments.calculators.types import ZERO, IncreaseType, RetroItemSpec

logger = logging.getLogger(__name__)


def apply_clamps(
    value: Decimal,
    min_amount: Decimal | None,
    max_amount: Decimal | None,
) -> Decimal:
    """Apply the min clamp, then the max clamp, each independently.

    With min > max the max clamp wins because it runs last.
    """
    if min_amount is not None and value < min_amount:
        value = min_amount
    if max_amount is not None and value > max_amount:
        value = max_amount
    return value


def compute_adjustment(item: RetroItemSpec, original_amount: Decimal) -> Decimal:
    """Compute the retro adjustment for one historical earning.

    percentage: original x value / 100
    fixed: value, provided the original earning is positive
    """
    if item.increase_type == IncreaseType.PERCENTAGE:
        adjustment = percent_of(original_amount, item.increase_value)
    elif item.increase_type == IncreaseType.FIXED:
        adjustment = round_to_cents(item.increase_value) if original_amount > ZERO else ZERO
    else:
        raise ValueError(f"Unknown increase type: {item.increase_type!r}")

    return round_to_cents(apply_clamps(adjustment, item.min_amount, item.max_amount))


def matching_earnings(earnings: Iterable[dict[str, Any]], code: str) -> list[Decimal]:
    """Amounts of earnings whose code matches a pay element code.

    Amounts that are not finite numbers are skipped with a warning.
    """
    amounts: list[Decimal] = []
    for earning in earnings:
        if earning.get("code") != code:
            continue
        raw = earning.get("amount")
        try:
            amount = to_decimal(raw)
        except InvalidOperation:
            logger.warning("Skipping %s earning with non-numeric amount %r", code, raw)
            continue
        if not amount.is_finite():
            logger.warning("Skipping %s earning with non-finite amount %r", code, raw)
            continue
        amounts.append(amount)
    return amounts
