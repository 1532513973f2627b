"""Leave payment classification and slice valuation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from payroll_adjustments.calculators.money import (
    HUNDRED,
    percent_of,
    round_internal,
    round_to_cents,
)
from payroll_adjustments.calculators.types import (
    LeavePayrollSummary,
    LeaveTransaction,
    PaymentClassification,
    PaymentMethod,
    TierSpec,
    TransactionType,
)

FULL_PERCENTAGE = Decimal("100")
NO_PAY = Decimal("0")
DEFAULT_STATUTORY_PERCENTAGE = Decimal("66")
DEFAULT_REDUCED_PERCENTAGE = Decimal("50")


def select_tier(tiers: Iterable[TierSpec], working_days: int) -> TierSpec | None:
    """Return the first tier (by sort_order) whose day range contains ``working_days``.

    Only the current slice's day count is used; tiers are not cumulative
    across pay periods.
    """
    for tier in sorted(tiers, key=lambda t: t.sort_order):
        if tier.contains(working_days):
            return tier
    return None


def validate_tier(tier: TierSpec) -> list[str]:
    """Field checks for a single tier."""
    errors: list[str] = []
    if tier.from_day < 1:
        errors.append("From day must be at least 1")
    if tier.to_day is not None and tier.to_day < tier.from_day:
        errors.append("To day cannot be before from day")
    if tier.payment_percentage < NO_PAY or tier.payment_percentage > FULL_PERCENTAGE:
        errors.append("Payment percentage must be between 0 and 100")
    return errors


def validate_tier_schedule(tiers: Iterable[TierSpec]) -> list[str]:
    """Check that tiers are disjoint day ranges ascending in sort_order.

    An open-ended tier (``to_day=None``) can only be the last one.
    """
    errors: list[str] = []
    ordered = sorted(tiers, key=lambda t: t.sort_order)
    for previous, current in zip(ordered, ordered[1:]):
        if current.sort_order == previous.sort_order:
            errors.append(f"Sort order {current.sort_order} is used by more than one tier")
        elif previous.to_day is None:
            errors.append(
                f"Tier at sort order {previous.sort_order} is open-ended but is not the last tier"
            )
        elif current.from_day <= previous.to_day:
            errors.append(
                f"Tier starting at day {current.from_day} overlaps or precedes "
                f"days {previous.from_day}-{previous.to_day}"
            )
    return errors


def classify_payment(
    is_paid: bool,
    payment_method: str | None,
    working_days: int,
    tiers: Iterable[TierSpec] = (),
    statutory_percentage: Decimal = DEFAULT_STATUTORY_PERCENTAGE,
    reduced_default_percentage: Decimal = DEFAULT_REDUCED_PERCENTAGE,
) -> PaymentClassification:
    """Classify a leave slice into a transaction type and payment percentage.

    ``is_paid=False`` always wins over the payment method. Unknown or missing
    methods are treated as full pay.
    """
    if not is_paid or payment_method == PaymentMethod.UNPAID.value:
        return PaymentClassification(TransactionType.UNPAID_DEDUCTION, NO_PAY)

    if payment_method == PaymentMethod.REDUCED_PAY.value:
        tier = select_tier(tiers, working_days)
        percentage = tier.payment_percentage if tier is not None else reduced_default_percentage
        return PaymentClassification(TransactionType.PAID_LEAVE, Decimal(percentage))

    if payment_method == PaymentMethod.STATUTORY.value:
        return PaymentClassification(TransactionType.SICK_LEAVE_STATUTORY, statutory_percentage)

    return PaymentClassification(TransactionType.PAID_LEAVE, FULL_PERCENTAGE)


def build_leave_transaction(
    leave_request_id: UUID,
    leave_type_id: UUID,
    leave_type_name: str,
    window: tuple[date, date],
    working_days: int,
    daily_rate: Decimal,
    classification: PaymentClassification,
) -> LeaveTransaction:
    """Value one leave slice: gross = days x rate, net = gross x percentage."""
    gross = round_to_cents(Decimal(working_days) * daily_rate)
    net = percent_of(gross, classification.payment_percentage)
    return LeaveTransaction(
        leave_request_id=leave_request_id,
        leave_type_id=leave_type_id,
        leave_type_name=leave_type_name,
        transaction_type=classification.transaction_type,
        start_date=window[0],
        end_date=window[1],
        days=working_days,
        daily_rate=daily_rate,
        gross_amount=gross,
        payment_percentage=classification.payment_percentage,
        net_amount=net,
    )


def accumulate(summary: LeavePayrollSummary, txn: LeaveTransaction) -> None:
    """Fold a transaction into the summary totals.

    Unpaid days are weighted by the unpaid share for partially paid leave;
    paid days by the paid share.
    """
    days = Decimal(txn.days)
    paid_share = txn.payment_percentage / HUNDRED

    if txn.payment_percentage == NO_PAY:
        summary.total_unpaid_days += days
    elif txn.payment_percentage < FULL_PERCENTAGE:
        summary.total_unpaid_days += round_internal(days * (1 - paid_share))

    if txn.payment_percentage > NO_PAY:
        summary.total_paid_leave_days += round_internal(days * paid_share)
        summary.total_paid_leave_amount += txn.net_amount

    summary.total_unpaid_deduction += txn.deduction_amount
    summary.transactions.append(txn)
