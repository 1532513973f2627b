"""Tests for leave payment classification and slice valuation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_adjustments.calculators.leave_policy import (
    accumulate,
    build_leave_transaction,
    classify_payment,
    select_tier,
    validate_tier,
    validate_tier_schedule,
)
from payroll_adjustments.calculators.types import (
    LeavePayrollSummary,
    PaymentClassification,
    TierSpec,
    TransactionType,
)

TIERS = [
    TierSpec(from_day=1, to_day=5, payment_percentage=Decimal("100"), sort_order=1),
    TierSpec(from_day=6, to_day=10, payment_percentage=Decimal("50"), sort_order=2),
]
FULL_PAY = PaymentClassification(TransactionType.PAID_LEAVE, Decimal("100"))
HALF_PAY = PaymentClassification(TransactionType.PAID_LEAVE, Decimal("50"))
NO_PAY = PaymentClassification(TransactionType.UNPAID_DEDUCTION, Decimal("0"))


def _transaction(days: int, rate: str, classification: PaymentClassification):
    return build_leave_transaction(
        leave_request_id=uuid4(),
        leave_type_id=uuid4(),
        leave_type_name="Sick Leave",
        window=(date(2026, 3, 2), date(2026, 3, 11)),
        working_days=days,
        daily_rate=Decimal(rate),
        classification=classification,
    )


class TestClassifyPayment:
    """Payment method to transaction type and percentage."""

    @pytest.mark.parametrize("method", ["full_pay", "unpaid", "reduced_pay", "statutory", None])
    def test_unpaid_flag_wins_over_method(self, method):
        result = classify_payment(is_paid=False, payment_method=method, working_days=3, tiers=TIERS)
        assert result.transaction_type == TransactionType.UNPAID_DEDUCTION
        assert result.payment_percentage == Decimal("0")

    def test_unpaid_method(self):
        result = classify_payment(is_paid=True, payment_method="unpaid", working_days=3)
        assert result.transaction_type == TransactionType.UNPAID_DEDUCTION
        assert result.payment_percentage == Decimal("0")

    def test_full_pay(self):
        result = classify_payment(is_paid=True, payment_method="full_pay", working_days=3)
        assert result.transaction_type == TransactionType.PAID_LEAVE
        assert result.payment_percentage == Decimal("100")

    def test_unknown_method_is_full_pay(self):
        result = classify_payment(is_paid=True, payment_method="sabbatical", working_days=3)
        assert result.transaction_type == TransactionType.PAID_LEAVE
        assert result.payment_percentage == Decimal("100")

    def test_statutory(self):
        result = classify_payment(is_paid=True, payment_method="statutory", working_days=3)
        assert result.transaction_type == TransactionType.SICK_LEAVE_STATUTORY
        assert result.payment_percentage == Decimal("66")

    def test_reduced_pay_uses_matching_tier(self):
        result = classify_payment(
            is_paid=True, payment_method="reduced_pay", working_days=7, tiers=TIERS
        )
        assert result.transaction_type == TransactionType.PAID_LEAVE
        assert result.payment_percentage == Decimal("50")

    def test_reduced_pay_falls_back_to_default(self):
        # No tier covers 12 days
        result = classify_payment(
            is_paid=True, payment_method="reduced_pay", working_days=12, tiers=TIERS
        )
        assert result.payment_percentage == Decimal("50")

        result = classify_payment(
            is_paid=True,
            payment_method="reduced_pay",
            working_days=3,
            tiers=(),
            reduced_default_percentage=Decimal("75"),
        )
        assert result.payment_percentage == Decimal("75")


class TestSelectTier:
    """First tier by sort_order containing the day count."""

    def test_selects_second_tier_for_seven_days(self):
        tier = select_tier(TIERS, 7)
        assert tier is not None
        assert tier.payment_percentage == Decimal("50")

    def test_respects_sort_order_not_list_order(self):
        overlapping = [
            TierSpec(from_day=1, to_day=None, payment_percentage=Decimal("25"), sort_order=2),
            TierSpec(from_day=1, to_day=10, payment_percentage=Decimal("80"), sort_order=1),
        ]
        assert select_tier(overlapping, 4).payment_percentage == Decimal("80")
        assert select_tier(overlapping, 40).payment_percentage == Decimal("25")

    def test_no_match(self):
        assert select_tier(TIERS, 11) is None
        assert select_tier([], 1) is None


class TestTierValidation:
    """Single tier fields and schedule shape."""

    def test_valid_schedule(self):
        open_ended = TierSpec(
            from_day=11, to_day=None, payment_percentage=Decimal("0"), sort_order=3
        )
        assert validate_tier_schedule([*TIERS, open_ended]) == []
        assert validate_tier_schedule([]) == []

    def test_single_tier_fields(self):
        assert validate_tier(TIERS[0]) == []
        bad = TierSpec(from_day=5, to_day=2, payment_percentage=Decimal("101"), sort_order=1)
        assert validate_tier(bad) == [
            "To day cannot be before from day",
            "Payment percentage must be between 0 and 100",
        ]

    def test_overlap(self):
        overlapping = TierSpec(
            from_day=5, to_day=7, payment_percentage=Decimal("75"), sort_order=3
        )
        (error,) = validate_tier_schedule([*TIERS, overlapping])
        assert error == "Tier starting at day 5 overlaps or precedes days 6-10"

    def test_open_ended_must_be_last(self):
        tiers = [
            TierSpec(from_day=1, to_day=None, payment_percentage=Decimal("100"), sort_order=1),
            TierSpec(from_day=30, to_day=None, payment_percentage=Decimal("50"), sort_order=2),
        ]
        (error,) = validate_tier_schedule(tiers)
        assert "open-ended" in error

    def test_duplicate_sort_order(self):
        duplicate = TierSpec(
            from_day=11, to_day=20, payment_percentage=Decimal("25"), sort_order=2
        )
        (error,) = validate_tier_schedule([*TIERS, duplicate])
        assert error == "Sort order 2 is used by more than one tier"


class TestBuildLeaveTransaction:
    """Slice valuation."""

    def test_gross_and_net(self):
        txn = _transaction(7, "100", HALF_PAY)
        assert txn.gross_amount == Decimal("700.00")
        assert txn.net_amount == Decimal("350.00")
        assert txn.deduction_amount == Decimal("350.00")

    def test_amounts_rounded_half_up(self):
        txn = _transaction(
            3,
            "123.4567",
            PaymentClassification(TransactionType.SICK_LEAVE_STATUTORY, Decimal("66")),
        )
        assert txn.gross_amount == Decimal("370.37")
        assert txn.net_amount == Decimal("244.44")

    def test_description(self):
        txn = _transaction(8, "100", FULL_PAY)
        assert txn.description == "Sick Leave: 8 day(s) 2026-03-02 to 2026-03-11 at 100%"


class TestAccumulate:
    """Summary totals."""

    def _summary(self):
        return LeavePayrollSummary(
            employee_id=uuid4(),
            period_start=date(2026, 3, 1),
            period_end=date(2026, 3, 31),
            daily_rate=Decimal("100"),
        )

    def test_full_pay(self):
        summary = self._summary()
        accumulate(summary, _transaction(8, "100", FULL_PAY))
        assert summary.total_paid_leave_days == Decimal("8")
        assert summary.total_paid_leave_amount == Decimal("800.00")
        assert summary.total_unpaid_days == Decimal("0")
        assert summary.total_unpaid_deduction == Decimal("0")
        assert summary.has_leave

    def test_unpaid(self):
        summary = self._summary()
        accumulate(summary, _transaction(8, "100", NO_PAY))
        assert summary.total_unpaid_days == Decimal("8")
        assert summary.total_unpaid_deduction == Decimal("800.00")
        assert summary.total_paid_leave_days == Decimal("0")
        assert summary.total_paid_leave_amount == Decimal("0")

    def test_partially_paid_splits_days(self):
        summary = self._summary()
        accumulate(summary, _transaction(7, "100", HALF_PAY))
        assert summary.total_paid_leave_days == Decimal("3.5")
        assert summary.total_unpaid_days == Decimal("3.5")
        assert summary.total_paid_leave_amount == Decimal("350.00")
        assert summary.total_unpaid_deduction == Decimal("350.00")

    def test_multiple_transactions_add_up(self):
        summary = self._summary()
        accumulate(summary, _transaction(2, "100", FULL_PAY))
        accumulate(summary, _transaction(3, "100", NO_PAY))
        assert len(summary.transactions) == 2
        assert summary.total_paid_leave_amount == Decimal("200.00")
        assert summary.total_unpaid_deduction == Decimal("300.00")
