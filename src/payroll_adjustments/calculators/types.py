"""Type definitions for the leave and retroactive pay calculation pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_adjustments.calculators.errors import LeaveCalculationError

ZERO = Decimal("0")


class PaymentMethod(str, Enum):
    """Leave type payment methods."""

    FULL_PAY = "full_pay"
    UNPAID = "unpaid"
    REDUCED_PAY = "reduced_pay"
    STATUTORY = "statutory"


class TransactionType(str, Enum):
    """Leave payroll transaction types."""

    UNPAID_DEDUCTION = "unpaid_deduction"
    PAID_LEAVE = "paid_leave"
    SICK_LEAVE_STATUTORY = "sick_leave_statutory"


class IncreaseType(str, Enum):
    """Retroactive increase types."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class TierSpec:
    """Plain view of a payment tier (day range -> percentage)."""

    from_day: int
    to_day: int | None  # None = open-ended
    payment_percentage: Decimal
    sort_order: int = 0

    def contains(self, day_count: int) -> bool:
        if day_count < self.from_day:
            return False
        return self.to_day is None or day_count <= self.to_day


@dataclass(frozen=True)
class PaymentClassification:
    """Payment outcome for a leave slice."""

    transaction_type: TransactionType
    payment_percentage: Decimal


@dataclass
class LeaveTransaction:
    """Computed leave transaction for one (leave request, pay period) overlap."""

    leave_request_id: UUID
    leave_type_id: UUID
    leave_type_name: str
    transaction_type: TransactionType
    start_date: date  # effective overlap window
    end_date: date
    days: int
    daily_rate: Decimal
    gross_amount: Decimal
    payment_percentage: Decimal
    net_amount: Decimal

    @property
    def deduction_amount(self) -> Decimal:
        """Portion of gross not paid."""
        return self.gross_amount - self.net_amount

    @property
    def description(self) -> str:
        return (
            f"{self.leave_type_name}: {self.days} day(s) "
            f"{self.start_date.isoformat()} to {self.end_date.isoformat()} "
            f"at {self.payment_percentage}%"
        )


@dataclass
class LeavePayrollSummary:
    """Leave impact on one employee's pay period."""

    employee_id: UUID
    period_start: date
    period_end: date
    daily_rate: Decimal
    hourly_rate: Decimal | None = None
    pay_period_id: UUID | None = None
    total_unpaid_days: Decimal = ZERO
    total_unpaid_deduction: Decimal = ZERO
    total_paid_leave_days: Decimal = ZERO
    total_paid_leave_amount: Decimal = ZERO
    transactions: list[LeaveTransaction] = field(default_factory=list)

    @property
    def has_leave(self) -> bool:
        return len(self.transactions) > 0


@dataclass
class LeaveImpactResult:
    """Either a summary or the error that prevented computing one."""

    summary: LeavePayrollSummary | None = None
    error: LeaveCalculationError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> LeavePayrollSummary:
        """Return the summary, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        assert self.summary is not None
        return self.summary

    @classmethod
    def ok(cls, summary: LeavePayrollSummary) -> LeaveImpactResult:
        return cls(summary=summary)

    @classmethod
    def failed(cls, error: LeaveCalculationError) -> LeaveImpactResult:
        return cls(error=error)


@dataclass(frozen=True)
class RetroItemSpec:
    """Plain view of a config item used by the adjustment calculator."""

    config_item_id: UUID
    pay_element_id: UUID
    pay_element_code: str
    increase_type: IncreaseType
    increase_value: Decimal
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


@dataclass
class RetroCalculationResult:
    """Result of generating retroactive calculations for a config."""

    success: bool
    count: int = 0
    total_adjustment: Decimal = ZERO
    calculations: list[Any] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> RetroCalculationResult:
        return cls(success=False, error=error)


@dataclass
class PendingRetroAmount:
    """Unprocessed retro total for one (employee, pay element)."""

    employee_id: UUID
    pay_element_id: UUID
    pay_element_code: str | None = None
    pay_element_name: str | None = None
    total_amount: Decimal = ZERO
    calculation_count: int = 0
    config_ids: list[UUID] = field(default_factory=list)


@dataclass
class PendingRetroItem:
    """Unprocessed retro total for one (config, pay element) of an employee."""

    config_id: UUID
    config_name: str
    pay_element_id: UUID
    pay_element_code: str | None = None
    pay_element_name: str | None = None
    amount: Decimal = ZERO
    calculation_count: int = 0


@dataclass
class EmployeePendingRetro:
    """Pending retro breakdown for one employee."""

    employee_id: UUID
    total: Decimal = ZERO
    items: list[PendingRetroItem] = field(default_factory=list)
