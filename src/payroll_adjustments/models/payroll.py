"""Payroll run and finalized employee payroll models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from payroll_adjustments.models.base import Base, JSONType, TimestampMixin

# Employee payroll statuses eligible for retroactive adjustment
FINALIZED_PAYROLL_STATUSES = ("calculated", "approved", "paid")


class PayrollRun(Base, TimestampMixin):
    """Payroll run that consumes leave transactions and pending retro amounts."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_group_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("pay_group.pay_group_id"),
        nullable=False,
    )
    pay_period_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("pay_period.pay_period_id"),
        nullable=False,
    )
    run_type: Mapped[str] = mapped_column(String, nullable=False, default="regular")
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "run_type IN ('regular', 'off_cycle', 'supplemental', 'bonus', 'correction')",
            name="payroll_run_type_check",
        ),
    )


class EmployeePayroll(Base, TimestampMixin):
    """Historical payroll record per employee per pay period.

    ``calculation_details`` holds ``{"earnings": [{"code": ..., "amount": ...}, ...]}``.
    """

    __tablename__ = "employee_payroll"

    employee_payroll_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_period_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("pay_period.pay_period_id"),
        nullable=False,
    )
    payroll_run_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payroll_run.payroll_run_id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    calculation_details: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    def earnings(self) -> list[dict[str, Any]]:
        """Return the earnings array, tolerating missing or malformed details."""
        details = self.calculation_details or {}
        earnings = details.get("earnings") if isinstance(details, dict) else None
        if not isinstance(earnings, list):
            return []
        return [e for e in earnings if isinstance(e, dict)]
