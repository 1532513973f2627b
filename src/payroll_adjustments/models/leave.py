"""Leave type, payment rule, leave request and leave payroll transaction models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_adjustments.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from payroll_adjustments.models.company import Employee


# ===== Leave Policy =====


class LeaveType(Base, TimestampMixin):
    """Leave policy metadata."""

    __tablename__ = "leave_type"

    leave_type_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    payment_method: Mapped[str] = mapped_column(String, nullable=False, default="full_pay")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="leave_type_company_code_unique"),
        CheckConstraint(
            "payment_method IN ('full_pay', 'unpaid', 'reduced_pay', 'statutory')",
            name="leave_type_payment_method_check",
        ),
    )

    # Relationships
    payment_rules: Mapped[list[LeavePaymentRule]] = relationship(back_populates="leave_type")


class LeavePaymentRule(Base, TimestampMixin):
    """Tiered payment schedule for a reduced-pay leave type."""

    __tablename__ = "leave_payment_rule"

    leave_payment_rule_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("leave_type.leave_type_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="leave_payment_rule_dates_check",
        ),
    )

    # Relationships
    leave_type: Mapped[LeaveType] = relationship(back_populates="payment_rules")
    tiers: Mapped[list[LeavePaymentTier]] = relationship(
        back_populates="rule",
        order_by="LeavePaymentTier.sort_order",
        cascade="all, delete-orphan",
    )


class LeavePaymentTier(Base, TimestampMixin):
    """Day range and payment percentage within a payment rule."""

    __tablename__ = "leave_payment_tier"

    leave_payment_tier_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    leave_payment_rule_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("leave_payment_rule.leave_payment_rule_id", ondelete="CASCADE"),
        nullable=False,
    )
    from_day: Mapped[int] = mapped_column(Integer, nullable=False)
    to_day: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = open-ended
    payment_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("from_day >= 1", name="leave_payment_tier_from_day_check"),
        CheckConstraint(
            "to_day IS NULL OR to_day >= from_day",
            name="leave_payment_tier_range_check",
        ),
        CheckConstraint(
            "payment_percentage >= 0 AND payment_percentage <= 100",
            name="leave_payment_tier_percentage_check",
        ),
    )

    # Relationships
    rule: Mapped[LeavePaymentRule] = relationship(back_populates="tiers")


# ===== Leave Requests =====


class LeaveRequest(Base, TimestampMixin):
    """Absence request; only approved requests reach payroll."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
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
    leave_type_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("leave_type.leave_type_id"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
        CheckConstraint(
            "status IN ('draft', 'pending', 'approved', 'rejected', 'cancelled')",
            name="leave_request_status_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="leave_requests")
    leave_type: Mapped[LeaveType] = relationship()


class LeavePayrollTransaction(Base, TimestampMixin):
    """Persisted leave transaction for one (leave request, pay period) overlap."""

    __tablename__ = "leave_payroll_transaction"

    leave_payroll_transaction_id: Mapped[UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid4
    )
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
    leave_request_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("leave_request.leave_request_id"),
        nullable=False,
    )
    transaction_type: Mapped[str] = mapped_column(String, nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    leave_hours: Mapped[Decimal] = mapped_column(Numeric(9, 2), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("leave_days >= 0", name="leave_payroll_transaction_days_check"),
        CheckConstraint(
            "payment_percentage >= 0 AND payment_percentage <= 100",
            name="leave_payroll_transaction_percentage_check",
        ),
    )
