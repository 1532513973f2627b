"""Company, pay group, pay element and employee reference models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_adjustments.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from payroll_adjustments.models.leave import LeaveRequest


class Company(Base, TimestampMixin):
    """Tenant boundary; every scoped row carries a company_id."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False, default="US")
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PayGroup(Base, TimestampMixin):
    """Set of employees sharing a payroll calendar."""

    __tablename__ = "pay_group"

    pay_group_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    pay_frequency: Mapped[str] = mapped_column(String, nullable=False, default="monthly")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="pay_group_company_code_unique"),
    )

    # Relationships
    periods: Mapped[list[PayPeriod]] = relationship(back_populates="pay_group")


class PayPeriod(Base, TimestampMixin):
    """Pay period instance within a pay group calendar."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_group_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("pay_group.pay_group_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    pay_year: Mapped[int] = mapped_column(Integer, nullable=False)
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")

    __table_args__ = (
        UniqueConstraint(
            "pay_group_id",
            "period_start",
            "period_end",
            name="pay_period_group_dates_unique",
        ),
        CheckConstraint("period_end >= period_start", name="pay_period_dates_check"),
    )

    # Relationships
    pay_group: Mapped[PayGroup] = relationship(back_populates="periods")


class PayElement(Base, TimestampMixin):
    """Named payroll line-item category (base salary, overtime, ...)."""

    __tablename__ = "pay_element"

    pay_element_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    element_type: Mapped[str] = mapped_column(String, nullable=False, default="earning")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="pay_element_company_code_unique"),
    )


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_group_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("pay_group.pay_group_id"),
        nullable=True,
    )
    employee_number: Mapped[str | None] = mapped_column(String, nullable=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'terminated', 'on_leave')",
            name="employee_status_check",
        ),
    )

    # Relationships
    compensation: Mapped[list[EmployeeCompensation]] = relationship(back_populates="employee")
    leave_requests: Mapped[list[LeaveRequest]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class EmployeeCompensation(Base, TimestampMixin):
    """Compensation record; the primary active one drives daily rate derivation."""

    __tablename__ = "employee_compensation"

    compensation_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
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
    pay_element_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("pay_element.pay_element_id"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    frequency: Mapped[str] = mapped_column(String, nullable=False, default="monthly")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="employee_compensation_dates_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="compensation")

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if compensation is in effect on a given date."""
        if not self.is_active:
            return False
        if self.start_date > as_of_date:
            return False
        if self.end_date is not None and self.end_date < as_of_date:
            return False
        return True
