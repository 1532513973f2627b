"""Retroactive pay configuration and calculation models."""

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
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_adjustments.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from payroll_adjustments.models.company import PayElement, PayGroup


class RetroactivePayConfig(Base, TimestampMixin):
    """Named pay increase definition scoped to a pay group and date range."""

    __tablename__ = "retroactive_pay_config"

    config_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
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
    config_name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    effective_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    effective_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    # Targeting
    target_run_types: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    target_pay_period_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("pay_period.pay_period_id"),
        nullable=True,
    )
    auto_include: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "effective_end_date >= effective_start_date",
            name="retroactive_pay_config_dates_check",
        ),
        CheckConstraint(
            "status IN ('draft', 'approved', 'cancelled')",
            name="retroactive_pay_config_status_check",
        ),
    )

    # Relationships
    pay_group: Mapped[PayGroup] = relationship()
    items: Mapped[list[RetroactivePayConfigItem]] = relationship(
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="RetroactivePayConfigItem.created_at",
    )

    def targets_run_type(self, run_type: str | None) -> bool:
        """Check the run-type restriction; an empty restriction matches every run."""
        if run_type is None or not self.target_run_types:
            return True
        return run_type in self.target_run_types

    def targets_pay_period(self, pay_period_id: UUID | None) -> bool:
        """Check the single-period restriction; it must match exactly when set."""
        if self.target_pay_period_id is None:
            return True
        return pay_period_id == self.target_pay_period_id


class RetroactivePayConfigItem(Base, TimestampMixin):
    """Increase applied to one pay element within a config."""

    __tablename__ = "retroactive_pay_config_item"

    config_item_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    config_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("retroactive_pay_config.config_id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_element_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("pay_element.pay_element_id"),
        nullable=False,
    )
    increase_type: Mapped[str] = mapped_column(String, nullable=False)
    increase_value: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    min_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    max_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "increase_type IN ('percentage', 'fixed')",
            name="retroactive_pay_config_item_type_check",
        ),
    )

    # Relationships
    config: Mapped[RetroactivePayConfig] = relationship(back_populates="items")
    pay_element: Mapped[PayElement] = relationship()


class RetroactivePayCalculation(Base, TimestampMixin):
    """Adjustment for one (config, employee, historical period, pay element)."""

    __tablename__ = "retroactive_pay_calculation"

    calculation_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    config_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("retroactive_pay_config.config_id", ondelete="CASCADE"),
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
    pay_year: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_element_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("pay_element.pay_element_id"),
        nullable=False,
    )
    original_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    increase_type: Mapped[str] = mapped_column(String, nullable=False)
    increase_value: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    adjustment_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    employee_status: Mapped[str | None] = mapped_column(String, nullable=True)
    calculation_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed_in_run_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payroll_run.payroll_run_id"),
        nullable=True,
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("adjustment_amount > 0", name="retroactive_pay_calculation_positive"),
        Index("ix_retro_calc_config", "config_id"),
        Index("ix_retro_calc_pending", "employee_id", "processed_in_run_id"),
    )

    # Relationships
    pay_element: Mapped[PayElement] = relationship()

    @property
    def is_pending(self) -> bool:
        """Pending until consumed by a payroll run."""
        return self.processed_in_run_id is None
