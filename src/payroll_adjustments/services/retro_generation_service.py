"""Retroactive pay generation - materializes calculations for a config."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_adjustments.calculators.retro import compute_adjustment, matching_earnings
from payroll_adjustments.calculators.types import (
    ZERO,
    IncreaseType,
    RetroCalculationResult,
    RetroItemSpec,
)
from payroll_adjustments.database import try_config_lock
from payroll_adjustments.models import (
    FINALIZED_PAYROLL_STATUSES,
    Employee,
    EmployeePayroll,
    PayPeriod,
    RetroactivePayCalculation,
    RetroactivePayConfig,
    RetroactivePayConfigItem,
)
from payroll_adjustments.models.base import utcnow
from payroll_adjustments.services.state_machine import RetroConfigStateMachine

logger = logging.getLogger(__name__)


@dataclass
class YearCycleGroup:
    """Calculations of one employee within one (pay_year, cycle)."""

    pay_year: int
    pay_cycle_number: int
    calculations: list[RetroactivePayCalculation] = field(default_factory=list)
    total_original: Decimal = ZERO
    total_adjustment: Decimal = ZERO


@dataclass
class EmployeeRetroGroup:
    """All calculations of one employee for a config."""

    employee_id: UUID
    employee_name: str
    employee_number: str | None
    employee_status: str | None
    total_original: Decimal = ZERO
    total_adjustment: Decimal = ZERO
    cycles: list[YearCycleGroup] = field(default_factory=list)


@dataclass
class RetroCalculationSummary:
    """Review summary of a config's calculations."""

    config_id: UUID
    total_employees: int = 0
    active_employees: int = 0
    inactive_employees: int = 0
    total_original: Decimal = ZERO
    total_adjustment: Decimal = ZERO
    employees: list[EmployeeRetroGroup] = field(default_factory=list)


class RetroGenerationService:
    """Service for generating and reviewing retroactive pay calculations.

    Regeneration is a full replace: existing rows for the config are deleted
    and the new set inserted in the same transaction. Rows already consumed by
    a payroll run block regeneration unless ``force`` is set.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate_retroactive_calculations(
        self,
        company_id: UUID,
        config_id: UUID,
        force: bool = False,
    ) -> RetroCalculationResult:
        """Generate calculations for a config; never raises."""
        try:
            return await self._generate(company_id, config_id, force)
        except SQLAlchemyError as exc:
            logger.exception("Retro generation failed for config %s", config_id)
            await self.session.rollback()
            return RetroCalculationResult.failure(str(exc))

    async def _generate(
        self,
        company_id: UUID,
        config_id: UUID,
        force: bool,
    ) -> RetroCalculationResult:
        config = await self._load_config(company_id, config_id)
        if config is None:
            logger.warning("Retro config %s not found for company %s", config_id, company_id)
            return RetroCalculationResult.failure("Config not found")

        if not RetroConfigStateMachine.can_generate(config.status):
            return RetroCalculationResult.failure(
                f"Cannot generate calculations for a {config.status} config"
            )

        if not config.items:
            logger.warning("Retro config %s has no items", config_id)
            return RetroCalculationResult.failure("No config items found")

        periods = await self._get_periods_in_range(config)
        if not periods:
            logger.warning("Retro config %s has no pay periods in its effective range", config_id)
            return RetroCalculationResult.failure("No pay periods found in effective date range")

        if not await try_config_lock(self.session, config_id):
            return RetroCalculationResult.failure(
                "Calculation already in progress for this config"
            )

        processed_count = await self._count_processed(company_id, config_id)
        if processed_count and not force:
            return RetroCalculationResult.failure(
                f"{processed_count} calculation(s) already processed in payroll runs; "
                "regenerate with force to discard their processed history"
            )
        if processed_count:
            logger.warning(
                "Regenerating retro config %s discards %d processed calculation(s)",
                config_id,
                processed_count,
            )

        payrolls = await self._get_finalized_payrolls(company_id, list(periods))

        await self.session.execute(
            delete(RetroactivePayCalculation).where(
                RetroactivePayCalculation.company_id == company_id,
                RetroactivePayCalculation.config_id == config_id,
            )
        )

        items = [_item_spec(item) for item in config.items]
        calculation_date = utcnow()
        calculations: list[RetroactivePayCalculation] = []

        for payroll, employee_status in payrolls:
            period = periods[payroll.pay_period_id]
            earnings = payroll.earnings()
            for item in items:
                for original in matching_earnings(earnings, item.pay_element_code):
                    adjustment = compute_adjustment(item, original)
                    if adjustment <= ZERO:
                        continue
                    calculations.append(
                        RetroactivePayCalculation(
                            company_id=company_id,
                            config_id=config_id,
                            employee_id=payroll.employee_id,
                            pay_period_id=period.pay_period_id,
                            pay_year=period.pay_year,
                            pay_cycle_number=period.cycle_number,
                            pay_element_id=item.pay_element_id,
                            original_amount=original,
                            increase_type=item.increase_type.value,
                            increase_value=item.increase_value,
                            adjustment_amount=adjustment,
                            employee_status=employee_status,
                            calculation_date=calculation_date,
                        )
                    )

        self.session.add_all(calculations)
        await self.session.flush()

        total = sum((c.adjustment_amount for c in calculations), ZERO)
        logger.info(
            "Generated %d retro calculation(s) for config %s, total adjustment %s",
            len(calculations),
            config_id,
            total,
        )
        return RetroCalculationResult(
            success=True,
            count=len(calculations),
            total_adjustment=total,
            calculations=calculations,
        )

    async def get_calculations(
        self,
        company_id: UUID,
        config_id: UUID,
        pay_year: int | None = None,
        employee_status: str | None = None,
    ) -> list[RetroactivePayCalculation]:
        """List a config's calculations ordered by year, cycle and employee."""
        query = select(RetroactivePayCalculation).where(
            RetroactivePayCalculation.company_id == company_id,
            RetroactivePayCalculation.config_id == config_id,
        )
        if pay_year is not None:
            query = query.where(RetroactivePayCalculation.pay_year == pay_year)
        if employee_status is not None:
            query = query.where(RetroactivePayCalculation.employee_status == employee_status)

        result = await self.session.execute(
            query.options(selectinload(RetroactivePayCalculation.pay_element)).order_by(
                RetroactivePayCalculation.pay_year,
                RetroactivePayCalculation.pay_cycle_number,
                RetroactivePayCalculation.employee_id,
            )
        )
        return list(result.scalars().all())

    async def summarize_calculations(
        self,
        company_id: UUID,
        config_id: UUID,
        pay_year: int | None = None,
        employee_status: str | None = None,
    ) -> RetroCalculationSummary:
        """Group a config's calculations by employee, then by (year, cycle)."""
        calculations = await self.get_calculations(
            company_id, config_id, pay_year=pay_year, employee_status=employee_status
        )
        employees = await self._get_employees(company_id, {c.employee_id for c in calculations})

        groups: dict[UUID, EmployeeRetroGroup] = {}
        cycles: dict[tuple[UUID, int, int], YearCycleGroup] = {}

        for calc in calculations:
            group = groups.get(calc.employee_id)
            if group is None:
                employee = employees.get(calc.employee_id)
                group = EmployeeRetroGroup(
                    employee_id=calc.employee_id,
                    employee_name=employee.full_name if employee else "Unknown",
                    employee_number=employee.employee_number if employee else None,
                    employee_status=calc.employee_status,
                )
                groups[calc.employee_id] = group

            key = (calc.employee_id, calc.pay_year, calc.pay_cycle_number)
            cycle = cycles.get(key)
            if cycle is None:
                cycle = YearCycleGroup(
                    pay_year=calc.pay_year, pay_cycle_number=calc.pay_cycle_number
                )
                cycles[key] = cycle
                group.cycles.append(cycle)

            cycle.calculations.append(calc)
            cycle.total_original += calc.original_amount
            cycle.total_adjustment += calc.adjustment_amount
            group.total_original += calc.original_amount
            group.total_adjustment += calc.adjustment_amount

        ordered = sorted(groups.values(), key=lambda g: g.employee_name)
        for group in ordered:
            group.cycles.sort(key=lambda c: (c.pay_year, c.pay_cycle_number))

        active = sum(1 for g in ordered if g.employee_status == "active")
        return RetroCalculationSummary(
            config_id=config_id,
            total_employees=len(ordered),
            active_employees=active,
            inactive_employees=len(ordered) - active,
            total_original=sum((g.total_original for g in ordered), ZERO),
            total_adjustment=sum((g.total_adjustment for g in ordered), ZERO),
            employees=ordered,
        )

    async def _load_config(
        self, company_id: UUID, config_id: UUID
    ) -> RetroactivePayConfig | None:
        result = await self.session.execute(
            select(RetroactivePayConfig)
            .where(
                RetroactivePayConfig.company_id == company_id,
                RetroactivePayConfig.config_id == config_id,
            )
            .options(
                selectinload(RetroactivePayConfig.items).selectinload(
                    RetroactivePayConfigItem.pay_element
                )
            )
        )
        return result.scalar_one_or_none()

    async def _get_periods_in_range(
        self, config: RetroactivePayConfig
    ) -> dict[UUID, PayPeriod]:
        """Pay group periods falling entirely inside the effective range."""
        result = await self.session.execute(
            select(PayPeriod)
            .where(
                PayPeriod.company_id == config.company_id,
                PayPeriod.pay_group_id == config.pay_group_id,
                PayPeriod.period_start >= config.effective_start_date,
                PayPeriod.period_end <= config.effective_end_date,
            )
            .order_by(PayPeriod.period_start)
        )
        return {p.pay_period_id: p for p in result.scalars().all()}

    async def _get_finalized_payrolls(
        self,
        company_id: UUID,
        pay_period_ids: list[UUID],
    ) -> list[tuple[EmployeePayroll, str | None]]:
        """Finalized payroll rows for the periods with the employee's current status."""
        result = await self.session.execute(
            select(EmployeePayroll, Employee.status)
            .outerjoin(Employee, Employee.employee_id == EmployeePayroll.employee_id)
            .where(
                EmployeePayroll.company_id == company_id,
                EmployeePayroll.pay_period_id.in_(pay_period_ids),
                EmployeePayroll.status.in_(FINALIZED_PAYROLL_STATUSES),
            )
            .order_by(EmployeePayroll.employee_id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def _count_processed(self, company_id: UUID, config_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RetroactivePayCalculation)
            .where(
                RetroactivePayCalculation.company_id == company_id,
                RetroactivePayCalculation.config_id == config_id,
                RetroactivePayCalculation.processed_in_run_id.is_not(None),
            )
        )
        return int(result.scalar() or 0)

    async def _get_employees(
        self, company_id: UUID, employee_ids: set[UUID]
    ) -> dict[UUID, Employee]:
        if not employee_ids:
            return {}
        result = await self.session.execute(
            select(Employee).where(
                Employee.company_id == company_id,
                Employee.employee_id.in_(employee_ids),
            )
        )
        return {e.employee_id: e for e in result.scalars().all()}


def _item_spec(item: RetroactivePayConfigItem) -> RetroItemSpec:
    return RetroItemSpec(
        config_item_id=item.config_item_id,
        pay_element_id=item.pay_element_id,
        pay_element_code=item.pay_element.code,
        increase_type=IncreaseType(item.increase_type),
        increase_value=item.increase_value,
        min_amount=item.min_amount,
        max_amount=item.max_amount,
    )
