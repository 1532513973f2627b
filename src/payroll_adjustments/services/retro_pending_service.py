"""Pending retroactive amounts - payroll run intake and processed-marking."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_adjustments.calculators.types import (
    ZERO,
    EmployeePendingRetro,
    PendingRetroAmount,
    PendingRetroItem,
)
from payroll_adjustments.models import PayElement, RetroactivePayCalculation, RetroactivePayConfig
from payroll_adjustments.models.base import utcnow
from payroll_adjustments.services.state_machine import RetroConfigStatus

logger = logging.getLogger(__name__)


class RetroPendingService:
    """Service exposing unprocessed retro amounts to payroll runs.

    A calculation is pending while ``processed_in_run_id`` is NULL and
    becomes processed exactly once, via mark_retro_as_processed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_pending_retro_amounts(
        self,
        company_id: UUID,
        pay_group_id: UUID,
        run_type: str | None = None,
        pay_period_id: UUID | None = None,
        include_manual: bool = False,
    ) -> list[PendingRetroAmount]:
        """Sum pending calculations per (employee, pay element) for a pay group."""
        configs = await self.get_eligible_configs(
            company_id,
            pay_group_id,
            run_type=run_type,
            pay_period_id=pay_period_id,
            include_manual=include_manual,
        )
        if not configs:
            return []

        rows = await self._get_pending_rows(company_id, [c.config_id for c in configs])

        amounts: dict[tuple[UUID, UUID], PendingRetroAmount] = {}
        for calc, element in rows:
            key = (calc.employee_id, calc.pay_element_id)
            pending = amounts.get(key)
            if pending is None:
                pending = PendingRetroAmount(
                    employee_id=calc.employee_id,
                    pay_element_id=calc.pay_element_id,
                    pay_element_code=element.code if element else None,
                    pay_element_name=element.name if element else None,
                )
                amounts[key] = pending
            pending.total_amount += calc.adjustment_amount
            pending.calculation_count += 1
            if calc.config_id not in pending.config_ids:
                pending.config_ids.append(calc.config_id)

        return list(amounts.values())

    async def fetch_employee_pending_retro(
        self,
        company_id: UUID,
        employee_id: UUID,
        pay_group_id: UUID,
        run_type: str | None = None,
        pay_period_id: UUID | None = None,
        include_manual: bool = False,
    ) -> EmployeePendingRetro:
        """Pending calculations of one employee, itemized per (config, pay element)."""
        configs = await self.get_eligible_configs(
            company_id,
            pay_group_id,
            run_type=run_type,
            pay_period_id=pay_period_id,
            include_manual=include_manual,
        )
        breakdown = EmployeePendingRetro(employee_id=employee_id)
        if not configs:
            return breakdown

        names = {c.config_id: c.config_name for c in configs}
        rows = await self._get_pending_rows(company_id, list(names), employee_id=employee_id)

        items: dict[tuple[UUID, UUID], PendingRetroItem] = {}
        for calc, element in rows:
            key = (calc.config_id, calc.pay_element_id)
            item = items.get(key)
            if item is None:
                item = PendingRetroItem(
                    config_id=calc.config_id,
                    config_name=names[calc.config_id],
                    pay_element_id=calc.pay_element_id,
                    pay_element_code=element.code if element else None,
                    pay_element_name=element.name if element else None,
                )
                items[key] = item
            item.amount += calc.adjustment_amount
            item.calculation_count += 1

        breakdown.items = list(items.values())
        breakdown.total = sum((i.amount for i in breakdown.items), ZERO)
        return breakdown

    async def mark_retro_as_processed(
        self,
        company_id: UUID,
        employee_id: UUID,
        pay_group_id: UUID,
        payroll_run_id: UUID,
    ) -> bool:
        """Mark an employee's pending calculations as consumed by a run.

        Only rows still pending are touched, so repeated calls are no-ops.
        """
        try:
            result = await self.session.execute(
                select(RetroactivePayCalculation.calculation_id)
                .join(
                    RetroactivePayConfig,
                    RetroactivePayConfig.config_id == RetroactivePayCalculation.config_id,
                )
                .where(
                    RetroactivePayConfig.company_id == company_id,
                    RetroactivePayConfig.pay_group_id == pay_group_id,
                    RetroactivePayConfig.status == RetroConfigStatus.APPROVED.value,
                    RetroactivePayCalculation.company_id == company_id,
                    RetroactivePayCalculation.employee_id == employee_id,
                    RetroactivePayCalculation.processed_in_run_id.is_(None),
                )
            )
            calculation_ids = list(result.scalars().all())
            if calculation_ids:
                await self.session.execute(
                    update(RetroactivePayCalculation)
                    .where(
                        RetroactivePayCalculation.calculation_id.in_(calculation_ids),
                        RetroactivePayCalculation.processed_in_run_id.is_(None),
                    )
                    .values(processed_in_run_id=payroll_run_id, processed_at=utcnow())
                )
        except SQLAlchemyError:
            logger.exception(
                "Failed to mark retro calculations processed for employee %s, run %s",
                employee_id,
                payroll_run_id,
            )
            await self.session.rollback()
            return False

        logger.info(
            "Marked %d retro calculation(s) processed for employee %s in run %s",
            len(calculation_ids),
            employee_id,
            payroll_run_id,
        )
        return True

    async def get_eligible_configs(
        self,
        company_id: UUID,
        pay_group_id: UUID,
        run_type: str | None = None,
        pay_period_id: UUID | None = None,
        include_manual: bool = False,
    ) -> list[RetroactivePayConfig]:
        """Approved configs of a pay group that target this run.

        Manual configs (auto_include=False) are skipped unless include_manual.
        A config restricted to run types must list run_type; a config bound
        to a pay period requires the same pay_period_id.
        """
        query = select(RetroactivePayConfig).where(
            RetroactivePayConfig.company_id == company_id,
            RetroactivePayConfig.pay_group_id == pay_group_id,
            RetroactivePayConfig.status == RetroConfigStatus.APPROVED.value,
        )
        if not include_manual:
            query = query.where(RetroactivePayConfig.auto_include.is_(True))

        result = await self.session.execute(
            query.order_by(RetroactivePayConfig.effective_start_date)
        )
        return [
            config
            for config in result.scalars().all()
            if config.targets_run_type(run_type) and config.targets_pay_period(pay_period_id)
        ]

    async def _get_pending_rows(
        self,
        company_id: UUID,
        config_ids: list[UUID],
        employee_id: UUID | None = None,
    ) -> list[tuple[RetroactivePayCalculation, PayElement | None]]:
        query = (
            select(RetroactivePayCalculation, PayElement)
            .outerjoin(
                PayElement,
                PayElement.pay_element_id == RetroactivePayCalculation.pay_element_id,
            )
            .where(
                RetroactivePayCalculation.company_id == company_id,
                RetroactivePayCalculation.config_id.in_(config_ids),
                RetroactivePayCalculation.processed_in_run_id.is_(None),
            )
        )
        if employee_id is not None:
            query = query.where(RetroactivePayCalculation.employee_id == employee_id)

        result = await self.session.execute(
            query.order_by(
                RetroactivePayCalculation.employee_id,
                RetroactivePayCalculation.pay_year,
                RetroactivePayCalculation.pay_cycle_number,
            )
        )
        return [(row[0], row[1]) for row in result.all()]
