"""Leave payroll service - summaries and persistence of leave transactions."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_adjustments.calculators.errors import (
    CompensationNotFoundError,
    LeaveDataUnavailableError,
    PayPeriodNotFoundError,
)
from payroll_adjustments.calculators.leave_impact import LeaveImpactCalculator
from payroll_adjustments.calculators.money import round_to_cents
from payroll_adjustments.calculators.rate_resolver import RateResolver
from payroll_adjustments.calculators.types import LeaveImpactResult, LeaveTransaction
from payroll_adjustments.config import get_settings
from payroll_adjustments.models import LeavePayrollTransaction, PayPeriod

logger = logging.getLogger(__name__)


class LeavePayrollService:
    """Service for leave-to-payroll integration.

    Operations:
    - get_leave_payroll_summary: resolve period and rates, then compute leave impact
    - save_leave_transactions: persist computed transactions for a period/run
    - get_leave_transactions: list persisted transactions of a payroll run
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.calculator = LeaveImpactCalculator(session)
        self.rate_resolver = RateResolver(session)

    async def get_leave_payroll_summary(
        self,
        company_id: UUID,
        employee_id: UUID,
        pay_period_id: UUID,
    ) -> LeaveImpactResult:
        """Compute the leave summary for an employee's pay period.

        The daily rate comes from the employee's primary active compensation,
        annualized and divided by 260 working days.
        """
        try:
            period = await self._get_pay_period(company_id, pay_period_id)
            if period is None:
                return LeaveImpactResult.failed(PayPeriodNotFoundError(pay_period_id))

            rates = await self.rate_resolver.resolve_rates(
                company_id, employee_id, period.period_start
            )
        except CompensationNotFoundError as exc:
            logger.warning("%s", exc)
            return LeaveImpactResult.failed(exc)
        except SQLAlchemyError as exc:
            logger.exception("Failed to resolve pay period %s for leave summary", pay_period_id)
            return LeaveImpactResult.failed(LeaveDataUnavailableError(str(exc)))

        result = await self.calculator.calculate_leave_impact(
            company_id=company_id,
            employee_id=employee_id,
            period_start=period.period_start,
            period_end=period.period_end,
            daily_rate=rates.daily_rate,
            hourly_rate=rates.hourly_rate,
        )
        if result.summary is not None:
            result.summary.pay_period_id = pay_period_id
        return result

    async def save_leave_transactions(
        self,
        company_id: UUID,
        employee_id: UUID,
        pay_period_id: UUID,
        payroll_run_id: UUID | None,
        transactions: Sequence[LeaveTransaction],
        daily_rate: Decimal,
        hourly_rate: Decimal | None = None,
    ) -> bool:
        """Persist computed leave transactions in a single flush.

        Returns False (and rolls the session back) if the insert fails.
        """
        if not transactions:
            return True

        hours_per_day = self.settings.hours_per_workday
        rows = [
            LeavePayrollTransaction(
                company_id=company_id,
                employee_id=employee_id,
                pay_period_id=pay_period_id,
                payroll_run_id=payroll_run_id,
                leave_request_id=txn.leave_request_id,
                transaction_type=txn.transaction_type.value,
                leave_days=Decimal(txn.days),
                leave_hours=round_to_cents(Decimal(txn.days) * hours_per_day),
                daily_rate=daily_rate,
                hourly_rate=hourly_rate,
                gross_amount=round_to_cents(txn.gross_amount),
                payment_percentage=txn.payment_percentage,
                net_amount=round_to_cents(txn.net_amount),
                description=txn.description,
            )
            for txn in transactions
        ]

        try:
            self.session.add_all(rows)
            await self.session.flush()
        except SQLAlchemyError:
            logger.exception(
                "Failed to save %d leave transaction(s) for employee %s, period %s",
                len(rows),
                employee_id,
                pay_period_id,
            )
            await self.session.rollback()
            return False

        logger.info(
            "Saved %d leave transaction(s) for employee %s, period %s",
            len(rows),
            employee_id,
            pay_period_id,
        )
        return True

    async def get_leave_transactions(
        self,
        company_id: UUID,
        payroll_run_id: UUID,
    ) -> list[LeavePayrollTransaction]:
        """List a payroll run's leave transactions in creation order."""
        result = await self.session.execute(
            select(LeavePayrollTransaction)
            .where(
                LeavePayrollTransaction.company_id == company_id,
                LeavePayrollTransaction.payroll_run_id == payroll_run_id,
            )
            .order_by(LeavePayrollTransaction.created_at)
        )
        return list(result.scalars().all())

    async def _get_pay_period(self, company_id: UUID, pay_period_id: UUID) -> PayPeriod | None:
        result = await self.session.execute(
            select(PayPeriod).where(
                PayPeriod.company_id == company_id,
                PayPeriod.pay_period_id == pay_period_id,
            )
        )
        return result.scalar_one_or_none()
