"""Leave impact calculator - leave-to-payroll proration for one pay period."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_adjustments.calculators.errors import (
    InvalidRangeError,
    LeaveCalculationError,
    LeaveDataUnavailableError,
)
from payroll_adjustments.calculators.leave_policy import (
    accumulate,
    build_leave_transaction,
    classify_payment,
)
from payroll_adjustments.calculators.types import (
    LeaveImpactResult,
    LeavePayrollSummary,
    PaymentMethod,
    TierSpec,
)
from payroll_adjustments.calculators.workdays import count_working_days, overlap_window
from payroll_adjustments.config import get_settings
from payroll_adjustments.models import LeavePaymentRule, LeaveRequest, LeaveType

logger = logging.getLogger(__name__)

APPROVED = "approved"


class LeaveImpactCalculator:
    """Computes per-request leave transactions for an employee's pay period.

    Pipeline (per approved request overlapping the period):
    1) Clip the request to the period (effective overlap window)
    2) Count working days in the window; skip the request if zero
    3) Classify payment (unpaid / full / tiered reduced / statutory)
    4) Value the slice: gross = days x daily_rate, net = gross x percentage
    5) Accumulate summary totals

    Read failures are returned as LeaveDataUnavailableError, never as an
    empty summary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    async def calculate_leave_impact(
        self,
        company_id: UUID,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        daily_rate: Decimal,
        hourly_rate: Decimal | None = None,
    ) -> LeaveImpactResult:
        """Calculate leave impact for one employee and one pay period."""
        if period_start > period_end:
            return LeaveImpactResult.failed(InvalidRangeError(period_start, period_end))
        if daily_rate < 0:
            return LeaveImpactResult.failed(
                LeaveCalculationError(f"Daily rate must be non-negative, got {daily_rate}")
            )

        try:
            rows = await self._get_overlapping_requests(
                company_id, employee_id, period_start, period_end
            )
            reduced_type_ids = {
                leave_type.leave_type_id
                for _, leave_type in rows
                if leave_type.payment_method == PaymentMethod.REDUCED_PAY.value
            }
            tiers_by_type = await self._get_tiers_for_reduced_pay(
                company_id, reduced_type_ids, period_start
            )
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to load leave data for employee %s (%s to %s)",
                employee_id,
                period_start,
                period_end,
            )
            return LeaveImpactResult.failed(LeaveDataUnavailableError(str(exc)))

        summary = LeavePayrollSummary(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            daily_rate=daily_rate,
            hourly_rate=hourly_rate,
        )

        for request, leave_type in rows:
            window = overlap_window(request.start_date, request.end_date, period_start, period_end)
            if window is None:
                continue

            working_days = count_working_days(*window)
            if working_days == 0:
                continue

            classification = classify_payment(
                is_paid=leave_type.is_paid,
                payment_method=leave_type.payment_method,
                working_days=working_days,
                tiers=tiers_by_type.get(leave_type.leave_type_id, ()),
                statutory_percentage=self.settings.statutory_leave_percentage,
                reduced_default_percentage=self.settings.default_reduced_pay_percentage,
            )
            txn = build_leave_transaction(
                leave_request_id=request.leave_request_id,
                leave_type_id=leave_type.leave_type_id,
                leave_type_name=leave_type.name,
                window=window,
                working_days=working_days,
                daily_rate=daily_rate,
                classification=classification,
            )
            accumulate(summary, txn)

        logger.debug(
            "Leave impact for employee %s: %d transaction(s), unpaid deduction %s",
            employee_id,
            len(summary.transactions),
            summary.total_unpaid_deduction,
        )
        return LeaveImpactResult.ok(summary)

    async def _get_overlapping_requests(
        self,
        company_id: UUID,
        employee_id: UUID,
        period_start: date,
        period_end: date,
    ) -> list[tuple[LeaveRequest, LeaveType]]:
        """Approved requests whose range overlaps the period (inclusive)."""
        result = await self.session.execute(
            select(LeaveRequest, LeaveType)
            .join(LeaveType, LeaveType.leave_type_id == LeaveRequest.leave_type_id)
            .where(
                LeaveRequest.company_id == company_id,
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == APPROVED,
                LeaveRequest.start_date <= period_end,
                LeaveRequest.end_date >= period_start,
            )
            .order_by(LeaveRequest.start_date, LeaveRequest.created_at)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def _get_tiers_for_reduced_pay(
        self,
        company_id: UUID,
        leave_type_ids: set[UUID],
        as_of_date: date,
    ) -> dict[UUID, list[TierSpec]]:
        """Tiers of the active payment rule per reduced-pay leave type.

        When several rules cover the date, the latest start_date wins.
        """
        if not leave_type_ids:
            return {}

        result = await self.session.execute(
            select(LeavePaymentRule)
            .where(
                LeavePaymentRule.company_id == company_id,
                LeavePaymentRule.leave_type_id.in_(leave_type_ids),
                LeavePaymentRule.is_active.is_(True),
                LeavePaymentRule.start_date <= as_of_date,
                (
                    LeavePaymentRule.end_date.is_(None)
                    | (LeavePaymentRule.end_date >= as_of_date)
                ),
            )
            .options(selectinload(LeavePaymentRule.tiers))
            .order_by(LeavePaymentRule.start_date.desc())
        )

        tiers_by_type: dict[UUID, list[TierSpec]] = {}
        for rule in result.scalars().all():
            if rule.leave_type_id in tiers_by_type:
                continue
            tiers_by_type[rule.leave_type_id] = [
                TierSpec(
                    from_day=tier.from_day,
                    to_day=tier.to_day,
                    payment_percentage=tier.payment_percentage,
                    sort_order=tier.sort_order,
                )
                for tier in rule.tiers
            ]
        return tiers_by_type
