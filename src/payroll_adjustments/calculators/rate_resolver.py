"""Daily and hourly rate derivation from compensation records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_adjustments.calculators.errors import CompensationNotFoundError
from payroll_adjustments.calculators.money import round_internal
from payroll_adjustments.models import EmployeeCompensation

logger = logging.getLogger(__name__)

WORKING_DAYS_PER_YEAR = Decimal("260")
WORKING_HOURS_PER_YEAR = Decimal("2080")

# Periods per year for each compensation frequency
ANNUALIZATION_FACTORS: dict[str, Decimal] = {
    "hourly": Decimal("2080"),
    "daily": Decimal("260"),
    "weekly": Decimal("52"),
    "biweekly": Decimal("26"),
    "semimonthly": Decimal("24"),
    "monthly": Decimal("12"),
    "annual": Decimal("1"),
}
DEFAULT_FREQUENCY = "monthly"


def annualize(amount: Decimal, frequency: str | None) -> Decimal:
    """Convert a per-frequency amount to an annual amount.

    Unknown frequencies are treated as monthly.
    """
    factor = ANNUALIZATION_FACTORS.get((frequency or "").lower())
    if factor is None:
        logger.warning("Unknown compensation frequency %r, treating as monthly", frequency)
        factor = ANNUALIZATION_FACTORS[DEFAULT_FREQUENCY]
    return amount * factor


@dataclass(frozen=True)
class DerivedRates:
    """Rates derived from an annualized salary."""

    annual_salary: Decimal
    daily_rate: Decimal
    hourly_rate: Decimal

    @classmethod
    def from_annual(cls, annual_salary: Decimal) -> DerivedRates:
        return cls(
            annual_salary=annual_salary,
            daily_rate=round_internal(annual_salary / WORKING_DAYS_PER_YEAR),
            hourly_rate=round_internal(annual_salary / WORKING_HOURS_PER_YEAR),
        )


class RateResolver:
    """Resolves an employee's daily/hourly rate from the primary active compensation.

    Selection: company-scoped, primary, active, effective on the as-of date;
    the latest start_date wins.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_rates(
        self,
        company_id: UUID,
        employee_id: UUID,
        as_of_date: date,
    ) -> DerivedRates:
        """Resolve rates for an employee.

        Raises:
            CompensationNotFoundError: If no primary active compensation covers the date
        """
        compensation = await self._get_primary_compensation(company_id, employee_id, as_of_date)
        if compensation is None:
            raise CompensationNotFoundError(employee_id, as_of_date)

        annual = annualize(compensation.amount, compensation.frequency)
        return DerivedRates.from_annual(annual)

    async def _get_primary_compensation(
        self,
        company_id: UUID,
        employee_id: UUID,
        as_of_date: date,
    ) -> EmployeeCompensation | None:
        result = await self.session.execute(
            select(EmployeeCompensation)
            .where(
                EmployeeCompensation.company_id == company_id,
                EmployeeCompensation.employee_id == employee_id,
                EmployeeCompensation.is_primary.is_(True),
                EmployeeCompensation.is_active.is_(True),
                EmployeeCompensation.start_date <= as_of_date,
                (
                    EmployeeCompensation.end_date.is_(None)
                    | (EmployeeCompensation.end_date >= as_of_date)
                ),
            )
            .order_by(EmployeeCompensation.start_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
