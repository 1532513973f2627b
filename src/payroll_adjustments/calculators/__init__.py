"""Leave proration and retroactive pay calculators."""

from payroll_adjustments.calculators.errors import (
    CompensationNotFoundError,
    InvalidRangeError,
    LeaveCalculationError,
    LeaveDataUnavailableError,
    PayPeriodNotFoundError,
)
from payroll_adjustments.calculators.leave_impact import LeaveImpactCalculator
from payroll_adjustments.calculators.rate_resolver import RateResolver, annualize
from payroll_adjustments.calculators.retro import compute_adjustment
from payroll_adjustments.calculators.types import (
    LeaveImpactResult,
    LeavePayrollSummary,
    LeaveTransaction,
    RetroCalculationResult,
)

__all__ = [
    "CompensationNotFoundError",
    "InvalidRangeError",
    "LeaveCalculationError",
    "LeaveDataUnavailableError",
    "PayPeriodNotFoundError",
    "LeaveImpactCalculator",
    "RateResolver",
    "annualize",
    "compute_adjustment",
    "LeaveImpactResult",
    "LeavePayrollSummary",
    "LeaveTransaction",
    "RetroCalculationResult",
]
