"""ORM models for the payroll adjustment engine."""

from payroll_adjustments.models.base import Base, TimestampMixin
from payroll_adjustments.models.company import (
    Company,
    Employee,
    EmployeeCompensation,
    PayElement,
    PayGroup,
    PayPeriod,
)
from payroll_adjustments.models.leave import (
    LeavePaymentRule,
    LeavePaymentTier,
    LeavePayrollTransaction,
    LeaveRequest,
    LeaveType,
)
from payroll_adjustments.models.payroll import (
    FINALIZED_PAYROLL_STATUSES,
    EmployeePayroll,
    PayrollRun,
)
from payroll_adjustments.models.retro import (
    RetroactivePayCalculation,
    RetroactivePayConfig,
    RetroactivePayConfigItem,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "Employee",
    "EmployeeCompensation",
    "PayElement",
    "PayGroup",
    "PayPeriod",
    "LeavePaymentRule",
    "LeavePaymentTier",
    "LeavePayrollTransaction",
    "LeaveRequest",
    "LeaveType",
    "FINALIZED_PAYROLL_STATUSES",
    "EmployeePayroll",
    "PayrollRun",
    "RetroactivePayCalculation",
    "RetroactivePayConfig",
    "RetroactivePayConfigItem",
]
