"""Leave calculation error taxonomy."""

from __future__ import annotations

from datetime import date
from uuid import UUID


class LeaveCalculationError(Exception):
    """Base class for leave impact failures."""


class InvalidRangeError(LeaveCalculationError):
    """Raised when a pay period range starts after it ends."""

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(f"Invalid date range: start {start} is after end {end}")


class LeaveDataUnavailableError(LeaveCalculationError):
    """Raised when leave data could not be read from the store."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Leave data unavailable: {reason}")


class PayPeriodNotFoundError(LeaveCalculationError):
    """Raised when a pay period does not exist for the company."""

    def __init__(self, pay_period_id: UUID):
        self.pay_period_id = pay_period_id
        super().__init__(f"Pay period {pay_period_id} not found")


class CompensationNotFoundError(LeaveCalculationError):
    """Raised when no primary active compensation covers the date."""

    def __init__(self, employee_id: UUID, as_of_date: date):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        super().__init__(
            f"No primary active compensation found for employee {employee_id} on {as_of_date}"
        )
