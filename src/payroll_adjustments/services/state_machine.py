"""Retroactive pay config state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from payroll_adjustments.models import RetroactivePayConfig


class RetroConfigStatus(str, Enum):
    """Retroactive pay config status values."""

    DRAFT = "draft"
    APPROVED = "approved"
    CANCELLED = "cancelled"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RetroConfigStateMachine:
    """State machine for retroactive pay config status transitions.

    Allowed transitions:
    - draft → approved
    - draft → cancelled
    - approved → cancelled
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        RetroConfigStatus.DRAFT.value: [
            RetroConfigStatus.APPROVED.value,
            RetroConfigStatus.CANCELLED.value,
        ],
        RetroConfigStatus.APPROVED.value: [RetroConfigStatus.CANCELLED.value],
        RetroConfigStatus.CANCELLED.value: [],  # Terminal state
    }

    # Statuses where definition fields and items can be edited
    DEFINITION_MUTABLE = {RetroConfigStatus.DRAFT.value}

    # Statuses where calculations may be (re)generated
    GENERATION_ALLOWED = {RetroConfigStatus.DRAFT.value, RetroConfigStatus.APPROVED.value}

    # Statuses whose calculations feed payroll runs
    PAYABLE = {RetroConfigStatus.APPROVED.value}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_edit_definition(cls, status: str) -> bool:
        return status in cls.DEFINITION_MUTABLE

    @classmethod
    def can_generate(cls, status: str) -> bool:
        return status in cls.GENERATION_ALLOWED

    @classmethod
    def is_payable(cls, status: str) -> bool:
        return status in cls.PAYABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_config_for_transition(
        cls, config: RetroactivePayConfig, to_status: str
    ) -> list[str]:
        """Validate a config for a specific transition, returning any errors."""
        errors: list[str] = []
        from_status = config.status

        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if to_status == RetroConfigStatus.APPROVED.value:
            if not config.items:
                errors.append("Config has no items")
            if config.effective_end_date < config.effective_start_date:
                errors.append("Effective end date is before start date")

        return errors
