"""Payroll adjustment services."""

from payroll_adjustments.services.leave_payroll_service import LeavePayrollService
from payroll_adjustments.services.leave_rule_service import (
    LeavePaymentRuleService,
    LeaveRuleError,
    LeaveRuleNotFoundError,
    LeaveRuleValidationError,
)
from payroll_adjustments.services.retro_config_service import (
    RetroConfigError,
    RetroConfigLockedError,
    RetroConfigNotFoundError,
    RetroConfigService,
    RetroConfigValidationError,
)
from payroll_adjustments.services.retro_generation_service import RetroGenerationService
from payroll_adjustments.services.retro_pending_service import RetroPendingService
from payroll_adjustments.services.state_machine import (
    InvalidTransitionError,
    RetroConfigStateMachine,
    RetroConfigStatus,
)

__all__ = [
    "LeavePayrollService",
    "LeavePaymentRuleService",
    "LeaveRuleError",
    "LeaveRuleNotFoundError",
    "LeaveRuleValidationError",
    "RetroConfigError",
    "RetroConfigLockedError",
    "RetroConfigNotFoundError",
    "RetroConfigService",
    "RetroConfigValidationError",
    "RetroGenerationService",
    "RetroPendingService",
    "InvalidTransitionError",
    "RetroConfigStateMachine",
    "RetroConfigStatus",
]
