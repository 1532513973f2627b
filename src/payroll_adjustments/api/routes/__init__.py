"""API routes."""

from payroll_adjustments.api.routes.health import router as health_router
from payroll_adjustments.api.routes.leave import router as leave_router
from payroll_adjustments.api.routes.retro import router as retro_router

__all__ = ["health_router", "leave_router", "retro_router"]
