"""Leave payroll API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from payroll_adjustments.api.dependencies import CompanyId, DbSession
from payroll_adjustments.api.schemas import (
    ErrorResponse,
    LeaveImpactRequest,
    LeavePaymentRuleCreate,
    LeavePaymentRuleResponse,
    LeavePaymentRuleUpdate,
    LeavePaymentTierCreate,
    LeavePaymentTierResponse,
    LeavePaymentTierUpdate,
    LeavePayrollSummaryResponse,
    LeavePayrollTransactionResponse,
    SaveLeaveTransactionsRequest,
    SaveLeaveTransactionsResponse,
)
from payroll_adjustments.calculators import (
    CompensationNotFoundError,
    InvalidRangeError,
    LeaveCalculationError,
    LeaveDataUnavailableError,
    LeaveImpactCalculator,
    PayPeriodNotFoundError,
)
from payroll_adjustments.services import LeavePaymentRuleService, LeavePayrollService

router = APIRouter(prefix="/leave", tags=["leave"])


def _raise_for_leave_error(error: LeaveCalculationError) -> None:
    """Map a leave calculation error to an HTTP error."""
    if isinstance(error, (PayPeriodNotFoundError, CompensationNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, LeaveDataUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, InvalidRangeError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    raise HTTPException(status_code=code, detail=str(error))


@router.post(
    "/impact",
    response_model=LeavePayrollSummaryResponse,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def calculate_leave_impact(
    db: DbSession,
    company_id: CompanyId,
    payload: LeaveImpactRequest,
) -> LeavePayrollSummaryResponse:
    """Calculate leave impact for an explicit date range and daily rate."""
    calculator = LeaveImpactCalculator(db)
    result = await calculator.calculate_leave_impact(
        company_id=company_id,
        employee_id=payload.employee_id,
        period_start=payload.period_start,
        period_end=payload.period_end,
        daily_rate=payload.daily_rate,
        hourly_rate=payload.hourly_rate,
    )
    if result.error is not None:
        _raise_for_leave_error(result.error)
    return LeavePayrollSummaryResponse.model_validate(result.summary)


@router.get(
    "/summary",
    response_model=LeavePayrollSummaryResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def get_leave_payroll_summary(
    db: DbSession,
    company_id: CompanyId,
    employee_id: Annotated[UUID, Query()],
    pay_period_id: Annotated[UUID, Query()],
) -> LeavePayrollSummaryResponse:
    """Leave summary for an employee's pay period, rates derived from compensation."""
    service = LeavePayrollService(db)
    result = await service.get_leave_payroll_summary(company_id, employee_id, pay_period_id)
    if result.error is not None:
        _raise_for_leave_error(result.error)
    return LeavePayrollSummaryResponse.model_validate(result.summary)


@router.post(
    "/transactions",
    response_model=SaveLeaveTransactionsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def save_leave_transactions(
    db: DbSession,
    company_id: CompanyId,
    payload: SaveLeaveTransactionsRequest,
) -> SaveLeaveTransactionsResponse:
    """Compute an employee's leave transactions for a period and persist them."""
    service = LeavePayrollService(db)
    result = await service.get_leave_payroll_summary(
        company_id, payload.employee_id, payload.pay_period_id
    )
    if result.error is not None:
        _raise_for_leave_error(result.error)

    summary = result.unwrap()
    saved = await service.save_leave_transactions(
        company_id=company_id,
        employee_id=payload.employee_id,
        pay_period_id=payload.pay_period_id,
        payroll_run_id=payload.payroll_run_id,
        transactions=summary.transactions,
        daily_rate=summary.daily_rate,
        hourly_rate=summary.hourly_rate,
    )
    if not saved:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save leave transactions",
        )
    await db.commit()
    return SaveLeaveTransactionsResponse(success=True, count=len(summary.transactions))


@router.get(
    "/transactions",
    response_model=list[LeavePayrollTransactionResponse],
)
async def list_leave_transactions(
    db: DbSession,
    company_id: CompanyId,
    payroll_run_id: Annotated[UUID, Query()],
) -> list[LeavePayrollTransactionResponse]:
    """List persisted leave transactions of a payroll run."""
    service = LeavePayrollService(db)
    rows = await service.get_leave_transactions(company_id, payroll_run_id)
    return [LeavePayrollTransactionResponse.model_validate(row) for row in rows]


# ============================================================================
# Payment rules
# ============================================================================


@router.get("/payment-rules", response_model=list[LeavePaymentRuleResponse])
async def list_payment_rules(
    db: DbSession,
    company_id: CompanyId,
    leave_type_id: UUID | None = None,
) -> list[LeavePaymentRuleResponse]:
    """List payment rules with their tiers."""
    rules = await LeavePaymentRuleService(db).list_rules(company_id, leave_type_id=leave_type_id)
    return [LeavePaymentRuleResponse.model_validate(r) for r in rules]


@router.post(
    "/payment-rules",
    response_model=LeavePaymentRuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_payment_rule(
    db: DbSession,
    company_id: CompanyId,
    payload: LeavePaymentRuleCreate,
) -> LeavePaymentRuleResponse:
    """Create a payment rule for a leave type."""
    rule = await LeavePaymentRuleService(db).create_rule(company_id, **payload.model_dump())
    await db.commit()
    return LeavePaymentRuleResponse.model_validate(rule)


@router.get(
    "/payment-rules/{rule_id}",
    response_model=LeavePaymentRuleResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payment_rule(
    db: DbSession,
    company_id: CompanyId,
    rule_id: Annotated[UUID, Path()],
) -> LeavePaymentRuleResponse:
    rule = await LeavePaymentRuleService(db).get_rule(company_id, rule_id)
    return LeavePaymentRuleResponse.model_validate(rule)


@router.patch(
    "/payment-rules/{rule_id}",
    response_model=LeavePaymentRuleResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_payment_rule(
    db: DbSession,
    company_id: CompanyId,
    rule_id: Annotated[UUID, Path()],
    payload: LeavePaymentRuleUpdate,
) -> LeavePaymentRuleResponse:
    rule = await LeavePaymentRuleService(db).update_rule(
        company_id, rule_id, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return LeavePaymentRuleResponse.model_validate(rule)


@router.delete(
    "/payment-rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payment_rule(
    db: DbSession,
    company_id: CompanyId,
    rule_id: Annotated[UUID, Path()],
) -> Response:
    await LeavePaymentRuleService(db).delete_rule(company_id, rule_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/payment-rules/{rule_id}/tiers",
    response_model=LeavePaymentTierResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_payment_tier(
    db: DbSession,
    company_id: CompanyId,
    rule_id: Annotated[UUID, Path()],
    payload: LeavePaymentTierCreate,
) -> LeavePaymentTierResponse:
    """Add a tier; overlapping day ranges are rejected."""
    tier = await LeavePaymentRuleService(db).add_tier(company_id, rule_id, **payload.model_dump())
    await db.commit()
    return LeavePaymentTierResponse.model_validate(tier)


@router.patch(
    "/payment-tiers/{tier_id}",
    response_model=LeavePaymentTierResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_payment_tier(
    db: DbSession,
    company_id: CompanyId,
    tier_id: Annotated[UUID, Path()],
    payload: LeavePaymentTierUpdate,
) -> LeavePaymentTierResponse:
    tier = await LeavePaymentRuleService(db).update_tier(
        company_id, tier_id, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return LeavePaymentTierResponse.model_validate(tier)


@router.delete(
    "/payment-tiers/{tier_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payment_tier(
    db: DbSession,
    company_id: CompanyId,
    tier_id: Annotated[UUID, Path()],
) -> Response:
    await LeavePaymentRuleService(db).delete_tier(company_id, tier_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
