"""Retroactive pay API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from payroll_adjustments.api.dependencies import CompanyId, DbSession
from payroll_adjustments.api.schemas import (
    ApproveConfigRequest,
    DiscardCalculationsResponse,
    EmployeePendingRetroResponse,
    ErrorResponse,
    GenerateResponse,
    MarkProcessedRequest,
    MarkProcessedResponse,
    PendingRetroAmountResponse,
    RetroCalculationResponse,
    RetroCalculationSummaryResponse,
    RetroConfigCreate,
    RetroConfigItemCreate,
    RetroConfigItemResponse,
    RetroConfigItemUpdate,
    RetroConfigResponse,
    RetroConfigUpdate,
)
from payroll_adjustments.services import (
    RetroConfigService,
    RetroGenerationService,
    RetroPendingService,
)

router = APIRouter(prefix="/retro", tags=["retro"])


# ============================================================================
# Config administration
# ============================================================================


@router.get("/configs", response_model=list[RetroConfigResponse])
async def list_configs(
    db: DbSession,
    company_id: CompanyId,
    pay_group_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[RetroConfigResponse]:
    """List configs for a company, newest first."""
    configs = await RetroConfigService(db).list_configs(
        company_id, pay_group_id=pay_group_id, status=status_filter
    )
    return [RetroConfigResponse.model_validate(c) for c in configs]


@router.post(
    "/configs",
    response_model=RetroConfigResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_config(
    db: DbSession,
    company_id: CompanyId,
    payload: RetroConfigCreate,
) -> RetroConfigResponse:
    """Create a draft config."""
    config = await RetroConfigService(db).create_config(company_id, **payload.model_dump())
    await db.commit()
    return RetroConfigResponse.model_validate(config)


@router.get(
    "/configs/{config_id}",
    response_model=RetroConfigResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_config(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
) -> RetroConfigResponse:
    """Get a config with its items."""
    config = await RetroConfigService(db).get_config(company_id, config_id)
    return RetroConfigResponse.model_validate(config)


@router.patch(
    "/configs/{config_id}",
    response_model=RetroConfigResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_config(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
    payload: RetroConfigUpdate,
) -> RetroConfigResponse:
    """Update config fields; definition fields only while draft."""
    config = await RetroConfigService(db).update_config(
        company_id, config_id, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return RetroConfigResponse.model_validate(config)


@router.delete(
    "/configs/{config_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_config(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a draft config."""
    await RetroConfigService(db).delete_config(company_id, config_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/configs/{config_id}/items",
    response_model=RetroConfigItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_config_item(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
    payload: RetroConfigItemCreate,
) -> RetroConfigItemResponse:
    """Add a pay element increase to a draft config."""
    item = await RetroConfigService(db).add_config_item(
        company_id, config_id, **payload.model_dump()
    )
    await db.commit()
    return RetroConfigItemResponse.model_validate(item)


@router.patch(
    "/items/{config_item_id}",
    response_model=RetroConfigItemResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_config_item(
    db: DbSession,
    company_id: CompanyId,
    config_item_id: Annotated[UUID, Path()],
    payload: RetroConfigItemUpdate,
) -> RetroConfigItemResponse:
    """Update an item of a draft config."""
    item = await RetroConfigService(db).update_config_item(
        company_id, config_item_id, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return RetroConfigItemResponse.model_validate(item)


@router.delete(
    "/items/{config_item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_config_item(
    db: DbSession,
    company_id: CompanyId,
    config_item_id: Annotated[UUID, Path()],
) -> Response:
    """Remove an item from a draft config."""
    await RetroConfigService(db).delete_config_item(company_id, config_item_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/configs/{config_id}/approve",
    response_model=RetroConfigResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def approve_config(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
    payload: ApproveConfigRequest | None = None,
) -> RetroConfigResponse:
    """Approve a draft config."""
    approved_by = payload.approved_by if payload else None
    config = await RetroConfigService(db).approve_config(
        company_id, config_id, approved_by=approved_by
    )
    await db.commit()
    return RetroConfigResponse.model_validate(config)


@router.post(
    "/configs/{config_id}/cancel",
    response_model=RetroConfigResponse,
    responses={409: {"model": ErrorResponse}},
)
async def cancel_config(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
) -> RetroConfigResponse:
    """Cancel a config."""
    config = await RetroConfigService(db).cancel_config(company_id, config_id)
    await db.commit()
    return RetroConfigResponse.model_validate(config)


# ============================================================================
# Calculations
# ============================================================================


@router.post("/configs/{config_id}/generate", response_model=GenerateResponse)
async def generate_calculations(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
    force: bool = False,
) -> GenerateResponse:
    """Regenerate a config's calculations (full replace)."""
    result = await RetroGenerationService(db).generate_retroactive_calculations(
        company_id, config_id, force=force
    )
    if result.success:
        await db.commit()
    return GenerateResponse(
        success=result.success,
        count=result.count,
        total_adjustment=result.total_adjustment,
        error=result.error,
    )


@router.get(
    "/configs/{config_id}/calculations",
    response_model=list[RetroCalculationResponse],
)
async def list_calculations(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
    pay_year: int | None = None,
    employee_status: str | None = None,
) -> list[RetroCalculationResponse]:
    """List a config's calculations."""
    rows = await RetroGenerationService(db).get_calculations(
        company_id, config_id, pay_year=pay_year, employee_status=employee_status
    )
    return [RetroCalculationResponse.model_validate(row) for row in rows]


@router.delete(
    "/configs/{config_id}/calculations",
    response_model=DiscardCalculationsResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def discard_calculations(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
) -> DiscardCalculationsResponse:
    """Drop a draft config's calculations so its definition can change."""
    count = await RetroConfigService(db).discard_calculations(company_id, config_id)
    await db.commit()
    return DiscardCalculationsResponse(count=count)


@router.get(
    "/configs/{config_id}/summary",
    response_model=RetroCalculationSummaryResponse,
)
async def summarize_calculations(
    db: DbSession,
    company_id: CompanyId,
    config_id: Annotated[UUID, Path()],
    pay_year: int | None = None,
    employee_status: str | None = None,
) -> RetroCalculationSummaryResponse:
    """Calculation totals grouped by employee and (year, cycle)."""
    summary = await RetroGenerationService(db).summarize_calculations(
        company_id, config_id, pay_year=pay_year, employee_status=employee_status
    )
    return RetroCalculationSummaryResponse.model_validate(summary)


# ============================================================================
# Payroll run intake
# ============================================================================


@router.get("/pending", response_model=list[PendingRetroAmountResponse])
async def fetch_pending_amounts(
    db: DbSession,
    company_id: CompanyId,
    pay_group_id: Annotated[UUID, Query()],
    run_type: str | None = None,
    pay_period_id: UUID | None = None,
    include_manual: bool = False,
) -> list[PendingRetroAmountResponse]:
    """Pending retro totals per (employee, pay element) for a pay group."""
    amounts = await RetroPendingService(db).fetch_pending_retro_amounts(
        company_id,
        pay_group_id,
        run_type=run_type,
        pay_period_id=pay_period_id,
        include_manual=include_manual,
    )
    return [PendingRetroAmountResponse.model_validate(a) for a in amounts]


@router.get("/pending/{employee_id}", response_model=EmployeePendingRetroResponse)
async def fetch_employee_pending(
    db: DbSession,
    company_id: CompanyId,
    employee_id: Annotated[UUID, Path()],
    pay_group_id: Annotated[UUID, Query()],
    run_type: str | None = None,
    pay_period_id: UUID | None = None,
    include_manual: bool = False,
) -> EmployeePendingRetroResponse:
    """Pending retro breakdown for one employee."""
    breakdown = await RetroPendingService(db).fetch_employee_pending_retro(
        company_id,
        employee_id,
        pay_group_id,
        run_type=run_type,
        pay_period_id=pay_period_id,
        include_manual=include_manual,
    )
    return EmployeePendingRetroResponse.model_validate(breakdown)


@router.post("/mark-processed", response_model=MarkProcessedResponse)
async def mark_processed(
    db: DbSession,
    company_id: CompanyId,
    payload: MarkProcessedRequest,
) -> MarkProcessedResponse:
    """Mark an employee's pending calculations as consumed by a payroll run."""
    success = await RetroPendingService(db).mark_retro_as_processed(
        company_id, payload.employee_id, payload.pay_group_id, payload.payroll_run_id
    )
    if success:
        await db.commit()
    return MarkProcessedResponse(success=success)
