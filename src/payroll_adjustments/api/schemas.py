"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_adjustments.calculators.types import TransactionType


class ErrorResponse(BaseModel):
    """Error payload."""

    detail: str
    code: str | None = None


# ============================================================================
# Leave schemas
# ============================================================================


class LeaveImpactRequest(BaseModel):
    """Ad-hoc leave impact calculation for a date range and daily rate."""

    employee_id: UUID
    period_start: date
    period_end: date
    daily_rate: Decimal = Field(ge=0)
    hourly_rate: Decimal | None = Field(default=None, ge=0)


class LeaveTransactionResponse(BaseModel):
    """Computed (unsaved) leave transaction."""

    model_config = ConfigDict(from_attributes=True)

    leave_request_id: UUID
    leave_type_id: UUID
    leave_type_name: str
    transaction_type: TransactionType
    start_date: date
    end_date: date
    days: int
    daily_rate: Decimal
    gross_amount: Decimal
    payment_percentage: Decimal
    net_amount: Decimal


class LeavePayrollSummaryResponse(BaseModel):
    """Leave impact on one employee's pay period."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    pay_period_id: UUID | None = None
    period_start: date
    period_end: date
    daily_rate: Decimal
    hourly_rate: Decimal | None = None
    total_unpaid_days: Decimal
    total_unpaid_deduction: Decimal
    total_paid_leave_days: Decimal
    total_paid_leave_amount: Decimal
    transactions: list[LeaveTransactionResponse]


class SaveLeaveTransactionsRequest(BaseModel):
    """Compute and persist an employee's leave transactions for a pay period."""

    employee_id: UUID
    pay_period_id: UUID
    payroll_run_id: UUID | None = None


class SaveLeaveTransactionsResponse(BaseModel):
    """Outcome of persisting leave transactions."""

    success: bool
    count: int


class LeavePayrollTransactionResponse(BaseModel):
    """Persisted leave payroll transaction."""

    model_config = ConfigDict(from_attributes=True)

    leave_payroll_transaction_id: UUID
    employee_id: UUID
    pay_period_id: UUID
    payroll_run_id: UUID | None = None
    leave_request_id: UUID
    transaction_type: str
    leave_days: Decimal
    leave_hours: Decimal
    daily_rate: Decimal
    hourly_rate: Decimal | None = None
    gross_amount: Decimal
    payment_percentage: Decimal
    net_amount: Decimal
    description: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


# ============================================================================
# Leave payment rule schemas
# ============================================================================


class LeavePaymentTierCreate(BaseModel):
    """Schema for adding a tier; sort_order defaults to after the last tier."""

    from_day: int
    to_day: int | None = None
    payment_percentage: Decimal
    sort_order: int | None = None


class LeavePaymentTierUpdate(BaseModel):
    """Partial tier update; only provided fields change."""

    from_day: int | None = None
    to_day: int | None = None
    payment_percentage: Decimal | None = None
    sort_order: int | None = None


class LeavePaymentTierResponse(BaseModel):
    """Schema for tier response."""

    model_config = ConfigDict(from_attributes=True)

    leave_payment_tier_id: UUID
    leave_payment_rule_id: UUID
    from_day: int
    to_day: int | None = None
    payment_percentage: Decimal
    sort_order: int


class LeavePaymentRuleCreate(BaseModel):
    """Schema for creating a payment rule."""

    leave_type_id: UUID
    code: str
    name: str
    start_date: date
    end_date: date | None = None
    description: str | None = None
    is_active: bool = True


class LeavePaymentRuleUpdate(BaseModel):
    """Partial rule update; only provided fields change."""

    leave_type_id: UUID | None = None
    code: str | None = None
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None
    is_active: bool | None = None


class LeavePaymentRuleResponse(BaseModel):
    """Schema for rule response."""

    model_config = ConfigDict(from_attributes=True)

    leave_payment_rule_id: UUID
    company_id: UUID
    leave_type_id: UUID
    code: str
    name: str
    description: str | None = None
    start_date: date
    end_date: date | None = None
    is_active: bool
    tiers: list[LeavePaymentTierResponse] = Field(default_factory=list)


# ============================================================================
# Retro config schemas
# ============================================================================


class RetroConfigItemCreate(BaseModel):
    """Schema for adding an item to a config."""

    pay_element_id: UUID
    increase_type: str
    increase_value: Decimal
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    notes: str | None = None


class RetroConfigItemUpdate(BaseModel):
    """Partial item update; only provided fields change."""

    pay_element_id: UUID | None = None
    increase_type: str | None = None
    increase_value: Decimal | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    notes: str | None = None


class RetroConfigItemResponse(BaseModel):
    """Schema for config item response."""

    model_config = ConfigDict(from_attributes=True)

    config_item_id: UUID
    config_id: UUID
    pay_element_id: UUID
    increase_type: str
    increase_value: Decimal
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    notes: str | None = None


class RetroConfigCreate(BaseModel):
    """Schema for creating a draft config."""

    pay_group_id: UUID
    config_name: str
    effective_start_date: date
    effective_end_date: date
    description: str | None = None
    target_run_types: list[str] | None = None
    target_pay_period_id: UUID | None = None
    auto_include: bool = True


class RetroConfigUpdate(BaseModel):
    """Partial config update; only provided fields change."""

    config_name: str | None = None
    description: str | None = None
    pay_group_id: UUID | None = None
    effective_start_date: date | None = None
    effective_end_date: date | None = None
    target_run_types: list[str] | None = None
    target_pay_period_id: UUID | None = None
    auto_include: bool | None = None


class RetroConfigResponse(BaseModel):
    """Schema for config response."""

    model_config = ConfigDict(from_attributes=True)

    config_id: UUID
    company_id: UUID
    pay_group_id: UUID
    config_name: str
    description: str | None = None
    effective_start_date: date
    effective_end_date: date
    status: str
    target_run_types: list[str] | None = None
    target_pay_period_id: UUID | None = None
    auto_include: bool
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    items: list[RetroConfigItemResponse] = Field(default_factory=list)


class ApproveConfigRequest(BaseModel):
    """Approval request."""

    approved_by: UUID | None = None


# ============================================================================
# Retro calculation schemas
# ============================================================================


class RetroCalculationResponse(BaseModel):
    """Persisted retro calculation row."""

    model_config = ConfigDict(from_attributes=True)

    calculation_id: UUID
    config_id: UUID
    employee_id: UUID
    pay_period_id: UUID
    pay_year: int
    pay_cycle_number: int
    pay_element_id: UUID
    original_amount: Decimal
    increase_type: str
    increase_value: Decimal
    adjustment_amount: Decimal
    employee_status: str | None = None
    calculation_date: datetime
    processed_in_run_id: UUID | None = None
    processed_at: datetime | None = None


class GenerateResponse(BaseModel):
    """Outcome of generating calculations."""

    success: bool
    count: int
    total_adjustment: Decimal
    error: str | None = None


class DiscardCalculationsResponse(BaseModel):
    """Number of calculations removed from a draft config."""

    count: int


class YearCycleGroupResponse(BaseModel):
    """Per (year, cycle) subtotal."""

    model_config = ConfigDict(from_attributes=True)

    pay_year: int
    pay_cycle_number: int
    total_original: Decimal
    total_adjustment: Decimal
    calculations: list[RetroCalculationResponse]


class EmployeeRetroGroupResponse(BaseModel):
    """Per employee subtotal."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str
    employee_number: str | None = None
    employee_status: str | None = None
    total_original: Decimal
    total_adjustment: Decimal
    cycles: list[YearCycleGroupResponse]


class RetroCalculationSummaryResponse(BaseModel):
    """Calculation review summary."""

    model_config = ConfigDict(from_attributes=True)

    config_id: UUID
    total_employees: int
    active_employees: int
    inactive_employees: int
    total_original: Decimal
    total_adjustment: Decimal
    employees: list[EmployeeRetroGroupResponse]


# ============================================================================
# Pending retro schemas
# ============================================================================


class PendingRetroAmountResponse(BaseModel):
    """Pending total for one (employee, pay element)."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    pay_element_id: UUID
    pay_element_code: str | None = None
    pay_element_name: str | None = None
    total_amount: Decimal
    calculation_count: int
    config_ids: list[UUID]


class PendingRetroItemResponse(BaseModel):
    """Pending total for one (config, pay element)."""

    model_config = ConfigDict(from_attributes=True)

    config_id: UUID
    config_name: str
    pay_element_id: UUID
    pay_element_code: str | None = None
    pay_element_name: str | None = None
    amount: Decimal
    calculation_count: int


class EmployeePendingRetroResponse(BaseModel):
    """Pending retro breakdown for one employee."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    total: Decimal
    items: list[PendingRetroItemResponse]


class MarkProcessedRequest(BaseModel):
    """Mark an employee's pending calculations as processed by a run."""

    employee_id: UUID
    pay_group_id: UUID
    payroll_run_id: UUID


class MarkProcessedResponse(BaseModel):
    """Outcome of processed-marking."""

    success: bool
