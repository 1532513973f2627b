"""Pytest fixtures for payroll adjustment tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_adjustments.models import (
    Base,
    Company,
    Employee,
    EmployeeCompensation,
    EmployeePayroll,
    LeavePaymentRule,
    LeavePaymentTier,
    LeaveRequest,
    LeaveType,
    PayElement,
    PayGroup,
    PayPeriod,
    PayrollRun,
    RetroactivePayConfig,
    RetroactivePayConfigItem,
)

# In-memory SQLite shared across connections of one engine.
# Advisory locks and JSONB are PostgreSQL-only and degrade gracefully here.
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seed(session_factory) -> SimpleNamespace:
    """Seed a company with one monthly pay group and its reference data.

    Committed in its own session; tests get plain ids back.

    Calendar (2026): Jan, Feb and Mar monthly periods, cycles 1-3.
    Alice: active, annual salary 26000 (daily 100, hourly 12.50).
    Bob: terminated, no compensation.
    Finalized payrolls: Alice Jan/Feb/Mar (BASE 2000, OT 300), Bob Jan (BASE 1500).
    Bob's Feb payroll is still a draft.
    """
    async with session_factory() as s:
        company = Company(name="Acme Ltd")
        other_company = Company(name="Other Ltd")
        s.add_all([company, other_company])
        await s.flush()

        pay_group = PayGroup(
            company_id=company.company_id, code="MONTHLY", name="Monthly Staff"
        )
        s.add(pay_group)
        await s.flush()

        periods = [
            PayPeriod(
                company_id=company.company_id,
                pay_group_id=pay_group.pay_group_id,
                period_start=start,
                period_end=end,
                pay_date=end,
                pay_year=2026,
                cycle_number=cycle,
                status="closed" if cycle < 3 else "open",
            )
            for cycle, (start, end) in enumerate(
                [
                    (date(2026, 1, 1), date(2026, 1, 31)),
                    (date(2026, 2, 1), date(2026, 2, 28)),
                    (date(2026, 3, 1), date(2026, 3, 31)),
                ],
                start=1,
            )
        ]
        s.add_all(periods)

        base = PayElement(company_id=company.company_id, code="BASE", name="Base Salary")
        overtime = PayElement(
            company_id=company.company_id, code="OT", name="Overtime", display_order=1
        )
        s.add_all([base, overtime])

        alice = Employee(
            company_id=company.company_id,
            pay_group_id=pay_group.pay_group_id,
            employee_number="E001",
            first_name="Alice",
            last_name="Smith",
            status="active",
        )
        bob = Employee(
            company_id=company.company_id,
            pay_group_id=pay_group.pay_group_id,
            employee_number="E002",
            first_name="Bob",
            last_name="Jones",
            status="terminated",
        )
        s.add_all([alice, bob])
        await s.flush()

        s.add(
            EmployeeCompensation(
                company_id=company.company_id,
                employee_id=alice.employee_id,
                pay_element_id=base.pay_element_id,
                amount=Decimal("26000"),
                frequency="annual",
                start_date=date(2025, 1, 1),
            )
        )

        annual = LeaveType(company_id=company.company_id, code="AL", name="Annual Leave")
        unpaid = LeaveType(
            company_id=company.company_id,
            code="UL",
            name="Unpaid Leave",
            is_paid=False,
            payment_method="unpaid",
        )
        statutory = LeaveType(
            company_id=company.company_id,
            code="SSP",
            name="Statutory Sick Leave",
            payment_method="statutory",
        )
        reduced = LeaveType(
            company_id=company.company_id,
            code="SL",
            name="Sick Leave",
            payment_method="reduced_pay",
        )
        s.add_all([annual, unpaid, statutory, reduced])
        await s.flush()

        rule = LeavePaymentRule(
            company_id=company.company_id,
            leave_type_id=reduced.leave_type_id,
            code="SL-2026",
            name="Sick leave pay schedule",
            start_date=date(2026, 1, 1),
            tiers=[
                LeavePaymentTier(
                    from_day=1, to_day=5, payment_percentage=Decimal("100"), sort_order=1
                ),
                LeavePaymentTier(
                    from_day=6, to_day=10, payment_percentage=Decimal("50"), sort_order=2
                ),
            ],
        )
        s.add(rule)

        run = PayrollRun(
            company_id=company.company_id,
            pay_group_id=pay_group.pay_group_id,
            pay_period_id=periods[2].pay_period_id,
            run_type="regular",
        )
        s.add(run)
        await s.flush()

        def payroll(employee: Employee, period: PayPeriod, earnings: list, status: str):
            return EmployeePayroll(
                company_id=company.company_id,
                employee_id=employee.employee_id,
                pay_period_id=period.pay_period_id,
                status=status,
                gross_pay=sum((Decimal(str(e["amount"])) for e in earnings), Decimal("0")),
                calculation_details={"earnings": earnings},
            )

        alice_earnings = [{"code": "BASE", "amount": 2000}, {"code": "OT", "amount": 300}]
        s.add_all(
            [
                payroll(alice, periods[0], alice_earnings, "paid"),
                payroll(alice, periods[1], alice_earnings, "paid"),
                payroll(alice, periods[2], alice_earnings, "calculated"),
                payroll(bob, periods[0], [{"code": "BASE", "amount": "1500.00"}], "approved"),
                payroll(bob, periods[1], [{"code": "BASE", "amount": 1500}], "draft"),
            ]
        )
        await s.commit()

        return SimpleNamespace(
            company_id=company.company_id,
            other_company_id=other_company.company_id,
            pay_group_id=pay_group.pay_group_id,
            jan_period_id=periods[0].pay_period_id,
            feb_period_id=periods[1].pay_period_id,
            mar_period_id=periods[2].pay_period_id,
            base_element_id=base.pay_element_id,
            ot_element_id=overtime.pay_element_id,
            alice_id=alice.employee_id,
            bob_id=bob.employee_id,
            annual_leave_id=annual.leave_type_id,
            unpaid_leave_id=unpaid.leave_type_id,
            statutory_leave_id=statutory.leave_type_id,
            reduced_leave_id=reduced.leave_type_id,
            reduced_rule_id=rule.leave_payment_rule_id,
            run_id=run.payroll_run_id,
        )


@pytest.fixture
def add_leave_request(
    session_factory, seed
) -> Callable[..., Awaitable[UUID]]:
    """Insert a leave request for Alice (by default) and return its id."""

    async def _add(
        leave_type_id: UUID,
        start_date: date,
        end_date: date,
        status: str = "approved",
        employee_id: UUID | None = None,
    ) -> UUID:
        async with session_factory() as s:
            request = LeaveRequest(
                company_id=seed.company_id,
                employee_id=employee_id or seed.alice_id,
                leave_type_id=leave_type_id,
                start_date=start_date,
                end_date=end_date,
                duration=Decimal((end_date - start_date).days + 1),
                status=status,
            )
            s.add(request)
            await s.commit()
            return request.leave_request_id

    return _add


@pytest.fixture
def add_retro_config(
    session_factory, seed
) -> Callable[..., Awaitable[UUID]]:
    """Insert a retro config (Jan-Feb 2026 by default) and return its id.

    ``items`` is a list of dicts of RetroactivePayConfigItem fields; the
    pay element defaults to BASE.
    """

    async def _add(
        items: list[dict] | None = None,
        status: str = "draft",
        config_name: str = "2026 cost of living",
        effective_start_date: date = date(2026, 1, 1),
        effective_end_date: date = date(2026, 2, 28),
        auto_include: bool = True,
        target_run_types: list[str] | None = None,
        target_pay_period_id: UUID | None = None,
    ) -> UUID:
        if items is None:
            items = [{"increase_type": "percentage", "increase_value": Decimal("10")}]
        async with session_factory() as s:
            config = RetroactivePayConfig(
                company_id=seed.company_id,
                pay_group_id=seed.pay_group_id,
                config_name=config_name,
                effective_start_date=effective_start_date,
                effective_end_date=effective_end_date,
                status=status,
                auto_include=auto_include,
                target_run_types=target_run_types,
                target_pay_period_id=target_pay_period_id,
                items=[
                    RetroactivePayConfigItem(
                        pay_element_id=item.pop("pay_element_id", seed.base_element_id),
                        **item,
                    )
                    for item in (dict(i) for i in items)
                ],
            )
            s.add(config)
            await s.commit()
            return config.config_id

    return _add
