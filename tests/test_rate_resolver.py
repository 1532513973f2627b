"""Tests for daily/hourly rate resolution."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_adjustments.calculators.errors import CompensationNotFoundError
from payroll_adjustments.calculators.rate_resolver import DerivedRates, RateResolver, annualize
from payroll_adjustments.models import EmployeeCompensation


class TestAnnualize:
    """Frequency to annual conversion."""

    @pytest.mark.parametrize(
        "amount,frequency,expected",
        [
            ("25", "hourly", "52000"),
            ("200", "daily", "52000"),
            ("1000", "weekly", "52000"),
            ("2000", "biweekly", "52000"),
            ("2500", "semimonthly", "60000"),
            ("5000", "monthly", "60000"),
            ("5000", "MONTHLY", "60000"),
            ("60000", "annual", "60000"),
        ],
    )
    def test_known_frequencies(self, amount, frequency, expected):
        assert annualize(Decimal(amount), frequency) == Decimal(expected)

    def test_unknown_frequency_treated_as_monthly(self):
        assert annualize(Decimal("1000"), "fortnightly") == Decimal("12000")
        assert annualize(Decimal("1000"), None) == Decimal("12000")

    def test_derived_rates(self):
        rates = DerivedRates.from_annual(Decimal("52000"))
        assert rates.daily_rate == Decimal("200.0000")
        assert rates.hourly_rate == Decimal("25.0000")

    def test_derived_rates_round_to_four_places(self):
        rates = DerivedRates.from_annual(Decimal("60000"))
        assert rates.daily_rate == Decimal("230.7692")
        assert rates.hourly_rate == Decimal("28.8462")


class TestRateResolver:
    """Rate resolution from the primary active compensation."""

    async def test_resolve_rates(self, session, seed):
        resolver = RateResolver(session)

        rates = await resolver.resolve_rates(seed.company_id, seed.alice_id, date(2026, 3, 1))

        assert rates.annual_salary == Decimal("26000")
        assert rates.daily_rate == Decimal("100.0000")
        assert rates.hourly_rate == Decimal("12.5000")

    async def test_latest_start_date_wins(self, session, seed):
        session.add(
            EmployeeCompensation(
                company_id=seed.company_id,
                employee_id=seed.alice_id,
                amount=Decimal("2500"),
                frequency="monthly",
                start_date=date(2026, 2, 1),
            )
        )
        await session.flush()
        resolver = RateResolver(session)

        before = await resolver.resolve_rates(seed.company_id, seed.alice_id, date(2026, 1, 15))
        after = await resolver.resolve_rates(seed.company_id, seed.alice_id, date(2026, 2, 15))

        assert before.daily_rate == Decimal("100.0000")
        assert after.annual_salary == Decimal("30000")

    async def test_ignores_non_primary_and_inactive(self, session, seed):
        session.add_all(
            [
                EmployeeCompensation(
                    company_id=seed.company_id,
                    employee_id=seed.alice_id,
                    amount=Decimal("99999"),
                    frequency="annual",
                    is_primary=False,
                    start_date=date(2026, 1, 1),
                ),
                EmployeeCompensation(
                    company_id=seed.company_id,
                    employee_id=seed.alice_id,
                    amount=Decimal("88888"),
                    frequency="annual",
                    is_active=False,
                    start_date=date(2026, 1, 1),
                ),
            ]
        )
        await session.flush()

        rates = await RateResolver(session).resolve_rates(
            seed.company_id, seed.alice_id, date(2026, 3, 1)
        )
        assert rates.annual_salary == Decimal("26000")

    async def test_no_compensation(self, session, seed):
        resolver = RateResolver(session)

        with pytest.raises(CompensationNotFoundError) as exc_info:
            await resolver.resolve_rates(seed.company_id, seed.bob_id, date(2026, 3, 1))

        assert exc_info.value.employee_id == seed.bob_id

    async def test_scoped_to_company(self, session, seed):
        with pytest.raises(CompensationNotFoundError):
            await RateResolver(session).resolve_rates(
                seed.other_company_id, seed.alice_id, date(2026, 3, 1)
            )

    async def test_unknown_employee(self, session, seed):
        with pytest.raises(CompensationNotFoundError):
            await RateResolver(session).resolve_rates(seed.company_id, uuid4(), date(2026, 3, 1))


class TestEmployeeCompensationModel:
    def test_is_active_on(self):
        compensation = EmployeeCompensation(
            amount=Decimal("1000"),
            start_date=date(2026, 1, 1),
            end_date=date(2026, 6, 30),
            is_active=True,
        )

        assert compensation.is_active_on(date(2025, 12, 31)) is False
        assert compensation.is_active_on(date(2026, 1, 1)) is True
        assert compensation.is_active_on(date(2026, 6, 30)) is True
        assert compensation.is_active_on(date(2026, 7, 1)) is False

    def test_inactive_never_applies(self):
        compensation = EmployeeCompensation(
            amount=Decimal("1000"), start_date=date(2026, 1, 1), is_active=False
        )
        assert compensation.is_active_on(date(2026, 3, 1)) is False
