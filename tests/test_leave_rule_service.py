"""Tests for leave payment rule and tier administration."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_adjustments.calculators import LeaveImpactCalculator
from payroll_adjustments.services import (
    LeavePaymentRuleService,
    LeaveRuleNotFoundError,
    LeaveRuleValidationError,
)


async def _create(service, seed, **kwargs):
    params = {
        "leave_type_id": seed.reduced_leave_id,
        "code": "SL-2027",
        "name": "Sick leave 2027",
        "start_date": date(2027, 1, 1),
    }
    params.update(kwargs)
    return await service.create_rule(seed.company_id, **params)


class TestRules:
    async def test_create_and_get(self, session, seed):
        service = LeavePaymentRuleService(session)

        rule = await _create(service, seed, code="  SL-2027 ", end_date=date(2027, 12, 31))

        assert rule.code == "SL-2027"
        assert rule.is_active
        assert rule.tiers == []
        fetched = await service.get_rule(seed.company_id, rule.leave_payment_rule_id)
        assert fetched.end_date == date(2027, 12, 31)

    async def test_create_validation(self, session, seed):
        with pytest.raises(LeaveRuleValidationError) as exc_info:
            await _create(
                LeavePaymentRuleService(session),
                seed,
                code=" ",
                name="",
                end_date=date(2026, 6, 30),
            )

        assert exc_info.value.errors == [
            "Rule code is required",
            "Rule name is required",
            "End date must be on or after the start date",
        ]

    async def test_unknown_leave_type(self, session, seed):
        with pytest.raises(LeaveRuleNotFoundError):
            await _create(LeavePaymentRuleService(session), seed, leave_type_id=uuid4())

    async def test_other_company_cannot_read(self, session, seed):
        with pytest.raises(LeaveRuleNotFoundError):
            await LeavePaymentRuleService(session).get_rule(
                seed.other_company_id, seed.reduced_rule_id
            )

    async def test_list_filters_by_leave_type(self, session, seed):
        service = LeavePaymentRuleService(session)
        await _create(service, seed, leave_type_id=seed.annual_leave_id, name="Annual top-up")

        rules = await service.list_rules(seed.company_id)
        assert [r.name for r in rules] == ["Annual top-up", "Sick leave pay schedule"]

        rules = await service.list_rules(seed.company_id, leave_type_id=seed.reduced_leave_id)
        assert [r.leave_payment_rule_id for r in rules] == [seed.reduced_rule_id]
        assert [t.from_day for t in rules[0].tiers] == [1, 6]

    async def test_update_rule(self, session, seed):
        rule = await LeavePaymentRuleService(session).update_rule(
            seed.company_id, seed.reduced_rule_id, {"name": "Renamed", "is_active": False}
        )

        assert rule.name == "Renamed"
        assert rule.is_active is False

    async def test_update_rejects_unknown_null_and_dates(self, session, seed):
        service = LeavePaymentRuleService(session)

        with pytest.raises(LeaveRuleValidationError):
            await service.update_rule(seed.company_id, seed.reduced_rule_id, {"tiers": []})
        with pytest.raises(LeaveRuleValidationError):
            await service.update_rule(seed.company_id, seed.reduced_rule_id, {"code": None})
        with pytest.raises(LeaveRuleValidationError):
            await service.update_rule(
                seed.company_id, seed.reduced_rule_id, {"end_date": date(2025, 1, 1)}
            )

    async def test_delete_rule_removes_tiers(self, session, seed):
        service = LeavePaymentRuleService(session)

        await service.delete_rule(seed.company_id, seed.reduced_rule_id)

        with pytest.raises(LeaveRuleNotFoundError):
            await service.get_rule(seed.company_id, seed.reduced_rule_id)
        assert await service.list_rules(seed.company_id) == []


class TestTiers:
    async def test_add_tier_after_existing(self, session, seed):
        service = LeavePaymentRuleService(session)

        tier = await service.add_tier(
            seed.company_id, seed.reduced_rule_id, from_day=11, payment_percentage=Decimal("0")
        )

        assert tier.sort_order == 3
        assert tier.to_day is None
        rule = await service.get_rule(seed.company_id, seed.reduced_rule_id)
        assert [t.from_day for t in rule.tiers] == [1, 6, 11]

    async def test_first_tier_gets_sort_order_zero(self, session, seed):
        service = LeavePaymentRuleService(session)
        rule = await _create(service, seed)

        tier = await service.add_tier(
            seed.company_id,
            rule.leave_payment_rule_id,
            from_day=1,
            to_day=3,
            payment_percentage=Decimal("100"),
        )

        assert tier.sort_order == 0

    @pytest.mark.parametrize(
        ("from_day", "to_day", "sort_order"),
        [
            (4, 8, 3),  # overlaps days 1-5 and 6-10
            (10, None, 3),  # overlaps 6-10
            (12, 20, 0),  # ascending days need ascending sort_order
            (11, 15, 2),  # sort order already taken
        ],
    )
    async def test_rejects_overlapping_or_misordered(
        self, session, seed, from_day, to_day, sort_order
    ):
        with pytest.raises(LeaveRuleValidationError):
            await LeavePaymentRuleService(session).add_tier(
                seed.company_id,
                seed.reduced_rule_id,
                from_day=from_day,
                to_day=to_day,
                payment_percentage=Decimal("25"),
                sort_order=sort_order,
            )

    async def test_field_checks(self, session, seed):
        service = LeavePaymentRuleService(session)

        with pytest.raises(LeaveRuleValidationError) as exc_info:
            await service.add_tier(
                seed.company_id, seed.reduced_rule_id, from_day=0, payment_percentage=Decimal("-1")
            )

        assert exc_info.value.errors == [
            "From day must be at least 1",
            "Payment percentage must be between 0 and 100",
        ]

    async def test_update_tier_checked_against_siblings(self, session, seed):
        service = LeavePaymentRuleService(session)
        rule = await service.get_rule(seed.company_id, seed.reduced_rule_id)
        first, second = rule.tiers

        updated = await service.update_tier(
            seed.company_id, second.leave_payment_tier_id, {"to_day": None}
        )
        assert updated.to_day is None

        # Reaching into the next tier is rejected
        await service.update_tier(seed.company_id, first.leave_payment_tier_id, {"to_day": 5})
        with pytest.raises(LeaveRuleValidationError):
            await service.update_tier(seed.company_id, first.leave_payment_tier_id, {"to_day": 6})

    async def test_delete_tier(self, session, seed):
        service = LeavePaymentRuleService(session)
        rule = await service.get_rule(seed.company_id, seed.reduced_rule_id)

        await service.delete_tier(seed.company_id, rule.tiers[1].leave_payment_tier_id)

        rule = await service.get_rule(seed.company_id, seed.reduced_rule_id)
        assert [t.to_day for t in rule.tiers] == [5]

    async def test_unknown_tier(self, session, seed):
        with pytest.raises(LeaveRuleNotFoundError):
            await LeavePaymentRuleService(session).delete_tier(seed.company_id, uuid4())

    async def test_tier_changes_drive_leave_impact(self, session, seed, add_leave_request):
        service = LeavePaymentRuleService(session)
        rule = await service.get_rule(seed.company_id, seed.reduced_rule_id)
        await service.update_tier(
            seed.company_id,
            rule.tiers[1].leave_payment_tier_id,
            {"payment_percentage": Decimal("80")},
        )
        await session.commit()
        await add_leave_request(seed.reduced_leave_id, date(2026, 3, 2), date(2026, 3, 10))

        result = await LeaveImpactCalculator(session).calculate_leave_impact(
            seed.company_id, seed.alice_id, date(2026, 3, 1), date(2026, 3, 31), Decimal("100")
        )

        (txn,) = result.unwrap().transactions
        assert txn.days == 7
        assert txn.payment_percentage == Decimal("80")
        assert txn.net_amount == Decimal("560.00")
