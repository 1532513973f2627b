"""Tests for retro config administration."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from payroll_adjustments.models import RetroactivePayCalculation
from payroll_adjustments.services import (
    InvalidTransitionError,
    RetroConfigLockedError,
    RetroConfigNotFoundError,
    RetroConfigService,
    RetroConfigValidationError,
    RetroGenerationService,
    RetroPendingService,
)


async def _create(service, seed, **kwargs):
    params = {
        "pay_group_id": seed.pay_group_id,
        "config_name": "2026 cost of living",
        "effective_start_date": date(2026, 1, 1),
        "effective_end_date": date(2026, 2, 28),
    }
    params.update(kwargs)
    return await service.create_config(seed.company_id, **params)


class TestCreateConfig:
    async def test_create_draft(self, session, seed):
        config = await _create(
            RetroConfigService(session), seed, target_run_types=["regular"]
        )

        assert config.status == "draft"
        assert config.company_id == seed.company_id
        assert config.target_run_types == ["regular"]
        assert config.auto_include is True
        assert config.items == []

    async def test_name_is_trimmed(self, session, seed):
        config = await _create(RetroConfigService(session), seed, config_name="  Raise  ")
        assert config.config_name == "Raise"

    async def test_empty_run_types_mean_all(self, session, seed):
        config = await _create(RetroConfigService(session), seed, target_run_types=[])
        assert config.target_run_types is None

    async def test_invalid_dates_and_name(self, session, seed):
        with pytest.raises(RetroConfigValidationError) as exc_info:
            await _create(
                RetroConfigService(session),
                seed,
                config_name=" ",
                effective_end_date=date(2025, 12, 1),
            )

        assert len(exc_info.value.errors) == 2

    async def test_unknown_pay_group(self, session, seed):
        with pytest.raises(RetroConfigNotFoundError):
            await _create(RetroConfigService(session), seed, pay_group_id=uuid4())

    async def test_unknown_target_period(self, session, seed):
        with pytest.raises(RetroConfigNotFoundError):
            await _create(RetroConfigService(session), seed, target_pay_period_id=uuid4())


class TestReadConfigs:
    async def test_get_config_of_other_company(self, session, seed, add_retro_config):
        config_id = await add_retro_config()

        with pytest.raises(RetroConfigNotFoundError) as exc_info:
            await RetroConfigService(session).get_config(seed.other_company_id, config_id)

        assert exc_info.value.entity_id == config_id

    async def test_get_config_loads_items(self, session, seed, add_retro_config):
        config_id = await add_retro_config()

        config = await RetroConfigService(session).get_config(seed.company_id, config_id)

        assert len(config.items) == 1
        assert config.items[0].pay_element.code == "BASE"

    async def test_list_configs_filters(self, session, seed, add_retro_config):
        await add_retro_config(config_name="Draft one")
        approved = await add_retro_config(config_name="Approved one", status="approved")
        service = RetroConfigService(session)

        assert len(await service.list_configs(seed.company_id)) == 2
        only_approved = await service.list_configs(seed.company_id, status="approved")
        assert [c.config_id for c in only_approved] == [approved]
        assert await service.list_configs(seed.company_id, pay_group_id=uuid4()) == []
        assert await service.list_configs(seed.other_company_id) == []


class TestUpdateConfig:
    async def test_update_draft_definition(self, session, seed, add_retro_config):
        config_id = await add_retro_config()

        config = await RetroConfigService(session).update_config(
            seed.company_id,
            config_id,
            {"config_name": "Renamed", "effective_end_date": date(2026, 3, 31)},
        )

        assert config.config_name == "Renamed"
        assert config.effective_end_date == date(2026, 3, 31)

    async def test_approved_definition_is_locked(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="approved")

        with pytest.raises(RetroConfigLockedError) as exc_info:
            await RetroConfigService(session).update_config(
                seed.company_id, config_id, {"effective_start_date": date(2025, 12, 1)}
            )

        assert exc_info.value.status == "approved"

    async def test_approved_targeting_is_editable(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="approved")

        config = await RetroConfigService(session).update_config(
            seed.company_id,
            config_id,
            {"target_run_types": ["supplemental"], "auto_include": False},
        )

        assert config.target_run_types == ["supplemental"]
        assert config.auto_include is False

    async def test_cancelled_is_locked(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="cancelled")

        with pytest.raises(RetroConfigLockedError):
            await RetroConfigService(session).update_config(
                seed.company_id, config_id, {"auto_include": False}
            )

    async def test_rejects_unknown_and_null_fields(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        service = RetroConfigService(session)

        with pytest.raises(RetroConfigValidationError):
            await service.update_config(seed.company_id, config_id, {"status": "approved"})
        with pytest.raises(RetroConfigValidationError) as exc_info:
            await service.update_config(seed.company_id, config_id, {"config_name": None})
        assert exc_info.value.errors == ["config_name cannot be null"]

    async def test_rejects_inverted_dates(self, session, seed, add_retro_config):
        config_id = await add_retro_config()

        with pytest.raises(RetroConfigValidationError):
            await RetroConfigService(session).update_config(
                seed.company_id, config_id, {"effective_end_date": date(2025, 6, 30)}
            )


class TestConfigItems:
    async def test_add_update_delete_item(self, session, seed, add_retro_config):
        config_id = await add_retro_config(items=[])
        service = RetroConfigService(session)

        item = await service.add_config_item(
            seed.company_id,
            config_id,
            pay_element_id=seed.ot_element_id,
            increase_type="fixed",
            increase_value=Decimal("25"),
            max_amount=Decimal("100"),
        )
        assert item.config_id == config_id
        assert item.pay_element.code == "OT"

        item = await service.update_config_item(
            seed.company_id, item.config_item_id, {"increase_value": Decimal("40")}
        )
        assert item.increase_value == Decimal("40")

        await service.delete_config_item(seed.company_id, item.config_item_id)
        config = await service.get_config(seed.company_id, config_id)
        assert config.items == []

    async def test_item_validation(self, session, seed, add_retro_config):
        config_id = await add_retro_config(items=[])
        service = RetroConfigService(session)

        with pytest.raises(RetroConfigValidationError):
            await service.add_config_item(
                seed.company_id,
                config_id,
                pay_element_id=seed.base_element_id,
                increase_type="bonus",
                increase_value=Decimal("10"),
            )

    async def test_unknown_pay_element(self, session, seed, add_retro_config):
        config_id = await add_retro_config(items=[])

        with pytest.raises(RetroConfigNotFoundError):
            await RetroConfigService(session).add_config_item(
                seed.company_id,
                config_id,
                pay_element_id=uuid4(),
                increase_type="percentage",
                increase_value=Decimal("10"),
            )

    async def test_items_locked_after_approval(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="approved")

        with pytest.raises(RetroConfigLockedError):
            await RetroConfigService(session).add_config_item(
                seed.company_id,
                config_id,
                pay_element_id=seed.ot_element_id,
                increase_type="percentage",
                increase_value=Decimal("10"),
            )


class TestLifecycle:
    async def test_approve(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        approver = uuid4()

        config = await RetroConfigService(session).approve_config(
            seed.company_id, config_id, approved_by=approver
        )

        assert config.status == "approved"
        assert config.approved_by == approver
        assert config.approved_at is not None

    async def test_approve_requires_items(self, session, seed, add_retro_config):
        config_id = await add_retro_config(items=[])

        with pytest.raises(RetroConfigValidationError) as exc_info:
            await RetroConfigService(session).approve_config(seed.company_id, config_id)

        assert exc_info.value.errors == ["Config has no items"]

    async def test_cancel_then_approve_fails(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="approved")
        service = RetroConfigService(session)

        config = await service.cancel_config(seed.company_id, config_id)
        assert config.status == "cancelled"

        with pytest.raises(InvalidTransitionError):
            await service.approve_config(seed.company_id, config_id)
        with pytest.raises(InvalidTransitionError):
            await service.cancel_config(seed.company_id, config_id)

    async def test_delete_draft_removes_calculations(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        await RetroGenerationService(session).generate_retroactive_calculations(
            seed.company_id, config_id
        )
        service = RetroConfigService(session)

        await service.delete_config(seed.company_id, config_id)

        with pytest.raises(RetroConfigNotFoundError):
            await service.get_config(seed.company_id, config_id)
        rows = await RetroGenerationService(session).get_calculations(seed.company_id, config_id)
        assert rows == []

    async def test_delete_approved_is_locked(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="approved")

        with pytest.raises(RetroConfigLockedError):
            await RetroConfigService(session).delete_config(seed.company_id, config_id)

    async def test_processed_calculations_survive_cancellation(
        self, session, seed, add_retro_config
    ):
        config_id = await add_retro_config(status="approved")
        await RetroGenerationService(session).generate_retroactive_calculations(
            seed.company_id, config_id
        )
        await RetroPendingService(session).mark_retro_as_processed(
            seed.company_id, seed.alice_id, seed.pay_group_id, seed.run_id
        )

        await RetroConfigService(session).cancel_config(seed.company_id, config_id)

        rows = await RetroGenerationService(session).get_calculations(seed.company_id, config_id)
        assert len(rows) == 3
        assert sum(1 for r in rows if r.processed_in_run_id == seed.run_id) == 2


class TestGeneratedConfigIsLocked:
    """Definition and items freeze once calculations exist."""

    async def _generate(self, session, seed, config_id):
        result = await RetroGenerationService(session).generate_retroactive_calculations(
            seed.company_id, config_id
        )
        assert result.success, result.error
        return result

    async def test_item_changes_refused(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        await self._generate(session, seed, config_id)
        service = RetroConfigService(session)
        config = await service.get_config(seed.company_id, config_id)
        item_id = config.items[0].config_item_id

        with pytest.raises(RetroConfigLockedError) as exc_info:
            await service.update_config_item(
                seed.company_id, item_id, {"increase_value": Decimal("20")}
            )
        assert "3 calculation(s) already generated" in exc_info.value.reason

        with pytest.raises(RetroConfigLockedError):
            await service.add_config_item(
                seed.company_id,
                config_id,
                pay_element_id=seed.ot_element_id,
                increase_type="percentage",
                increase_value=Decimal("5"),
            )
        with pytest.raises(RetroConfigLockedError):
            await service.delete_config_item(seed.company_id, item_id)

    async def test_definition_refused_targeting_allowed(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        await self._generate(session, seed, config_id)
        service = RetroConfigService(session)

        with pytest.raises(RetroConfigLockedError):
            await service.update_config(
                seed.company_id, config_id, {"effective_end_date": date(2026, 1, 31)}
            )

        config = await service.update_config(
            seed.company_id, config_id, {"target_run_types": ["regular"]}
        )
        assert config.target_run_types == ["regular"]
        assert config.effective_end_date == date(2026, 2, 28)

    async def test_discard_then_edit_feeds_new_value(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        await self._generate(session, seed, config_id)
        service = RetroConfigService(session)
        config = await service.get_config(seed.company_id, config_id)
        item_id = config.items[0].config_item_id

        assert await service.discard_calculations(seed.company_id, config_id) == 3
        await service.update_config_item(
            seed.company_id, item_id, {"increase_value": Decimal("20")}
        )
        regenerated = await self._generate(session, seed, config_id)
        await service.approve_config(seed.company_id, config_id)

        amounts = await RetroPendingService(session).fetch_pending_retro_amounts(
            seed.company_id, seed.pay_group_id
        )

        assert regenerated.total_adjustment == Decimal("1100.00")
        assert sum(a.total_amount for a in amounts) == Decimal("1100.00")

    async def test_discard_refused_after_approval(self, session, seed, add_retro_config):
        config_id = await add_retro_config(status="approved")
        await self._generate(session, seed, config_id)

        with pytest.raises(RetroConfigLockedError):
            await RetroConfigService(session).discard_calculations(seed.company_id, config_id)

    async def test_discard_refused_with_processed_rows(self, session, seed, add_retro_config):
        config_id = await add_retro_config()
        await self._generate(session, seed, config_id)
        await session.execute(
            update(RetroactivePayCalculation)
            .where(
                RetroactivePayCalculation.config_id == config_id,
                RetroactivePayCalculation.employee_id == seed.alice_id,
            )
            .values(processed_in_run_id=seed.run_id)
        )

        with pytest.raises(RetroConfigLockedError) as exc_info:
            await RetroConfigService(session).discard_calculations(seed.company_id, config_id)

        assert "2 calculation(s) already processed" in exc_info.value.reason
