"""Retroactive pay config administration."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_adjustments.calculators.types import IncreaseType
from payroll_adjustments.models import (
    PayElement,
    PayGroup,
    PayPeriod,
    RetroactivePayCalculation,
    RetroactivePayConfig,
    RetroactivePayConfigItem,
)
from payroll_adjustments.models.base import utcnow
from payroll_adjustments.services.state_machine import (
    RetroConfigStateMachine,
    RetroConfigStatus,
)

logger = logging.getLogger(__name__)

# Editable only while draft and before calculations are generated
DEFINITION_FIELDS = frozenset(
    {"config_name", "description", "pay_group_id", "effective_start_date", "effective_end_date"}
)
# Editable in any non-terminal status
TARGETING_FIELDS = frozenset({"target_run_types", "target_pay_period_id", "auto_include"})
REQUIRED_CONFIG_FIELDS = frozenset(
    {"config_name", "pay_group_id", "effective_start_date", "effective_end_date", "auto_include"}
)
REQUIRED_ITEM_FIELDS = frozenset({"pay_element_id", "increase_type", "increase_value"})
ITEM_FIELDS = frozenset(
    {"pay_element_id", "increase_type", "increase_value", "min_amount", "max_amount", "notes"}
)


class RetroConfigError(Exception):
    """Base class for config administration failures."""


class RetroConfigNotFoundError(RetroConfigError):
    """Raised when a config or item does not exist for the company."""

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class RetroConfigLockedError(RetroConfigError):
    """Raised when a change is not allowed in the config's current state."""

    def __init__(self, config_id: UUID, status: str, reason: str):
        self.config_id = config_id
        self.status = status
        self.reason = reason
        super().__init__(f"Config {config_id} ({status}) is locked: {reason}")


class RetroConfigValidationError(RetroConfigError):
    """Raised when config or item values are invalid."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class RetroConfigService:
    """Service for creating, editing and approving retroactive pay configs.

    Lifecycle: draft (editable) -> approved (feeds payroll runs) -> cancelled.
    Targeting fields stay editable after approval. Definition fields and
    items change only while draft and before calculations are generated.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_config(
        self,
        company_id: UUID,
        pay_group_id: UUID,
        config_name: str,
        effective_start_date: date,
        effective_end_date: date,
        description: str | None = None,
        target_run_types: list[str] | None = None,
        target_pay_period_id: UUID | None = None,
        auto_include: bool = True,
    ) -> RetroactivePayConfig:
        """Create a draft config."""
        errors = _validate_dates(effective_start_date, effective_end_date)
        if not config_name or not config_name.strip():
            errors.append("Config name is required")
        if errors:
            raise RetroConfigValidationError(errors)

        await self._require_pay_group(company_id, pay_group_id)
        if target_pay_period_id is not None:
            await self._require_pay_period(company_id, target_pay_period_id)

        config = RetroactivePayConfig(
            company_id=company_id,
            pay_group_id=pay_group_id,
            config_name=config_name.strip(),
            description=description,
            effective_start_date=effective_start_date,
            effective_end_date=effective_end_date,
            status=RetroConfigStatus.DRAFT.value,
            target_run_types=target_run_types or None,
            target_pay_period_id=target_pay_period_id,
            auto_include=auto_include,
        )
        self.session.add(config)
        await self.session.flush()
        logger.info("Created retro config %s (%s)", config.config_id, config.config_name)
        return await self.get_config(company_id, config.config_id)

    async def get_config(self, company_id: UUID, config_id: UUID) -> RetroactivePayConfig:
        """Load a config with its items.

        Raises:
            RetroConfigNotFoundError: If the config does not belong to the company
        """
        result = await self.session.execute(
            select(RetroactivePayConfig)
            .where(
                RetroactivePayConfig.company_id == company_id,
                RetroactivePayConfig.config_id == config_id,
            )
            .options(
                selectinload(RetroactivePayConfig.items).selectinload(
                    RetroactivePayConfigItem.pay_element
                )
            )
            .execution_options(populate_existing=True)
        )
        config = result.scalar_one_or_none()
        if config is None:
            raise RetroConfigNotFoundError("Config", config_id)
        return config

    async def list_configs(
        self,
        company_id: UUID,
        pay_group_id: UUID | None = None,
        status: str | None = None,
    ) -> list[RetroactivePayConfig]:
        """List configs, newest first."""
        query = select(RetroactivePayConfig).where(RetroactivePayConfig.company_id == company_id)
        if pay_group_id is not None:
            query = query.where(RetroactivePayConfig.pay_group_id == pay_group_id)
        if status is not None:
            query = query.where(RetroactivePayConfig.status == status)

        result = await self.session.execute(
            query.options(selectinload(RetroactivePayConfig.items)).order_by(
                RetroactivePayConfig.created_at.desc()
            )
        )
        return list(result.scalars().all())

    async def update_config(
        self,
        company_id: UUID,
        config_id: UUID,
        changes: dict[str, Any],
    ) -> RetroactivePayConfig:
        """Apply field changes to a config."""
        config = await self.get_config(company_id, config_id)

        unknown = set(changes) - DEFINITION_FIELDS - TARGETING_FIELDS
        if unknown:
            raise RetroConfigValidationError([f"Unknown field: {name}" for name in sorted(unknown)])
        missing = sorted(
            name for name in REQUIRED_CONFIG_FIELDS if name in changes and changes[name] is None
        )
        if missing:
            raise RetroConfigValidationError([f"{name} cannot be null" for name in missing])

        if config.status == RetroConfigStatus.CANCELLED.value:
            raise RetroConfigLockedError(config_id, config.status, "config is cancelled")

        definition_changes = set(changes) & DEFINITION_FIELDS
        if definition_changes:
            if not RetroConfigStateMachine.can_edit_definition(config.status):
                raise RetroConfigLockedError(
                    config_id,
                    config.status,
                    f"cannot change {', '.join(sorted(definition_changes))} after approval",
                )
            await self._require_no_calculations(company_id, config)

        start = changes.get("effective_start_date", config.effective_start_date)
        end = changes.get("effective_end_date", config.effective_end_date)
        errors = _validate_dates(start, end)
        if "config_name" in changes and not (changes["config_name"] or "").strip():
            errors.append("Config name is required")
        if errors:
            raise RetroConfigValidationError(errors)

        if "pay_group_id" in changes:
            await self._require_pay_group(company_id, changes["pay_group_id"])
        if changes.get("target_pay_period_id") is not None:
            await self._require_pay_period(company_id, changes["target_pay_period_id"])

        for name, value in changes.items():
            if name == "target_run_types":
                value = value or None
            setattr(config, name, value)

        await self.session.flush()
        return await self.get_config(company_id, config_id)

    async def delete_config(self, company_id: UUID, config_id: UUID) -> None:
        """Delete a draft config together with its items and calculations."""
        config = await self.get_config(company_id, config_id)
        if not RetroConfigStateMachine.can_edit_definition(config.status):
            raise RetroConfigLockedError(
                config_id, config.status, "only draft configs can be deleted"
            )

        processed = await self._count_calculations(company_id, config_id, processed_only=True)
        if processed:
            raise RetroConfigLockedError(
                config_id, config.status, f"{processed} calculation(s) already processed"
            )

        await self.session.execute(
            delete(RetroactivePayCalculation).where(
                RetroactivePayCalculation.company_id == company_id,
                RetroactivePayCalculation.config_id == config_id,
            )
        )
        await self.session.delete(config)
        await self.session.flush()
        logger.info("Deleted retro config %s", config_id)

    async def add_config_item(
        self,
        company_id: UUID,
        config_id: UUID,
        pay_element_id: UUID,
        increase_type: str,
        increase_value: Decimal,
        min_amount: Decimal | None = None,
        max_amount: Decimal | None = None,
        notes: str | None = None,
    ) -> RetroactivePayConfigItem:
        """Add a pay element increase to a draft config."""
        config = await self._get_editable_config(company_id, config_id)
        errors = _validate_item(increase_type, increase_value, min_amount, max_amount)
        if errors:
            raise RetroConfigValidationError(errors)
        await self._require_pay_element(company_id, pay_element_id)

        item = RetroactivePayConfigItem(
            config_id=config.config_id,
            pay_element_id=pay_element_id,
            increase_type=increase_type,
            increase_value=increase_value,
            min_amount=min_amount,
            max_amount=max_amount,
            notes=notes,
        )
        self.session.add(item)
        await self.session.flush()
        return await self._get_item(company_id, item.config_item_id)

    async def update_config_item(
        self,
        company_id: UUID,
        config_item_id: UUID,
        changes: dict[str, Any],
    ) -> RetroactivePayConfigItem:
        """Change an item of a draft config."""
        item = await self._get_item(company_id, config_item_id)
        await self._get_editable_config(company_id, item.config_id)

        unknown = set(changes) - ITEM_FIELDS
        if unknown:
            raise RetroConfigValidationError([f"Unknown field: {name}" for name in sorted(unknown)])
        missing = sorted(
            name for name in REQUIRED_ITEM_FIELDS if name in changes and changes[name] is None
        )
        if missing:
            raise RetroConfigValidationError([f"{name} cannot be null" for name in missing])

        errors = _validate_item(
            changes.get("increase_type", item.increase_type),
            changes.get("increase_value", item.increase_value),
            changes.get("min_amount", item.min_amount),
            changes.get("max_amount", item.max_amount),
        )
        if errors:
            raise RetroConfigValidationError(errors)
        if "pay_element_id" in changes:
            await self._require_pay_element(company_id, changes["pay_element_id"])

        for name, value in changes.items():
            setattr(item, name, value)
        await self.session.flush()
        return await self._get_item(company_id, config_item_id)

    async def delete_config_item(self, company_id: UUID, config_item_id: UUID) -> None:
        """Remove an item from a draft config."""
        item = await self._get_item(company_id, config_item_id)
        await self._get_editable_config(company_id, item.config_id)
        await self.session.delete(item)
        await self.session.flush()

    async def approve_config(
        self,
        company_id: UUID,
        config_id: UUID,
        approved_by: UUID | None = None,
    ) -> RetroactivePayConfig:
        """Approve a draft config so its calculations feed payroll runs."""
        config = await self.get_config(company_id, config_id)
        RetroConfigStateMachine.validate_transition(config.status, RetroConfigStatus.APPROVED.value)

        errors = RetroConfigStateMachine.validate_config_for_transition(
            config, RetroConfigStatus.APPROVED.value
        )
        if errors:
            raise RetroConfigValidationError(errors)

        config.status = RetroConfigStatus.APPROVED.value
        config.approved_at = utcnow()
        config.approved_by = approved_by
        await self.session.flush()
        logger.info("Approved retro config %s", config_id)
        return config

    async def cancel_config(self, company_id: UUID, config_id: UUID) -> RetroactivePayConfig:
        """Cancel a config; its pending calculations stop feeding payroll runs."""
        config = await self.get_config(company_id, config_id)
        RetroConfigStateMachine.validate_transition(
            config.status, RetroConfigStatus.CANCELLED.value
        )
        config.status = RetroConfigStatus.CANCELLED.value
        await self.session.flush()
        logger.info("Cancelled retro config %s", config_id)
        return config

    async def discard_calculations(self, company_id: UUID, config_id: UUID) -> int:
        """Delete a draft config's generated calculations so it can be edited again.

        Returns the number of rows removed.
        """
        config = await self.get_config(company_id, config_id)
        if not RetroConfigStateMachine.can_edit_definition(config.status):
            raise RetroConfigLockedError(
                config_id, config.status, "calculations of a non-draft config are kept"
            )
        processed = await self._count_calculations(company_id, config_id, processed_only=True)
        if processed:
            raise RetroConfigLockedError(
                config_id, config.status, f"{processed} calculation(s) already processed"
            )

        result = await self.session.execute(
            delete(RetroactivePayCalculation).where(
                RetroactivePayCalculation.company_id == company_id,
                RetroactivePayCalculation.config_id == config_id,
            )
        )
        await self.session.flush()
        logger.info("Discarded %d calculation(s) of retro config %s", result.rowcount, config_id)
        return result.rowcount

    async def _get_editable_config(
        self, company_id: UUID, config_id: UUID
    ) -> RetroactivePayConfig:
        config = await self.get_config(company_id, config_id)
        if not RetroConfigStateMachine.can_edit_definition(config.status):
            raise RetroConfigLockedError(
                config_id, config.status, "items can only change while draft"
            )
        await self._require_no_calculations(company_id, config)
        return config

    async def _require_no_calculations(
        self, company_id: UUID, config: RetroactivePayConfig
    ) -> None:
        generated = await self._count_calculations(company_id, config.config_id)
        if generated:
            raise RetroConfigLockedError(
                config.config_id,
                config.status,
                f"{generated} calculation(s) already generated; discard them before editing",
            )

    async def _get_item(self, company_id: UUID, config_item_id: UUID) -> RetroactivePayConfigItem:
        result = await self.session.execute(
            select(RetroactivePayConfigItem)
            .join(
                RetroactivePayConfig,
                RetroactivePayConfig.config_id == RetroactivePayConfigItem.config_id,
            )
            .where(
                RetroactivePayConfig.company_id == company_id,
                RetroactivePayConfigItem.config_item_id == config_item_id,
            )
            .options(selectinload(RetroactivePayConfigItem.pay_element))
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise RetroConfigNotFoundError("Config item", config_item_id)
        return item

    async def _require_pay_group(self, company_id: UUID, pay_group_id: UUID) -> None:
        found = await self.session.scalar(
            select(PayGroup.pay_group_id).where(
                PayGroup.company_id == company_id,
                PayGroup.pay_group_id == pay_group_id,
            )
        )
        if found is None:
            raise RetroConfigNotFoundError("Pay group", pay_group_id)

    async def _require_pay_period(self, company_id: UUID, pay_period_id: UUID) -> None:
        found = await self.session.scalar(
            select(PayPeriod.pay_period_id).where(
                PayPeriod.company_id == company_id,
                PayPeriod.pay_period_id == pay_period_id,
            )
        )
        if found is None:
            raise RetroConfigNotFoundError("Pay period", pay_period_id)

    async def _require_pay_element(self, company_id: UUID, pay_element_id: UUID) -> None:
        found = await self.session.scalar(
            select(PayElement.pay_element_id).where(
                PayElement.company_id == company_id,
                PayElement.pay_element_id == pay_element_id,
            )
        )
        if found is None:
            raise RetroConfigNotFoundError("Pay element", pay_element_id)

    async def _count_calculations(
        self, company_id: UUID, config_id: UUID, processed_only: bool = False
    ) -> int:
        query = (
            select(func.count())
            .select_from(RetroactivePayCalculation)
            .where(
                RetroactivePayCalculation.company_id == company_id,
                RetroactivePayCalculation.config_id == config_id,
            )
        )
        if processed_only:
            query = query.where(RetroactivePayCalculation.processed_in_run_id.is_not(None))
        result = await self.session.execute(query)
        return int(result.scalar() or 0)


def _validate_dates(start: date, end: date) -> list[str]:
    if end < start:
        return ["Effective end date must be on or after the start date"]
    return []


def _validate_item(
    increase_type: str,
    increase_value: Decimal | None,
    min_amount: Decimal | None,
    max_amount: Decimal | None,
) -> list[str]:
    errors: list[str] = []
    if increase_type not in {t.value for t in IncreaseType}:
        errors.append(f"Increase type must be one of: percentage, fixed (got {increase_type!r})")
    if increase_value is None or increase_value <= 0:
        errors.append("Increase value must be greater than zero")
    if min_amount is not None and min_amount < 0:
        errors.append("Minimum amount cannot be negative")
    if max_amount is not None and max_amount < 0:
        errors.append("Maximum amount cannot be negative")
    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        errors.append("Minimum amount cannot exceed maximum amount")
    return errors
