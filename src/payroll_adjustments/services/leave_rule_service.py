"""Leave payment rule and tier administration."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_adjustments.calculators.leave_policy import validate_tier, validate_tier_schedule
from payroll_adjustments.calculators.types import TierSpec
from payroll_adjustments.models import LeavePaymentRule, LeavePaymentTier, LeaveType

logger = logging.getLogger(__name__)

RULE_FIELDS = frozenset(
    {"leave_type_id", "code", "name", "description", "start_date", "end_date", "is_active"}
)
REQUIRED_RULE_FIELDS = frozenset({"leave_type_id", "code", "name", "start_date", "is_active"})
TIER_FIELDS = frozenset({"from_day", "to_day", "payment_percentage", "sort_order"})
REQUIRED_TIER_FIELDS = frozenset({"from_day", "payment_percentage", "sort_order"})


class LeaveRuleError(Exception):
    """Base class for leave payment rule administration failures."""


class LeaveRuleNotFoundError(LeaveRuleError):
    """Raised when a rule, tier or leave type does not exist for the company."""

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class LeaveRuleValidationError(LeaveRuleError):
    """Raised when rule or tier values are invalid."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class LeavePaymentRuleService:
    """Service for the tiered payment schedules of reduced-pay leave types.

    Tiers of a rule must stay disjoint day ranges in ascending sort_order;
    every tier change is checked against the rule's other tiers.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_rule(
        self,
        company_id: UUID,
        leave_type_id: UUID,
        code: str,
        name: str,
        start_date: date,
        end_date: date | None = None,
        description: str | None = None,
        is_active: bool = True,
    ) -> LeavePaymentRule:
        """Create a payment rule without tiers."""
        errors = _validate_rule(code, name, start_date, end_date)
        if errors:
            raise LeaveRuleValidationError(errors)
        await self._require_leave_type(company_id, leave_type_id)

        rule = LeavePaymentRule(
            company_id=company_id,
            leave_type_id=leave_type_id,
            code=code.strip(),
            name=name.strip(),
            description=description,
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
        )
        self.session.add(rule)
        await self.session.flush()
        logger.info("Created leave payment rule %s (%s)", rule.leave_payment_rule_id, rule.code)
        return await self.get_rule(company_id, rule.leave_payment_rule_id)

    async def get_rule(self, company_id: UUID, rule_id: UUID) -> LeavePaymentRule:
        """Load a rule with its tiers.

        Raises:
            LeaveRuleNotFoundError: If the rule does not belong to the company
        """
        result = await self.session.execute(
            select(LeavePaymentRule)
            .where(
                LeavePaymentRule.company_id == company_id,
                LeavePaymentRule.leave_payment_rule_id == rule_id,
            )
            .options(selectinload(LeavePaymentRule.tiers))
            .execution_options(populate_existing=True)
        )
        rule = result.scalar_one_or_none()
        if rule is None:
            raise LeaveRuleNotFoundError("Leave payment rule", rule_id)
        return rule

    async def list_rules(
        self,
        company_id: UUID,
        leave_type_id: UUID | None = None,
    ) -> list[LeavePaymentRule]:
        """List rules ordered by name."""
        query = select(LeavePaymentRule).where(LeavePaymentRule.company_id == company_id)
        if leave_type_id is not None:
            query = query.where(LeavePaymentRule.leave_type_id == leave_type_id)

        result = await self.session.execute(
            query.options(selectinload(LeavePaymentRule.tiers)).order_by(LeavePaymentRule.name)
        )
        return list(result.scalars().all())

    async def update_rule(
        self,
        company_id: UUID,
        rule_id: UUID,
        changes: dict[str, Any],
    ) -> LeavePaymentRule:
        """Apply field changes to a rule."""
        rule = await self.get_rule(company_id, rule_id)

        unknown = set(changes) - RULE_FIELDS
        if unknown:
            raise LeaveRuleValidationError([f"Unknown field: {name}" for name in sorted(unknown)])
        missing = sorted(
            name for name in REQUIRED_RULE_FIELDS if name in changes and changes[name] is None
        )
        if missing:
            raise LeaveRuleValidationError([f"{name} cannot be null" for name in missing])

        errors = _validate_rule(
            changes.get("code", rule.code),
            changes.get("name", rule.name),
            changes.get("start_date", rule.start_date),
            changes.get("end_date", rule.end_date),
        )
        if errors:
            raise LeaveRuleValidationError(errors)
        if "leave_type_id" in changes:
            await self._require_leave_type(company_id, changes["leave_type_id"])

        for name, value in changes.items():
            if name in ("code", "name"):
                value = value.strip()
            setattr(rule, name, value)

        await self.session.flush()
        return await self.get_rule(company_id, rule_id)

    async def delete_rule(self, company_id: UUID, rule_id: UUID) -> None:
        """Delete a rule together with its tiers."""
        rule = await self.get_rule(company_id, rule_id)
        await self.session.delete(rule)
        await self.session.flush()
        logger.info("Deleted leave payment rule %s", rule_id)

    async def add_tier(
        self,
        company_id: UUID,
        rule_id: UUID,
        from_day: int,
        payment_percentage: Decimal,
        to_day: int | None = None,
        sort_order: int | None = None,
    ) -> LeavePaymentTier:
        """Add a tier; without a sort_order it goes after the existing tiers."""
        rule = await self.get_rule(company_id, rule_id)
        if sort_order is None:
            sort_order = await self._next_sort_order(rule_id)

        candidate = TierSpec(from_day, to_day, payment_percentage, sort_order)
        self._check_schedule(candidate, [_tier_spec(t) for t in rule.tiers])

        tier = LeavePaymentTier(
            leave_payment_rule_id=rule_id,
            from_day=from_day,
            to_day=to_day,
            payment_percentage=payment_percentage,
            sort_order=sort_order,
        )
        self.session.add(tier)
        await self.session.flush()
        return await self._get_tier(company_id, tier.leave_payment_tier_id)

    async def update_tier(
        self,
        company_id: UUID,
        tier_id: UUID,
        changes: dict[str, Any],
    ) -> LeavePaymentTier:
        """Change a tier, keeping the rule's schedule disjoint."""
        tier = await self._get_tier(company_id, tier_id)

        unknown = set(changes) - TIER_FIELDS
        if unknown:
            raise LeaveRuleValidationError([f"Unknown field: {name}" for name in sorted(unknown)])
        missing = sorted(
            name for name in REQUIRED_TIER_FIELDS if name in changes and changes[name] is None
        )
        if missing:
            raise LeaveRuleValidationError([f"{name} cannot be null" for name in missing])

        candidate = TierSpec(
            from_day=changes.get("from_day", tier.from_day),
            to_day=changes.get("to_day", tier.to_day),
            payment_percentage=changes.get("payment_percentage", tier.payment_percentage),
            sort_order=changes.get("sort_order", tier.sort_order),
        )
        rule = await self.get_rule(company_id, tier.leave_payment_rule_id)
        others = [
            _tier_spec(t) for t in rule.tiers if t.leave_payment_tier_id != tier_id
        ]
        self._check_schedule(candidate, others)

        for name, value in changes.items():
            setattr(tier, name, value)
        await self.session.flush()
        return await self._get_tier(company_id, tier_id)

    async def delete_tier(self, company_id: UUID, tier_id: UUID) -> None:
        """Remove a tier from its rule."""
        tier = await self._get_tier(company_id, tier_id)
        await self.session.delete(tier)
        await self.session.flush()

    def _check_schedule(self, candidate: TierSpec, others: list[TierSpec]) -> None:
        errors = validate_tier(candidate)
        if not errors:
            errors = validate_tier_schedule([*others, candidate])
        if errors:
            raise LeaveRuleValidationError(errors)

    async def _get_tier(self, company_id: UUID, tier_id: UUID) -> LeavePaymentTier:
        result = await self.session.execute(
            select(LeavePaymentTier)
            .join(
                LeavePaymentRule,
                LeavePaymentRule.leave_payment_rule_id == LeavePaymentTier.leave_payment_rule_id,
            )
            .where(
                LeavePaymentRule.company_id == company_id,
                LeavePaymentTier.leave_payment_tier_id == tier_id,
            )
            .execution_options(populate_existing=True)
        )
        tier = result.scalar_one_or_none()
        if tier is None:
            raise LeaveRuleNotFoundError("Leave payment tier", tier_id)
        return tier

    async def _next_sort_order(self, rule_id: UUID) -> int:
        highest = await self.session.scalar(
            select(func.max(LeavePaymentTier.sort_order)).where(
                LeavePaymentTier.leave_payment_rule_id == rule_id
            )
        )
        return 0 if highest is None else highest + 1

    async def _require_leave_type(self, company_id: UUID, leave_type_id: UUID) -> None:
        found = await self.session.scalar(
            select(LeaveType.leave_type_id).where(
                LeaveType.company_id == company_id,
                LeaveType.leave_type_id == leave_type_id,
            )
        )
        if found is None:
            raise LeaveRuleNotFoundError("Leave type", leave_type_id)


def _tier_spec(tier: LeavePaymentTier) -> TierSpec:
    return TierSpec(
        from_day=tier.from_day,
        to_day=tier.to_day,
        payment_percentage=tier.payment_percentage,
        sort_order=tier.sort_order,
    )


def _validate_rule(
    code: str | None,
    name: str | None,
    start_date: date,
    end_date: date | None,
) -> list[str]:
    errors: list[str] = []
    if not code or not code.strip():
        errors.append("Rule code is required")
    if not name or not name.strip():
        errors.append("Rule name is required")
    if end_date is not None and end_date < start_date:
        errors.append("End date must be on or after the start date")
    return errors
