"""
Pricing Rule Service - trainer-managed discounts
"""

import logging
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from crud.pricing_rule import PricingRuleRepository
from database_models import PricingRule
from models.pricing_rule import PricingRuleCreate, PricingRuleUpdate
from services.errors import InvalidArgumentError, NotFoundError
from services.pricing_service import validate_discount

logger = logging.getLogger(__name__)


class PricingRuleService:
    """
    Create, update and delete pricing rules.
    Discount percentages are validated here before anything reaches the database.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.rule_repo = PricingRuleRepository(db)

    async def create_rule(self, request: PricingRuleCreate) -> PricingRule:
        discount = validate_discount(request.discount_percentage)
        description = request.description.strip()
        if not description:
            raise InvalidArgumentError("description is required")

        rule = await self.rule_repo.create_rule({
            "trainer_id": request.trainer_id,
            "client_id": request.client_id or None,
            "discount_percentage": discount,
            "description": description,
        })
        scope = f"client {rule.client_id}" if rule.client_id else "all clients"
        logger.info(f"Pricing rule {rule.id} created: {discount}% for {scope} of trainer {rule.trainer_id}")
        return rule

    async def get_rule(self, rule_id: int) -> PricingRule:
        rule = await self.rule_repo.get_rule_by_id(rule_id)
        if rule is None:
            raise NotFoundError(f"Pricing rule {rule_id} not found")
        return rule

    async def get_trainer_rules(self, trainer_id: str) -> List[PricingRule]:
        return await self.rule_repo.get_trainer_rules(trainer_id)

    async def update_rule(self, rule_id: int, changes: PricingRuleUpdate) -> PricingRule:
        """
        Apply a partial update. Fields left as None in `changes` are not touched.

        Raises:
            NotFoundError: rule does not exist
            InvalidArgumentError: discount outside [0, 100] or blank description
        """
        rule = await self.get_rule(rule_id)

        discount = None
        if changes.discount_percentage is not None:
            discount = validate_discount(changes.discount_percentage)
        description = None
        if changes.description is not None:
            description = changes.description.strip()
            if not description:
                raise InvalidArgumentError("description must not be blank")

        rule = await self.rule_repo.update_rule(
            rule,
            discount_percentage=discount,
            description=description,
            is_active=changes.is_active,
        )
        logger.info(f"Pricing rule {rule.id} updated")
        return rule

    async def delete_rule(self, rule_id: int) -> None:
        rule = await self.get_rule(rule_id)
        await self.rule_repo.delete_rule(rule)
        logger.info(f"Pricing rule {rule_id} deleted")
