"""
PricingRuleRepository for database operations on PricingRule model
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import PricingRule


class PricingRuleRepository:
    """
    Repository class for PricingRule database operations.

    Rule lookups for price resolution go through two separate indexes:
    (trainer_id, client_id) for client-specific rules and trainer_id with a
    NULL client for the trainer's global rule. When more than one active rule
    shares a scope, the most recently updated one is returned.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_rule_by_id(self, rule_id: int) -> Optional[PricingRule]:
        result = await self.db.execute(
            select(PricingRule).where(PricingRule.id == rule_id)
        )
        return result.scalar_one_or_none()

    async def get_trainer_rules(self, trainer_id: str) -> List[PricingRule]:
        """All rules of a trainer (active or not), newest first."""
        result = await self.db.execute(
            select(PricingRule)
            .where(PricingRule.trainer_id == trainer_id)
            .order_by(PricingRule.created_at.desc(), PricingRule.id.desc())
        )
        return list(result.scalars().all())

    async def get_active_client_rule(self, trainer_id: str, client_id: str) -> Optional[PricingRule]:
        """
        Retrieve the active rule scoped to exactly (trainer_id, client_id).

        Args:
            trainer_id: Trainer the rule belongs to
            client_id: Client the rule is scoped to

        Returns:
            Most recently updated active PricingRule, None if there is none
        """
        result = await self.db.execute(
            select(PricingRule)
            .where(
                PricingRule.trainer_id == trainer_id,
                PricingRule.client_id == client_id,
                PricingRule.is_active.is_(True),
            )
            .order_by(PricingRule.updated_at.desc(), PricingRule.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_active_global_rule(self, trainer_id: str) -> Optional[PricingRule]:
        """
        Retrieve the active trainer-wide rule (no client).

        Returns:
            Most recently updated active global PricingRule, None if there is none
        """
        result = await self.db.execute(
            select(PricingRule)
            .where(
                PricingRule.trainer_id == trainer_id,
                PricingRule.client_id.is_(None),
                PricingRule.is_active.is_(True),
            )
            .order_by(PricingRule.updated_at.desc(), PricingRule.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_rule(self, rule_data: dict) -> PricingRule:
        """
        Create a new pricing rule. Rules are active on creation.

        Args:
            rule_data: Dictionary containing rule data. Must include:
                - trainer_id: str
                - discount_percentage: float
                - description: str
                Optional:
                - client_id: str (None makes the rule global)

        Returns:
            Created PricingRule object
        """
        now = datetime.utcnow()
        rule = PricingRule(
            trainer_id=rule_data["trainer_id"],
            client_id=rule_data.get("client_id"),
            discount_percentage=rule_data["discount_percentage"],
            description=rule_data["description"],
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(rule)
        await self.db.flush()
        await self.db.refresh(rule)
        return rule

    async def update_rule(
        self,
        rule: PricingRule,
        *,
        discount_percentage: Optional[float] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> PricingRule:
        """Update rule fields. Each argument left as None keeps the stored value."""
        if discount_percentage is not None:
            rule.discount_percentage = discount_percentage
        if description is not None:
            rule.description = description
        if is_active is not None:
            rule.is_active = is_active
        rule.updated_at = datetime.utcnow()

        await self.db.flush()
        await self.db.refresh(rule)
        return rule

    async def delete_rule(self, rule: PricingRule) -> None:
        await self.db.delete(rule)
        await self.db.flush()
