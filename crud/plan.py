"""
PlanRepository for database operations on TrainerPlan model
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, update
from database_models import ClientSubscription, TrainerPlan
from models.subscription import SubscriptionStatus

# Subscriptions in these states keep their plan from being deleted
BLOCKING_SUBSCRIPTION_STATUSES = (SubscriptionStatus.active, SubscriptionStatus.pending)


class PlanRepository:
    """
    Repository class for TrainerPlan database operations.
    Encapsulates all database logic for trainer plans.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_plan_by_id(self, plan_id: int) -> Optional[TrainerPlan]:
        """
        Retrieve a plan by ID.

        Args:
            plan_id: Plan's ID

        Returns:
            TrainerPlan object if found, None otherwise
        """
        result = await self.db.execute(
            select(TrainerPlan).where(TrainerPlan.id == plan_id)
        )
        return result.scalar_one_or_none()

    async def get_trainer_plans(self, trainer_id: str) -> List[TrainerPlan]:
        """All plans of a trainer, newest first."""
        result = await self.db.execute(
            select(TrainerPlan)
            .where(TrainerPlan.trainer_id == trainer_id)
            .order_by(TrainerPlan.created_at.desc(), TrainerPlan.id.desc())
        )
        return list(result.scalars().all())

    async def get_visible_trainer_plans(self, trainer_id: str) -> List[TrainerPlan]:
        """Plans a client may subscribe to: visible and active."""
        result = await self.db.execute(
            select(TrainerPlan)
            .where(
                TrainerPlan.trainer_id == trainer_id,
                TrainerPlan.is_visible.is_(True),
                TrainerPlan.is_active.is_(True),
            )
            .order_by(TrainerPlan.created_at.desc(), TrainerPlan.id.desc())
        )
        return list(result.scalars().all())

    async def create_plan(self, plan_data: dict) -> TrainerPlan:
        """
        Create a new plan in the database.

        Args:
            plan_data: Dictionary containing plan data. Must include:
                - trainer_id, name, sessions_per_month, monthly_price, currency
                Optional:
                - description (defaults to "")
                - discount (defaults to 0)
                - features (defaults to [])
                - is_visible (defaults to True)

        Returns:
            Created TrainerPlan object
        """
        now = datetime.utcnow()
        plan = TrainerPlan(
            trainer_id=plan_data["trainer_id"],
            name=plan_data["name"],
            description=plan_data.get("description", ""),
            sessions_per_month=plan_data["sessions_per_month"],
            monthly_price=plan_data["monthly_price"],
            currency=plan_data["currency"],
            is_visible=plan_data.get("is_visible", True),
            is_active=True,
            discount=plan_data.get("discount", 0.0),
            features=plan_data.get("features", []),
            created_at=now,
            updated_at=now,
        )
        self.db.add(plan)
        await self.db.flush()  # Flush to get the ID without committing
        await self.db.refresh(plan)
        return plan

    async def update_plan(
        self,
        plan: TrainerPlan,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        sessions_per_month: Optional[int] = None,
        monthly_price: Optional[float] = None,
        currency: Optional[str] = None,
        is_visible: Optional[bool] = None,
        is_active: Optional[bool] = None,
        discount: Optional[float] = None,
        features: Optional[List[str]] = None,
    ) -> TrainerPlan:
        """
        Update plan fields. Each argument left as None keeps the stored value.

        Returns:
            Updated TrainerPlan object
        """
        if name is not None:
            plan.name = name
        if description is not None:
            plan.description = description
        if sessions_per_month is not None:
            plan.sessions_per_month = sessions_per_month
        if monthly_price is not None:
            plan.monthly_price = monthly_price
        if currency is not None:
            plan.currency = currency
        if is_visible is not None:
            plan.is_visible = is_visible
        if is_active is not None:
            plan.is_active = is_active
        if discount is not None:
            plan.discount = discount
        if features is not None:
            plan.features = list(features)
        plan.updated_at = datetime.utcnow()

        await self.db.flush()
        await self.db.refresh(plan)
        return plan

    async def count_blocking_subscriptions(self, plan_id: int) -> int:
        """Number of active or pending subscriptions referencing the plan."""
        result = await self.db.execute(
            select(func.count(ClientSubscription.id)).where(
                ClientSubscription.plan_id == plan_id,
                ClientSubscription.status.in_(BLOCKING_SUBSCRIPTION_STATUSES),
            )
        )
        return result.scalar_one()

    async def delete_plan(self, plan: TrainerPlan) -> None:
        """Delete a plan, detaching the (inactive) subscriptions that still point at it."""
        await self.db.execute(
            update(ClientSubscription)
            .where(ClientSubscription.plan_id == plan.id)
            .values(plan_id=None)
        )
        await self.db.delete(plan)
        await self.db.flush()
