"""
Plan Service - trainer subscription plans
"""

import logging
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings, DEFAULT_PLAN_FEATURES
from crud.plan import PlanRepository
from database_models import TrainerPlan
from models.plan import PlanCreate, PlanUpdate
from services.errors import ConflictError, InvalidArgumentError, NotFoundError
from services.pricing_service import validate_discount

logger = logging.getLogger(__name__)


class PlanService:
    """
    Service for trainer plans.
    Plans are soft-deactivated through is_active; hard deletion is refused
    while active or pending subscriptions reference the plan.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.plan_repo = PlanRepository(db)

    async def create_plan(self, request: PlanCreate) -> TrainerPlan:
        discount = validate_discount(request.discount, field="discount")
        if request.sessions_per_month < 1:
            raise InvalidArgumentError("sessions_per_month must be at least 1")
        if request.monthly_price < 0:
            raise InvalidArgumentError("monthly_price must not be negative")

        plan = await self.plan_repo.create_plan({
            "trainer_id": request.trainer_id,
            "name": request.name,
            "description": request.description,
            "sessions_per_month": request.sessions_per_month,
            "monthly_price": request.monthly_price,
            "currency": (request.currency or settings.default_currency).upper(),
            "discount": discount,
            "features": request.features if request.features is not None else list(DEFAULT_PLAN_FEATURES),
            "is_visible": request.is_visible,
        })
        logger.info(f"Plan {plan.id} '{plan.name}' created for trainer {plan.trainer_id}")
        return plan

    async def get_plan(self, plan_id: int) -> TrainerPlan:
        plan = await self.plan_repo.get_plan_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        return plan

    async def get_trainer_plans(self, trainer_id: str) -> List[TrainerPlan]:
        return await self.plan_repo.get_trainer_plans(trainer_id)

    async def get_visible_trainer_plans(self, trainer_id: str) -> List[TrainerPlan]:
        return await self.plan_repo.get_visible_trainer_plans(trainer_id)

    async def update_plan(self, plan_id: int, changes: PlanUpdate) -> TrainerPlan:
        """
        Apply a partial update. Fields left as None in `changes` are not touched.
        """
        plan = await self.get_plan(plan_id)

        discount = None
        if changes.discount is not None:
            discount = validate_discount(changes.discount, field="discount")
        if changes.sessions_per_month is not None and changes.sessions_per_month < 1:
            raise InvalidArgumentError("sessions_per_month must be at least 1")
        if changes.monthly_price is not None and changes.monthly_price < 0:
            raise InvalidArgumentError("monthly_price must not be negative")

        plan = await self.plan_repo.update_plan(
            plan,
            name=changes.name,
            description=changes.description,
            sessions_per_month=changes.sessions_per_month,
            monthly_price=changes.monthly_price,
            currency=changes.currency.upper() if changes.currency else None,
            is_visible=changes.is_visible,
            is_active=changes.is_active,
            discount=discount,
            features=changes.features,
        )
        logger.info(f"Plan {plan.id} updated")
        return plan

    async def toggle_visibility(self, plan_id: int) -> TrainerPlan:
        plan = await self.get_plan(plan_id)
        return await self.plan_repo.update_plan(plan, is_visible=not plan.is_visible)

    async def toggle_active(self, plan_id: int) -> TrainerPlan:
        plan = await self.get_plan(plan_id)
        return await self.plan_repo.update_plan(plan, is_active=not plan.is_active)

    async def delete_plan(self, plan_id: int) -> None:
        """
        Raises:
            NotFoundError: plan does not exist
            ConflictError: active or pending subscriptions reference the plan
        """
        plan = await self.get_plan(plan_id)
        blocking = await self.plan_repo.count_blocking_subscriptions(plan_id)
        if blocking:
            logger.warning(f"Refusing to delete plan {plan_id}: {blocking} active subscription(s)")
            raise ConflictError(
                "Cannot delete plan with active subscriptions. Please cancel all subscriptions first."
            )
        await self.plan_repo.delete_plan(plan)
        logger.info(f"Plan {plan_id} deleted")
