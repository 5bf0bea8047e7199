"""
Plans Router - trainer plan management and price quotes
"""

import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.responses import success_response
from database import get_db
from models.plan import PlanCreate, PlanResponse, PlanUpdate
from services.plan_service import PlanService
from services.pricing_service import PricingService

logger = logging.getLogger(__name__)

plans_router = APIRouter(prefix="/api/plans", tags=["plans"])


def _plan_data(plan):
    return PlanResponse.model_validate(plan).model_dump(mode="json")


@plans_router.post("")
async def create_plan(request: PlanCreate, db: AsyncSession = Depends(get_db)):
    """Create a plan for a trainer. New plans are active and visible unless told otherwise."""
    plan = await PlanService(db).create_plan(request)
    return success_response(_plan_data(plan), message="Plan created", status=201)


@plans_router.get("/trainer/{trainer_id}")
async def get_trainer_plans(trainer_id: str, db: AsyncSession = Depends(get_db)):
    """All plans of a trainer, newest first."""
    plans = await PlanService(db).get_trainer_plans(trainer_id)
    return success_response([_plan_data(p) for p in plans])


@plans_router.get("/trainer/{trainer_id}/visible")
async def get_visible_trainer_plans(trainer_id: str, db: AsyncSession = Depends(get_db)):
    """Plans clients can see: visible and active."""
    plans = await PlanService(db).get_visible_trainer_plans(trainer_id)
    return success_response([_plan_data(p) for p in plans])


@plans_router.get("/{plan_id}")
async def get_plan(plan_id: int, db: AsyncSession = Depends(get_db)):
    plan = await PlanService(db).get_plan(plan_id)
    return success_response(_plan_data(plan))


@plans_router.patch("/{plan_id}")
async def update_plan(plan_id: int, changes: PlanUpdate, db: AsyncSession = Depends(get_db)):
    """
    Partially update a plan.
    Omitted (or null) fields keep their stored value.
    """
    plan = await PlanService(db).update_plan(plan_id, changes)
    return success_response(_plan_data(plan), message="Plan updated")


@plans_router.post("/{plan_id}/toggle-visibility")
async def toggle_plan_visibility(plan_id: int, db: AsyncSession = Depends(get_db)):
    plan = await PlanService(db).toggle_visibility(plan_id)
    return success_response(_plan_data(plan))


@plans_router.post("/{plan_id}/toggle-active")
async def toggle_plan_active(plan_id: int, db: AsyncSession = Depends(get_db)):
    plan = await PlanService(db).toggle_active(plan_id)
    return success_response(_plan_data(plan))


@plans_router.delete("/{plan_id}")
async def delete_plan(plan_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a plan. Fails with 409 while active or pending subscriptions use it."""
    await PlanService(db).delete_plan(plan_id)
    return success_response({"id": plan_id}, message="Plan deleted")


@plans_router.get("/{plan_id}/price")
async def calculate_price(
    plan_id: int,
    trainer_id: str = Query(..., min_length=1),
    client_id: str = Query(..., min_length=1),
    billing_months: int = Query(1),
    db: AsyncSession = Depends(get_db),
):
    """
    Quote a plan for a client.

    The discount comes from the client's own rule, else the trainer's global
    rule, else the plan default.

    Args:
        plan_id: Plan to price
        trainer_id: Trainer whose pricing rules apply
        client_id: Client the quote is for
        billing_months: Months billed up front, at least 1

    Returns:
        JSON response with the price quote
    """
    quote = await PricingService(db).resolve_price(plan_id, trainer_id, client_id, billing_months)
    return success_response(quote.model_dump(mode="json"))
