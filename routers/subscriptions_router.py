"""
Subscriptions Router - client subscriptions to trainer plans
"""

import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.responses import success_response
from database import get_db
from models.subscription import SubscriptionCreate, SubscriptionRenew
from services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

subscriptions_router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@subscriptions_router.post("")
async def create_subscription(request: SubscriptionCreate, db: AsyncSession = Depends(get_db)):
    """
    Subscribe a client to a plan.
    Monthly and total amounts are computed from the plan and the client's discount.
    """
    subscription = await SubscriptionService(db).create_subscription(request)
    return success_response(subscription.model_dump(mode="json"), message="Subscription created", status=201)


@subscriptions_router.get("/active")
async def get_active_client_subscription(
    client_id: str = Query(..., min_length=1),
    trainer_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    subscription = await SubscriptionService(db).get_active_client_subscription(client_id, trainer_id)
    return success_response({"subscription": subscription.model_dump(mode="json") if subscription else None})


@subscriptions_router.get("/client/{client_id}")
async def get_client_subscriptions(client_id: str, db: AsyncSession = Depends(get_db)):
    subscriptions = await SubscriptionService(db).get_client_subscriptions(client_id)
    return success_response([s.model_dump(mode="json") for s in subscriptions])


@subscriptions_router.get("/trainer/{trainer_id}")
async def get_trainer_subscriptions(trainer_id: str, db: AsyncSession = Depends(get_db)):
    subscriptions = await SubscriptionService(db).get_trainer_subscriptions(trainer_id)
    return success_response([s.model_dump(mode="json") for s in subscriptions])


@subscriptions_router.get("/trainer/{trainer_id}/stats")
async def get_trainer_subscription_stats(trainer_id: str, db: AsyncSession = Depends(get_db)):
    stats = await SubscriptionService(db).get_trainer_stats(trainer_id)
    return success_response(stats.model_dump(mode="json"))


@subscriptions_router.get("/{subscription_id}")
async def get_subscription(subscription_id: int, db: AsyncSession = Depends(get_db)):
    subscription = await SubscriptionService(db).get_subscription(subscription_id)
    return success_response(subscription.model_dump(mode="json"))


@subscriptions_router.post("/{subscription_id}/approve")
async def approve_subscription(subscription_id: int, db: AsyncSession = Depends(get_db)):
    """Trainer marks the payment as received; the subscription becomes active."""
    subscription = await SubscriptionService(db).approve_subscription(subscription_id)
    return success_response(subscription.model_dump(mode="json"), message="Subscription approved")


@subscriptions_router.post("/{subscription_id}/cancel")
async def cancel_subscription(subscription_id: int, db: AsyncSession = Depends(get_db)):
    subscription = await SubscriptionService(db).cancel_subscription(subscription_id)
    return success_response(subscription.model_dump(mode="json"), message="Subscription cancelled")


@subscriptions_router.post("/{subscription_id}/renew")
async def renew_subscription(
    subscription_id: int,
    request: Optional[SubscriptionRenew] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    subscription = await SubscriptionService(db).renew_subscription(subscription_id, request or SubscriptionRenew())
    return success_response(subscription.model_dump(mode="json"), message="Subscription renewed")


@subscriptions_router.post("/{subscription_id}/deduct-session")
async def deduct_session(subscription_id: int, db: AsyncSession = Depends(get_db)):
    remaining = await SubscriptionService(db).deduct_session(subscription_id)
    return success_response({"remaining_sessions": remaining})
