"""
Subscription Service - client subscriptions to trainer plans

Amounts are never taken from the client: every subscription is priced through
the pricing service at creation time and the quote is stored with it.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional
from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from crud.plan import PlanRepository
from crud.subscription import SubscriptionRepository
from database_models import ClientSubscription, TrainerPlan
from models.subscription import (
    BillingType,
    PaymentMethod,
    PaymentStatus,
    SubscriptionCreate,
    SubscriptionRenew,
    SubscriptionResponse,
    SubscriptionStats,
    SubscriptionStatus,
)
from services.errors import InvalidArgumentError, NotFoundError
from services.pricing_service import PricingService

logger = logging.getLogger(__name__)

UNKNOWN_PLAN_NAME = "Unknown Plan"


def billing_period(start: date, billing_months: int) -> tuple:
    """(start, end) of a billing period; month ends are clamped (Jan 31 + 1 month = Feb 28/29)."""
    return start, start + relativedelta(months=billing_months)


class SubscriptionService:
    """
    Service for client subscriptions.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the subscription service.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db
        self.subscription_repo = SubscriptionRepository(db)
        self.plan_repo = PlanRepository(db)
        self.pricing = PricingService(db)

    async def create_subscription(self, request: SubscriptionCreate) -> SubscriptionResponse:
        """
        Subscribe a client to a plan.

        Offline payments wait for trainer approval (status pending), online
        payments start active. Payment status always starts pending.

        Raises:
            NotFoundError: plan does not exist
            InvalidArgumentError: plan belongs to another trainer, is inactive,
                or billing_months < 1
        """
        plan = await self.plan_repo.get_plan_by_id(request.plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {request.plan_id} not found")
        if plan.trainer_id != request.trainer_id:
            raise InvalidArgumentError("Plan does not belong to this trainer")
        if not plan.is_active:
            raise InvalidArgumentError("Plan is not accepting new subscriptions")

        billing_months = request.billing_months
        if request.billing_type == BillingType.monthly and billing_months != 1:
            raise InvalidArgumentError("Monthly billing covers exactly one month")

        quote = await self.pricing.resolve_price(
            plan.id, request.trainer_id, request.client_id, billing_months
        )
        start, end = billing_period(datetime.utcnow().date(), billing_months)
        auto_renew = request.auto_renew
        if auto_renew is None:
            auto_renew = request.billing_type == BillingType.monthly

        subscription = await self.subscription_repo.create_subscription({
            "client_id": request.client_id,
            "trainer_id": request.trainer_id,
            "plan_id": plan.id,
            "billing_type": request.billing_type,
            "billing_months": billing_months,
            "monthly_amount": quote.discounted_monthly_price,
            "total_amount": quote.total_price,
            "discount": quote.discount,
            "sessions_per_month": plan.sessions_per_month,
            "remaining_sessions": plan.sessions_per_month,
            "total_sessions_in_period": quote.total_sessions,
            "current_period_start": start,
            "current_period_end": end,
            "status": (
                SubscriptionStatus.pending
                if request.payment_method == PaymentMethod.offline
                else SubscriptionStatus.active
            ),
            "payment_method": request.payment_method,
            "payment_status": PaymentStatus.pending,
            "auto_renew": auto_renew,
        })
        logger.info(
            f"Subscription {subscription.id} created: client {request.client_id} -> plan {plan.id} "
            f"({billing_months} months, {quote.total_price} {plan.currency})"
        )
        return self._to_response(subscription, plan)

    async def _get(self, subscription_id: int) -> ClientSubscription:
        subscription = await self.subscription_repo.get_subscription_by_id(subscription_id)
        if subscription is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return subscription

    async def get_subscription(self, subscription_id: int) -> SubscriptionResponse:
        subscription = await self._get(subscription_id)
        return (await self._enrich([subscription]))[0]

    async def get_client_subscriptions(self, client_id: str) -> List[SubscriptionResponse]:
        return await self._enrich(await self.subscription_repo.get_client_subscriptions(client_id))

    async def get_trainer_subscriptions(self, trainer_id: str) -> List[SubscriptionResponse]:
        return await self._enrich(await self.subscription_repo.get_trainer_subscriptions(trainer_id))

    async def get_active_client_subscription(
        self, client_id: str, trainer_id: str, today: Optional[date] = None
    ) -> Optional[SubscriptionResponse]:
        """
        The subscription a client can currently book against: active, paid,
        sessions left and the period not over yet.
        """
        today = today or datetime.utcnow().date()
        subscriptions = await self.subscription_repo.get_client_trainer_subscriptions(client_id, trainer_id)
        for subscription in subscriptions:
            if subscription.status != SubscriptionStatus.active:
                continue
            if subscription.payment_status != PaymentStatus.paid:
                continue
            if subscription.remaining_sessions > 0 and subscription.current_period_end >= today:
                return (await self._enrich([subscription]))[0]
        return None

    async def approve_subscription(self, subscription_id: int) -> SubscriptionResponse:
        """Trainer confirms the (offline) payment."""
        subscription = await self._get(subscription_id)
        subscription = await self.subscription_repo.update_subscription(subscription, {
            "payment_status": PaymentStatus.paid,
            "status": SubscriptionStatus.active,
            "approved_at": datetime.utcnow(),
        })
        logger.info(f"Subscription {subscription_id} approved")
        return (await self._enrich([subscription]))[0]

    async def cancel_subscription(self, subscription_id: int) -> SubscriptionResponse:
        subscription = await self._get(subscription_id)
        subscription = await self.subscription_repo.update_subscription(
            subscription, {"status": SubscriptionStatus.cancelled}
        )
        logger.info(f"Subscription {subscription_id} cancelled")
        return (await self._enrich([subscription]))[0]

    async def renew_subscription(self, subscription_id: int, request: SubscriptionRenew) -> SubscriptionResponse:
        """Start a new billing period from today with a full session allowance."""
        subscription = await self._get(subscription_id)
        start, end = billing_period(datetime.utcnow().date(), subscription.billing_months or 1)
        subscription = await self.subscription_repo.update_subscription(subscription, {
            "remaining_sessions": subscription.sessions_per_month,
            "current_period_start": start,
            "current_period_end": end,
            "status": SubscriptionStatus.active,
            "payment_status": request.payment_status or subscription.payment_status,
        })
        logger.info(f"Subscription {subscription_id} renewed until {end.isoformat()}")
        return (await self._enrich([subscription]))[0]

    async def deduct_session(self, subscription_id: int) -> int:
        """
        Use one session of the current month.

        Returns:
            Sessions remaining after the deduction

        Raises:
            InvalidArgumentError: no sessions left this month
        """
        subscription = await self._get(subscription_id)
        if subscription.remaining_sessions <= 0:
            raise InvalidArgumentError("No sessions remaining this month")
        subscription = await self.subscription_repo.update_subscription(
            subscription, {"remaining_sessions": subscription.remaining_sessions - 1}
        )
        return subscription.remaining_sessions

    async def get_trainer_stats(self, trainer_id: str) -> SubscriptionStats:
        subscriptions = await self.subscription_repo.get_trainer_subscriptions(trainer_id)
        pending = [s for s in subscriptions if s.payment_status == PaymentStatus.pending]
        active = [
            s for s in subscriptions
            if s.status == SubscriptionStatus.active and s.payment_status == PaymentStatus.paid
        ]
        return SubscriptionStats(
            pending_count=len(pending),
            active_count=len(active),
            total_count=len(subscriptions),
            total_revenue=sum(s.total_amount or s.monthly_amount or 0.0 for s in active),
        )

    async def _enrich(self, subscriptions: List[ClientSubscription]) -> List[SubscriptionResponse]:
        """Attach plan name and currency, loading each plan once."""
        plans: Dict[int, Optional[TrainerPlan]] = {}
        responses = []
        for subscription in subscriptions:
            plan = None
            if subscription.plan_id is not None:
                if subscription.plan_id not in plans:
                    plans[subscription.plan_id] = await self.plan_repo.get_plan_by_id(subscription.plan_id)
                plan = plans[subscription.plan_id]
            responses.append(self._to_response(subscription, plan))
        return responses

    @staticmethod
    def _to_response(subscription: ClientSubscription, plan: Optional[TrainerPlan]) -> SubscriptionResponse:
        response = SubscriptionResponse.model_validate(subscription)
        response.plan_name = plan.name if plan else UNKNOWN_PLAN_NAME
        response.plan_currency = plan.currency if plan else settings.default_currency
        return response
