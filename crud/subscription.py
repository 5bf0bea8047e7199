"""
SubscriptionRepository for database operations on ClientSubscription model
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import ClientSubscription


class SubscriptionRepository:
    """
    Repository class for ClientSubscription database operations.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_subscription_by_id(self, subscription_id: int) -> Optional[ClientSubscription]:
        result = await self.db.execute(
            select(ClientSubscription).where(ClientSubscription.id == subscription_id)
        )
        return result.scalar_one_or_none()

    async def get_client_subscriptions(self, client_id: str) -> List[ClientSubscription]:
        result = await self.db.execute(
            select(ClientSubscription)
            .where(ClientSubscription.client_id == client_id)
            .order_by(ClientSubscription.created_at.desc(), ClientSubscription.id.desc())
        )
        return list(result.scalars().all())

    async def get_trainer_subscriptions(self, trainer_id: str) -> List[ClientSubscription]:
        result = await self.db.execute(
            select(ClientSubscription)
            .where(ClientSubscription.trainer_id == trainer_id)
            .order_by(ClientSubscription.created_at.desc(), ClientSubscription.id.desc())
        )
        return list(result.scalars().all())

    async def get_client_trainer_subscriptions(self, client_id: str, trainer_id: str) -> List[ClientSubscription]:
        result = await self.db.execute(
            select(ClientSubscription)
            .where(
                ClientSubscription.client_id == client_id,
                ClientSubscription.trainer_id == trainer_id,
            )
            .order_by(ClientSubscription.created_at.desc(), ClientSubscription.id.desc())
        )
        return list(result.scalars().all())

    async def create_subscription(self, subscription_data: dict) -> ClientSubscription:
        """
        Create a new subscription.

        Args:
            subscription_data: Column values for ClientSubscription. created_at
                and updated_at are filled in here.

        Returns:
            Created ClientSubscription object
        """
        now = datetime.utcnow()
        subscription = ClientSubscription(**subscription_data, created_at=now, updated_at=now)
        self.db.add(subscription)
        await self.db.flush()
        await self.db.refresh(subscription)
        return subscription

    async def update_subscription(self, subscription: ClientSubscription, updates: dict) -> ClientSubscription:
        """
        Update subscription fields.

        Args:
            subscription: ClientSubscription object to update
            updates: Dictionary of fields to update (e.g., {"status": SubscriptionStatus.cancelled})

        Returns:
            Updated ClientSubscription object
        """
        for key, value in updates.items():
            if hasattr(subscription, key):
                setattr(subscription, key, value)
        subscription.updated_at = datetime.utcnow()

        await self.db.flush()
        await self.db.refresh(subscription)
        return subscription
