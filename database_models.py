from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from datetime import datetime
from database import Base
from models.subscription import BillingType, PaymentMethod, PaymentStatus, SubscriptionStatus


class TrainerPlan(Base):
    """
    Monthly subscription plan offered by a trainer.
    Soft-deactivated through is_active while subscriptions reference it.
    """
    __tablename__ = "trainer_plans"

    id = Column(Integer, primary_key=True, index=True)
    trainer_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    sessions_per_month = Column(Integer, nullable=False)
    monthly_price = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False)
    is_visible = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    discount = Column(Float, nullable=False, default=0.0)
    features = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_trainer_plans_discount_range"),
        CheckConstraint("monthly_price >= 0", name="ck_trainer_plans_price_non_negative"),
    )


class PricingRule(Base):
    """
    Discount override for a trainer.
    client_id set: applies to that client only. client_id NULL: applies to every client.
    """
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    trainer_id = Column(String, nullable=False, index=True)
    client_id = Column(String, nullable=True, index=True)
    discount_percentage = Column(Float, nullable=False)
    description = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_pricing_rules_trainer_client", "trainer_id", "client_id"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_pricing_rules_discount_range",
        ),
    )


class ClientSubscription(Base):
    """Client subscription to a trainer plan, priced at subscription time."""
    __tablename__ = "client_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(String, nullable=False, index=True)
    trainer_id = Column(String, nullable=False, index=True)
    # Cancelled and expired subscriptions outlive their plan
    plan_id = Column(Integer, ForeignKey("trainer_plans.id", ondelete="SET NULL"), nullable=True, index=True)

    billing_type = Column(Enum(BillingType), nullable=False, default=BillingType.monthly)
    billing_months = Column(Integer, nullable=False, default=1)

    # Pricing captured from the quote at subscription time
    monthly_amount = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0.0)

    sessions_per_month = Column(Integer, nullable=False)
    remaining_sessions = Column(Integer, nullable=False)
    total_sessions_in_period = Column(Integer, nullable=False)

    current_period_start = Column(Date, nullable=False)
    current_period_end = Column(Date, nullable=False)

    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.pending, index=True)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.pending)
    auto_renew = Column(Boolean, nullable=False, default=False)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_client_subscriptions_client_trainer", "client_id", "trainer_id"),
    )
