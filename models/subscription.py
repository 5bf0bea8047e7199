from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BillingType(str, Enum):
    monthly = "monthly"  # standard 1-month billing
    custom = "custom"  # 3, 6, 12... months


class SubscriptionStatus(str, Enum):
    pending = "pending"  # awaiting trainer approval
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    offline = "offline"
    online = "online"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    rejected = "rejected"


class SubscriptionCreate(BaseModel):
    client_id: str = Field(min_length=1)
    trainer_id: str = Field(min_length=1)
    plan_id: int
    billing_type: BillingType = BillingType.monthly
    billing_months: int = Field(default=1, ge=1)
    payment_method: PaymentMethod
    auto_renew: Optional[bool] = None  # defaults to billing_type == monthly


class SubscriptionRenew(BaseModel):
    payment_status: Optional[PaymentStatus] = None  # None keeps the current status


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: str
    trainer_id: str
    plan_id: Optional[int] = None
    plan_name: Optional[str] = None
    plan_currency: Optional[str] = None
    billing_type: BillingType
    billing_months: int
    monthly_amount: float
    total_amount: float
    discount: float
    sessions_per_month: int
    remaining_sessions: int
    total_sessions_in_period: int
    current_period_start: date
    current_period_end: date
    status: SubscriptionStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    auto_renew: bool
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SubscriptionStats(BaseModel):
    pending_count: int
    active_count: int
    total_count: int
    total_revenue: float
