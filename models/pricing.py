from enum import Enum
from typing import Optional

from pydantic import BaseModel


class DiscountSource(str, Enum):
    client = "client"
    global_rule = "global"
    plan = "plan"


class PriceQuote(BaseModel):
    """Computed price for a plan over a billing duration. Never persisted."""
    plan_id: int
    original_monthly_price: float
    discount: float
    discount_source: DiscountSource
    pricing_rule_id: Optional[int] = None
    discounted_monthly_price: float
    total_price: float
    yearly_price: float
    billing_months: int
    currency: str
    sessions_per_month: int
    total_sessions: int


class FinalPrice(BaseModel):
    original_amount: float
    discount: float
    discount_amount: float
    final_amount: float
