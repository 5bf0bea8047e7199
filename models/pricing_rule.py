from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PricingRuleCreate(BaseModel):
    trainer_id: str = Field(min_length=1)
    client_id: Optional[str] = None  # None = applies to all clients of the trainer
    discount_percentage: float = Field(ge=0, le=100)
    description: str = Field(min_length=1)


class PricingRuleUpdate(BaseModel):
    """
    Partial update of a pricing rule.

    A provided field is set, a field left as None is unchanged.
    The rule's scope (trainer and client) cannot be changed.
    """
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    description: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None


class PricingRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trainer_id: str
    client_id: Optional[str] = None
    discount_percentage: float
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FinalPriceRequest(BaseModel):
    trainer_id: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    original_amount: float = Field(ge=0)
