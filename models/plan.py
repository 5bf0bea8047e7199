from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanCreate(BaseModel):
    trainer_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    sessions_per_month: int = Field(ge=1)
    monthly_price: float = Field(ge=0)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)  # falls back to DEFAULT_CURRENCY
    discount: float = Field(default=0.0, ge=0, le=100)
    features: Optional[List[str]] = None
    is_visible: bool = True


class PlanUpdate(BaseModel):
    """
    Partial update of a plan.

    Every field is optional: a field that is provided (not None) replaces the
    stored value, a field left as None keeps the stored value.
    """
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    sessions_per_month: Optional[int] = Field(default=None, ge=1)
    monthly_price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
    is_visible: Optional[bool] = None
    is_active: Optional[bool] = None
    discount: Optional[float] = Field(default=None, ge=0, le=100)
    features: Optional[List[str]] = None


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trainer_id: str
    name: str
    description: str
    sessions_per_month: int
    monthly_price: float
    currency: str
    is_visible: bool
    is_active: bool
    discount: float = 0.0
    features: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
