"""
Pricing Router - trainer discounts (pricing rules)
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.responses import success_response
from database import get_db
from models.pricing_rule import (
    FinalPriceRequest,
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
)
from services.pricing_rule_service import PricingRuleService
from services.pricing_service import PricingService

logger = logging.getLogger(__name__)

pricing_router = APIRouter(prefix="/api/pricing-rules", tags=["pricing"])


def _rule_data(rule):
    return PricingRuleResponse.model_validate(rule).model_dump(mode="json")


# Defined before /{rule_id} routes so "final-price" is never parsed as an id
@pricing_router.post("/final-price")
async def calculate_final_price(request: FinalPriceRequest, db: AsyncSession = Depends(get_db)):
    """
    Apply the client's effective discount (client rule, else global rule) to an amount.
    Plan defaults are not considered here.
    """
    result = await PricingService(db).calculate_final_price(
        request.trainer_id, request.client_id, request.original_amount
    )
    return success_response(result.model_dump(mode="json"))


@pricing_router.post("")
async def create_pricing_rule(request: PricingRuleCreate, db: AsyncSession = Depends(get_db)):
    """Create a discount. Leave client_id empty to apply it to all of the trainer's clients."""
    rule = await PricingRuleService(db).create_rule(request)
    return success_response(_rule_data(rule), message="Pricing rule created", status=201)


@pricing_router.get("/trainer/{trainer_id}")
async def get_trainer_pricing_rules(trainer_id: str, db: AsyncSession = Depends(get_db)):
    rules = await PricingRuleService(db).get_trainer_rules(trainer_id)
    return success_response([_rule_data(r) for r in rules])


@pricing_router.get("/trainer/{trainer_id}/client/{client_id}")
async def get_client_pricing_rule(trainer_id: str, client_id: str, db: AsyncSession = Depends(get_db)):
    """The rule that applies to a client, or null when none does."""
    rule = await PricingService(db).get_effective_rule(trainer_id, client_id)
    return success_response({"rule": _rule_data(rule) if rule else None})


@pricing_router.get("/trainer/{trainer_id}/client/{client_id}/discount")
async def get_client_discount(trainer_id: str, client_id: str, db: AsyncSession = Depends(get_db)):
    discount = await PricingService(db).get_client_discount(trainer_id, client_id)
    return success_response({"discount_percentage": discount})


@pricing_router.patch("/{rule_id}")
async def update_pricing_rule(rule_id: int, changes: PricingRuleUpdate, db: AsyncSession = Depends(get_db)):
    """Partially update a rule. Omitted (or null) fields keep their stored value."""
    rule = await PricingRuleService(db).update_rule(rule_id, changes)
    return success_response(_rule_data(rule), message="Pricing rule updated")


@pricing_router.delete("/{rule_id}")
async def delete_pricing_rule(rule_id: int, db: AsyncSession = Depends(get_db)):
    await PricingRuleService(db).delete_rule(rule_id)
    return success_response({"id": rule_id}, message="Pricing rule deleted")
