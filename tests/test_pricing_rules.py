"""
Unit tests for PricingRuleService write operations
"""
import pytest

from models.pricing_rule import PricingRuleCreate, PricingRuleUpdate
from services.errors import InvalidArgumentError, NotFoundError
from services.pricing_rule_service import PricingRuleService


@pytest.mark.asyncio
async def test_create_client_and_global_rules(test_db):
    service = PricingRuleService(test_db)

    client_rule = await service.create_rule(PricingRuleCreate(
        trainer_id="trainer_1", client_id="client_1", discount_percentage=15, description="  Loyalty discount ",
    ))
    global_rule = await service.create_rule(PricingRuleCreate(
        trainer_id="trainer_1", discount_percentage=5, description="Summer sale",
    ))

    assert client_rule.is_active is True
    assert client_rule.client_id == "client_1"
    assert client_rule.description == "Loyalty discount"
    assert global_rule.client_id is None

    rules = await service.get_trainer_rules("trainer_1")
    assert {r.id for r in rules} == {client_rule.id, global_rule.id}


@pytest.mark.asyncio
async def test_empty_client_id_creates_global_rule(test_db):
    rule = await PricingRuleService(test_db).create_rule(PricingRuleCreate(
        trainer_id="trainer_1", client_id="", discount_percentage=10, description="Everyone",
    ))
    assert rule.client_id is None


@pytest.mark.asyncio
async def test_create_rejects_invalid_discount_and_blank_description(test_db):
    service = PricingRuleService(test_db)
    too_big = PricingRuleCreate.model_construct(
        trainer_id="trainer_1", client_id=None, discount_percentage=150, description="Too generous",
    )
    with pytest.raises(InvalidArgumentError):
        await service.create_rule(too_big)

    blank = PricingRuleCreate(trainer_id="trainer_1", discount_percentage=10, description="   ")
    with pytest.raises(InvalidArgumentError):
        await service.create_rule(blank)

    assert await service.get_trainer_rules("trainer_1") == []


def test_rule_schemas_reject_out_of_range_discount():
    with pytest.raises(ValueError):
        PricingRuleCreate(trainer_id="t", discount_percentage=100.5, description="x")
    with pytest.raises(ValueError):
        PricingRuleUpdate(discount_percentage=-1)


@pytest.mark.asyncio
async def test_partial_update_leaves_other_fields(test_db):
    service = PricingRuleService(test_db)
    rule = await service.create_rule(PricingRuleCreate(
        trainer_id="trainer_1", client_id="client_1", discount_percentage=15, description="Loyalty",
    ))
    created_at = rule.created_at

    updated = await service.update_rule(rule.id, PricingRuleUpdate(is_active=False))
    assert updated.is_active is False
    assert updated.discount_percentage == 15
    assert updated.description == "Loyalty"
    assert updated.created_at == created_at
    assert updated.updated_at >= created_at

    updated = await service.update_rule(rule.id, PricingRuleUpdate(discount_percentage=0, description="Reset"))
    assert updated.discount_percentage == 0
    assert updated.description == "Reset"
    assert updated.is_active is False


@pytest.mark.asyncio
async def test_update_rejects_blank_description(test_db):
    service = PricingRuleService(test_db)
    rule = await service.create_rule(PricingRuleCreate(
        trainer_id="trainer_1", discount_percentage=15, description="Loyalty",
    ))
    with pytest.raises(InvalidArgumentError):
        await service.update_rule(rule.id, PricingRuleUpdate.model_construct(description="  "))


@pytest.mark.asyncio
async def test_update_rejects_discount_out_of_range(test_db):
    service = PricingRuleService(test_db)
    rule = await service.create_rule(PricingRuleCreate(
        trainer_id="trainer_1", client_id="client_1", discount_percentage=15, description="Loyalty",
    ))

    for bad in (-1, 100.5):
        with pytest.raises(InvalidArgumentError):
            await service.update_rule(rule.id, PricingRuleUpdate.model_construct(discount_percentage=bad))

    stored = await service.get_rule(rule.id)
    assert stored.discount_percentage == 15
    assert stored.is_active is True


@pytest.mark.asyncio
async def test_update_and_delete_unknown_rule(test_db):
    service = PricingRuleService(test_db)
    with pytest.raises(NotFoundError):
        await service.update_rule(12345, PricingRuleUpdate(is_active=True))
    with pytest.raises(NotFoundError):
        await service.delete_rule(12345)


@pytest.mark.asyncio
async def test_delete_rule(test_db):
    service = PricingRuleService(test_db)
    rule = await service.create_rule(PricingRuleCreate(
        trainer_id="trainer_1", discount_percentage=15, description="Loyalty",
    ))
    await service.delete_rule(rule.id)
    with pytest.raises(NotFoundError):
        await service.get_rule(rule.id)
