"""
Integration tests for the HTTP API: envelopes, status codes and the quote flow
"""
import pytest

pytestmark = pytest.mark.asyncio

TRAINER = "trainer_abc"
CLIENT = "client_xyz"


async def create_plan(client, **overrides):
    payload = {
        "trainer_id": TRAINER,
        "name": "Basic Fitness",
        "sessions_per_month": 8,
        "monthly_price": 100.0,
        "discount": 10,
    }
    payload.update(overrides)
    response = await client.post("/api/plans", json=payload)
    assert response.status_code == 201
    return response.json()["data"]


async def create_rule(client, discount, client_id=None):
    response = await client.post("/api/pricing-rules", json={
        "trainer_id": TRAINER,
        "client_id": client_id,
        "discount_percentage": discount,
        "description": f"{discount}% off",
    })
    assert response.status_code == 201
    return response.json()["data"]


async def quote(client, plan_id, billing_months=3):
    return await client.get(
        f"/api/plans/{plan_id}/price",
        params={"trainer_id": TRAINER, "client_id": CLIENT, "billing_months": billing_months},
    )


async def test_health(async_client):
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


async def test_create_plan_envelope(async_client):
    response = await async_client.post("/api/plans", json={
        "trainer_id": TRAINER,
        "name": "Elite",
        "sessions_per_month": 12,
        "monthly_price": 1500,
    })
    body = response.json()

    assert response.status_code == 201
    assert body["ok"] is True
    assert body["error"] is None
    assert body["data"]["currency"] == "NOK"
    assert body["data"]["is_active"] is True


async def test_quote_follows_precedence(async_client):
    plan = await create_plan(async_client)

    data = (await quote(async_client, plan["id"])).json()["data"]
    assert data["total_price"] == pytest.approx(270)
    assert data["total_sessions"] == 24
    assert data["discount_source"] == "plan"

    await create_rule(async_client, 20)
    data = (await quote(async_client, plan["id"])).json()["data"]
    assert data["total_price"] == pytest.approx(240)
    assert data["discount_source"] == "global"

    await create_rule(async_client, 5, client_id=CLIENT)
    data = (await quote(async_client, plan["id"])).json()["data"]
    assert data["discounted_monthly_price"] == pytest.approx(95)
    assert data["total_price"] == pytest.approx(285)
    assert data["discount_source"] == "client"


async def test_quote_unknown_plan_is_404(async_client):
    response = await quote(async_client, 9999)
    body = response.json()
    assert response.status_code == 404
    assert body["ok"] is False
    assert body["error"] == "not_found"


async def test_quote_zero_months_is_400(async_client):
    plan = await create_plan(async_client)
    response = await quote(async_client, plan["id"], billing_months=0)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_argument"


async def test_out_of_range_discount_is_rejected(async_client):
    response = await async_client.post("/api/pricing-rules", json={
        "trainer_id": TRAINER,
        "discount_percentage": 150,
        "description": "Too generous",
    })
    assert response.status_code == 422

    plan = await create_plan(async_client)
    response = await async_client.patch(f"/api/plans/{plan['id']}", json={"discount": -1})
    assert response.status_code == 422


async def test_overlong_currency_is_rejected(async_client):
    response = await async_client.post("/api/plans", json={
        "trainer_id": TRAINER,
        "name": "Elite",
        "sessions_per_month": 12,
        "monthly_price": 1500,
        "currency": "NORWEGIAN_KRONE",
    })
    assert response.status_code == 422


async def test_update_rule_partially(async_client):
    rule = await create_rule(async_client, 15, client_id=CLIENT)

    response = await async_client.patch(f"/api/pricing-rules/{rule['id']}", json={"is_active": False})
    data = response.json()["data"]
    assert response.status_code == 200
    assert data["is_active"] is False
    assert data["discount_percentage"] == 15

    response = await async_client.get(f"/api/pricing-rules/trainer/{TRAINER}/client/{CLIENT}")
    assert response.json()["data"] == {"rule": None}

    response = await async_client.patch("/api/pricing-rules/9999", json={"is_active": True})
    assert response.status_code == 404


async def test_client_discount_and_final_price(async_client):
    await create_rule(async_client, 12)
    await create_rule(async_client, 25, client_id=CLIENT)

    response = await async_client.get(f"/api/pricing-rules/trainer/{TRAINER}/client/{CLIENT}/discount")
    assert response.json()["data"] == {"discount_percentage": 25}

    response = await async_client.post("/api/pricing-rules/final-price", json={
        "trainer_id": TRAINER,
        "client_id": CLIENT,
        "original_amount": 400,
    })
    data = response.json()["data"]
    assert data["discount_amount"] == pytest.approx(100)
    assert data["final_amount"] == pytest.approx(300)


async def test_delete_rule(async_client):
    rule = await create_rule(async_client, 10)
    response = await async_client.delete(f"/api/pricing-rules/{rule['id']}")
    assert response.status_code == 200

    response = await async_client.get(f"/api/pricing-rules/trainer/{TRAINER}")
    assert response.json()["data"] == []


async def test_subscription_flow(async_client):
    plan = await create_plan(async_client, sessions_per_month=2)

    response = await async_client.post("/api/subscriptions", json={
        "client_id": CLIENT,
        "trainer_id": TRAINER,
        "plan_id": plan["id"],
        "payment_method": "offline",
    })
    subscription = response.json()["data"]
    assert response.status_code == 201
    assert subscription["status"] == "pending"
    assert subscription["monthly_amount"] == pytest.approx(90)

    # The plan is in use
    response = await async_client.delete(f"/api/plans/{plan['id']}")
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"

    response = await async_client.post(f"/api/subscriptions/{subscription['id']}/approve")
    assert response.json()["data"]["status"] == "active"

    response = await async_client.get(
        "/api/subscriptions/active", params={"client_id": CLIENT, "trainer_id": TRAINER}
    )
    assert response.json()["data"]["subscription"]["id"] == subscription["id"]

    response = await async_client.post(f"/api/subscriptions/{subscription['id']}/deduct-session")
    assert response.json()["data"] == {"remaining_sessions": 1}

    response = await async_client.post(f"/api/subscriptions/{subscription['id']}/renew")
    assert response.json()["data"]["remaining_sessions"] == 2

    response = await async_client.get(f"/api/subscriptions/trainer/{TRAINER}/stats")
    assert response.json()["data"]["active_count"] == 1

    await async_client.post(f"/api/subscriptions/{subscription['id']}/cancel")
    response = await async_client.delete(f"/api/plans/{plan['id']}")
    assert response.status_code == 200


async def test_monthly_subscription_for_several_months_is_400(async_client):
    plan = await create_plan(async_client)
    response = await async_client.post("/api/subscriptions", json={
        "client_id": CLIENT,
        "trainer_id": TRAINER,
        "plan_id": plan["id"],
        "billing_type": "monthly",
        "billing_months": 6,
        "payment_method": "online",
    })
    assert response.status_code == 400
