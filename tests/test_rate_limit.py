"""
Tests for the token bucket rate limiter
"""
import httpx
import pytest
from fastapi import FastAPI
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.requests import Request
from starlette.responses import PlainTextResponse

import utils.rate_limit as rate_limit
from utils.rate_limit import RateLimiterMiddleware


def build_app(requests_per_minute):
    app = FastAPI()
    app.add_middleware(RateLimiterMiddleware, requests_per_minute=requests_per_minute, redis_url=None)

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    return app


def client_for(app, ip="127.0.0.1"):
    transport = httpx.ASGITransport(app=app, client=(ip, 50000))
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.asyncio
async def test_requests_over_capacity_are_rejected():
    app = build_app(2)
    async with client_for(app) as client:
        assert (await client.get("/ping")).status_code == 200
        assert (await client.get("/ping")).status_code == 200

        response = await client.get("/ping")
        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"

    # Buckets are per client address
    async with client_for(app, ip="10.0.0.2") as other:
        assert (await other.get("/ping")).status_code == 200


@pytest.mark.asyncio
async def test_forwarded_header_does_not_open_new_buckets():
    app = build_app(2)
    async with client_for(app) as client:
        statuses = [
            (await client.get("/ping", headers={"x-forwarded-for": f"203.0.113.{i}"})).status_code
            for i in range(4)
        ]
    assert statuses == [200, 200, 429, 429]


@pytest.mark.asyncio
async def test_zero_limit_disables_rate_limiting():
    async with client_for(build_app(0)) as client:
        for _ in range(10):
            assert (await client.get("/ping")).status_code == 200


def test_idle_buckets_are_evicted(monkeypatch):
    now = 1_000_000.0
    monkeypatch.setattr(rate_limit, "time", lambda: now)
    limiter = RateLimiterMiddleware(FastAPI(), requests_per_minute=5)

    for i in range(2000):
        assert limiter._check_rate_limit_memory(f"198.51.100.{i}")
    assert len(limiter._buckets) == 2000

    now += limiter.refill_time_window + 1
    assert limiter._check_rate_limit_memory("192.0.2.1")
    assert list(limiter._buckets) == ["192.0.2.1"]


def test_eviction_keeps_recent_buckets(monkeypatch):
    now = 1_000_000.0
    monkeypatch.setattr(rate_limit, "time", lambda: now)
    limiter = RateLimiterMiddleware(FastAPI(), requests_per_minute=1)

    limiter._check_rate_limit_memory("192.0.2.1")
    now += limiter.refill_time_window - 1
    limiter._check_rate_limit_memory("192.0.2.2")
    now += 2

    # 192.0.2.2 is still inside its window and stays limited
    assert limiter._check_rate_limit_memory("192.0.2.2") is False
    assert "192.0.2.1" not in limiter._buckets


class FakeBucketScript:
    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.calls = []

    async def __call__(self, keys=None, args=None):
        self.calls.append((keys, args))
        if self.error is not None:
            raise self.error
        return self.results.pop(0)


@pytest.mark.asyncio
async def test_redis_bucket_is_checked_by_one_script_call():
    limiter = RateLimiterMiddleware(FastAPI(), requests_per_minute=3, redis_url="redis://localhost:6379/0")
    script = FakeBucketScript(results=[1, 0])
    limiter._bucket_script = script

    assert await limiter._check_rate_limit_redis("192.0.2.1") is True
    assert await limiter._check_rate_limit_redis("192.0.2.1") is False

    keys, args = script.calls[0]
    assert keys == ["rate_limit:192.0.2.1"]
    assert args[:2] == [3, limiter.refill_time_window]


@pytest.mark.asyncio
async def test_redis_failure_falls_back_to_memory():
    limiter = RateLimiterMiddleware(FastAPI(), requests_per_minute=1, redis_url="redis://localhost:6379/0")
    limiter._bucket_script = FakeBucketScript(error=RedisConnectionError("down"))
    assert await limiter._check_rate_limit_redis("192.0.2.1") is None

    async def call_next(request):
        return PlainTextResponse("pong")

    request = Request({"type": "http", "method": "GET", "path": "/ping", "headers": [], "client": ("192.0.2.1", 50000)})
    assert (await limiter.dispatch(request, call_next)).status_code == 200
    assert (await limiter.dispatch(request, call_next)).status_code == 429
    assert "192.0.2.1" in limiter._buckets
