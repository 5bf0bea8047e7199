from time import time
from typing import Dict, Optional, Tuple
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import logging
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

# Refill, take one token and store the bucket in a single atomic step.
# KEYS[1] = bucket key, ARGV = capacity, refill window (seconds), now (epoch seconds)
TOKEN_BUCKET_SCRIPT = """
local capacity = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local bucket = redis.call('HMGET', KEYS[1], 'tokens', 'last_refill')
local tokens = tonumber(bucket[1])
local last_refill = tonumber(bucket[2])
if tokens == nil or last_refill == nil then
    tokens = capacity
    last_refill = now
end
local elapsed = math.max(0, now - last_refill)
tokens = math.min(capacity, tokens + (elapsed / window) * capacity)
local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end
redis.call('HSET', KEYS[1], 'tokens', tostring(tokens), 'last_refill', tostring(now))
redis.call('EXPIRE', KEYS[1], math.ceil(window) + 10)
return allowed
"""


def _connect_redis(redis_url: Optional[str]):
    """Async Redis client for shared buckets, None when REDIS_URL is unset or malformed."""
    if not redis_url:
        logger.info("REDIS_URL not set. Using in-memory rate limiting.")
        return None
    try:
        client = aioredis.from_url(redis_url, decode_responses=True)
    except ValueError as e:
        logger.warning(f"Invalid REDIS_URL: {e}. Falling back to in-memory rate limiting.")
        return None
    logger.info("Redis rate limiting enabled")
    return client


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Per-IP rate limiter using the Token Bucket Algorithm.

    Buckets live in Redis when REDIS_URL is configured, in process memory
    otherwise or while Redis is unreachable. A limit of 0 disables the middleware.
    The client IP is the peer address; run uvicorn with proxy headers enabled
    (FORWARDED_ALLOW_IPS) so a trusted proxy's X-Forwarded-For is applied there.
    """

    def __init__(self, app, requests_per_minute: int = 60, redis_url: Optional[str] = None):
        super().__init__(app)
        self.capacity = requests_per_minute
        self.refill_time_window = 60.0
        # In-memory storage (ip -> (tokens, last_refill_ts))
        self._buckets: Dict[str, Tuple[float, float]] = {}
        self._last_sweep = time()
        self._redis = _connect_redis(redis_url) if requests_per_minute > 0 else None
        self._bucket_script = self._redis.register_script(TOKEN_BUCKET_SCRIPT) if self._redis else None

    def _get_client_ip(self, request: Request) -> str:
        client = request.client
        return client.host if client else "unknown"

    def _get_redis_key(self, ip: str) -> str:
        """Generate Redis key for rate limiting"""
        return f"rate_limit:{ip}"

    def _refill(self, tokens: float, last_refill: float, now: float) -> float:
        elapsed = max(0.0, now - last_refill)
        refill = (elapsed / self.refill_time_window) * self.capacity
        return min(self.capacity, tokens + refill)

    async def _check_rate_limit_redis(self, ip: str) -> Optional[bool]:
        """
        Check rate limit using Redis.
        Returns True if allowed, False if rate limited, None if Redis failed.
        """
        try:
            allowed = await self._bucket_script(
                keys=[self._get_redis_key(ip)],
                args=[self.capacity, self.refill_time_window, time()],
            )
            return int(allowed) == 1
        except RedisError as e:
            logger.warning(f"Redis rate limit check failed: {e}. Falling back to in-memory.")
            return None

    def _evict_idle(self, now: float) -> None:
        """Drop buckets idle for a full window; they would have refilled to capacity."""
        if now - self._last_sweep < self.refill_time_window:
            return
        cutoff = now - self.refill_time_window
        self._buckets = {ip: bucket for ip, bucket in self._buckets.items() if bucket[1] > cutoff}
        self._last_sweep = now

    def _check_rate_limit_memory(self, ip: str) -> bool:
        now = time()
        self._evict_idle(now)
        tokens, last_refill = self._buckets.get(ip, (self.capacity, now))
        tokens = self._refill(tokens, last_refill, now)

        if tokens < 1.0:
            return False

        # Consume a token and store
        self._buckets[ip] = (tokens - 1.0, now)
        return True

    async def dispatch(self, request: Request, call_next) -> Response:
        if self.capacity <= 0:
            return await call_next(request)

        ip = self._get_client_ip(request)

        allowed = None
        if self._bucket_script is not None:
            allowed = await self._check_rate_limit_redis(ip)
        if allowed is None:
            allowed = self._check_rate_limit_memory(ip)

        if not allowed:
            logger.warning(f"Rate limit exceeded for {ip}")
            return JSONResponse(
                status_code=429,
                content={
                    "ok": False,
                    "data": {},
                    "error": "rate_limited",
                    "message": "Rate limit exceeded. Try again shortly.",
                },
            )

        return await call_next(request)


def default_rate_limit_options() -> dict:
    return {
        "requests_per_minute": settings.rate_limit_per_minute,
        "redis_url": settings.redis_url,
    }
