"""Token bucket rate limiter with Redis backend.

Enforces the run cooldown across all backend instances. State lives in
Redis, so the limiter fails open when Redis cannot be reached.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import NoScriptError

from golfcourse.config import settings

logger = logging.getLogger(__name__)


class RateLimitType(str, Enum):
    """Categories of rate limits for different endpoint types."""
    RUN = "run"
    SUBMIT = "submit"
    API_READ = "api_read"
    DEFAULT = "default"


@dataclass(frozen=True)
class RateLimitConfig:
    """Configuration for a rate limit bucket."""
    requests: int  # Tokens refilled per window
    window: int  # Time window in seconds
    burst: Optional[int] = None  # Optional burst capacity (defaults to requests)

    @property
    def burst_capacity(self) -> int:
        return self.burst if self.burst is not None else self.requests

    @property
    def refill_rate(self) -> float:
        return self.requests / self.window


RATE_LIMITS: dict[RateLimitType, RateLimitConfig] = {
    # One run per cooldown, with room for a run/test/submit sequence
    RateLimitType.RUN: RateLimitConfig(
        requests=1,
        window=settings.run_cooldown_seconds,
        burst=settings.run_burst,
    ),
    RateLimitType.SUBMIT: RateLimitConfig(requests=10, window=60, burst=3),
    RateLimitType.API_READ: RateLimitConfig(requests=120, window=60),
    RateLimitType.DEFAULT: RateLimitConfig(requests=30, window=60),
}


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None

    @property
    def headers(self) -> dict[str, str]:
        """Generate rate limit headers for HTTP response."""
        headers = {
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(max(1, int(self.retry_after + 0.999)))
        return headers


class TokenBucketRateLimiter:
    """Token bucket rate limiter with Redis backend.

    Uses an atomic Lua script so concurrent instances share one bucket
    per client.
    """

    BUCKET_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local requested = tonumber(ARGV[4])

    local bucket = redis.call('HMGET', key, 'tokens', 'last_update')
    local tokens = tonumber(bucket[1])
    local last_update = tonumber(bucket[2])

    if tokens == nil then
        tokens = capacity
        last_update = now
    end

    local elapsed = math.max(0, now - last_update)
    tokens = math.min(capacity, tokens + elapsed * refill_rate)

    local allowed = 0
    if tokens >= requested then
        tokens = tokens - requested
        allowed = 1
    end

    redis.call('HSET', key, 'tokens', tokens, 'last_update', now)
    redis.call('EXPIRE', key, math.ceil(capacity / refill_rate) * 2)

    local reset_time = now + ((capacity - tokens) / refill_rate)
    local retry_after = 0
    if allowed == 0 then
        retry_after = (requested - tokens) / refill_rate
    end

    return {allowed, math.floor(tokens), math.floor(reset_time), tostring(retry_after)}
    """

    def __init__(self, redis_url: Optional[str] = None):
        self._redis_url = redis_url or settings.redis_url
        self._redis: Optional[redis.Redis] = None
        self._script_sha: Optional[str] = None
        self._lock = asyncio.Lock()

    async def _get_redis(self) -> redis.Redis:
        """Get or create Redis connection with the bucket script loaded."""
        if self._redis is None:
            async with self._lock:
                if self._redis is None:
                    client = redis.from_url(
                        self._redis_url,
                        encoding="utf-8",
                        decode_responses=True,
                        socket_connect_timeout=1,
                    )
                    self._script_sha = await client.script_load(self.BUCKET_SCRIPT)
                    self._redis = client
        return self._redis

    def _make_key(self, limit_type: RateLimitType, identifier: str) -> str:
        return f"ratelimit:{limit_type.value}:{identifier}"

    async def check(
        self,
        limit_type: RateLimitType,
        identifier: str,
        requested: int = 1,
    ) -> RateLimitResult:
        """Check rate limit and consume tokens if allowed.

        Args:
            limit_type: Type of rate limit to apply
            identifier: Client identity, ``client:<id>`` or ``ip:<address>``
            requested: Number of tokens to consume (default 1)

        Returns:
            RateLimitResult with allowed status and limit info
        """
        config = RATE_LIMITS.get(limit_type, RATE_LIMITS[RateLimitType.DEFAULT])
        key = self._make_key(limit_type, identifier)
        now = time.time()

        try:
            redis_client = await self._get_redis()
            try:
                result = await redis_client.evalsha(
                    self._script_sha, 1, key,
                    config.burst_capacity, config.refill_rate, now, requested,
                )
            except NoScriptError:
                self._script_sha = await redis_client.script_load(self.BUCKET_SCRIPT)
                result = await redis_client.evalsha(
                    self._script_sha, 1, key,
                    config.burst_capacity, config.refill_rate, now, requested,
                )
        except (redis.RedisError, OSError) as e:
            logger.warning("Rate limiter unavailable, allowing request: %s", e)
            return RateLimitResult(
                allowed=True,
                remaining=config.burst_capacity,
                reset_at=now + config.window,
            )

        allowed, remaining, reset_at, retry_after = result
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=int(remaining),
            reset_at=float(reset_at),
            retry_after=float(retry_after) if not allowed else None,
        )

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None


# Global rate limiter instance
rate_limiter = TokenBucketRateLimiter()


async def check_rate_limit(limit_type: RateLimitType, identifier: str) -> RateLimitResult:
    """Check rate limit using global limiter."""
    return await rate_limiter.check(limit_type, identifier)
