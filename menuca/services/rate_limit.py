"""
Fixed-Window Rate Limiter

Limits tablet API traffic per device. Development keeps counters in
process memory; staging and production share counters through Redis so
every API worker sees the same window.

Usage:
    limiter = get_rate_limiter()
    result = await limiter.hit(f"device:{device_id}")
    if not result.allowed:
        raise RateLimitError(result.retry_after)
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as aioredis

from menuca.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int


class BaseRateLimiter(ABC):
    """Counts hits per key inside a fixed window."""

    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = window_seconds

    @property
    @abstractmethod
    def backend_name(self) -> str:
        pass

    @abstractmethod
    async def hit(self, key: str) -> RateLimitResult:
        """Record one request for key and report whether it is allowed."""
        pass


class MemoryRateLimiter(BaseRateLimiter):
    """In-process counters; only suitable for a single worker."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(limit, window_seconds)
        self._windows: dict[str, tuple[float, int]] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    async def hit(self, key: str) -> RateLimitResult:
        now = time.monotonic()
        reset_at, count = self._windows.get(key, (0.0, 0))

        if now >= reset_at:
            reset_at, count = now + self.window_seconds, 0

        count += 1
        self._windows[key] = (reset_at, count)

        return RateLimitResult(
            allowed=count <= self.limit,
            remaining=max(self.limit - count, 0),
            retry_after=self.window_seconds,
        )

    def reset(self) -> None:
        self._windows.clear()


class RedisRateLimiter(BaseRateLimiter):
    """Shared counters using INCR + EXPIRE on one key per window."""

    def __init__(self, limit: int, window_seconds: int, redis_url: str):
        super().__init__(limit, window_seconds)
        self._redis = aioredis.from_url(redis_url, decode_responses=True)

    @property
    def backend_name(self) -> str:
        return "redis"

    async def hit(self, key: str) -> RateLimitResult:
        redis_key = f"ratelimit:{key}"
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, self.window_seconds, nx=True)
            count, _ = await pipe.execute()

        return RateLimitResult(
            allowed=count <= self.limit,
            remaining=max(self.limit - count, 0),
            retry_after=self.window_seconds,
        )


@lru_cache()
def get_rate_limiter() -> BaseRateLimiter:
    settings = get_settings()

    if settings.is_development:
        logger.info("Rate Limiter: Using MemoryRateLimiter (development mode)")
        return MemoryRateLimiter(
            settings.rate_limit_requests, settings.rate_limit_window_seconds
        )

    logger.info(f"Rate Limiter: Using RedisRateLimiter ({settings.env_mode.value} mode)")
    return RedisRateLimiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
        settings.redis_url,
    )


def reset_rate_limiter() -> None:
    """Clear the cached limiter instance."""
    get_rate_limiter.cache_clear()
