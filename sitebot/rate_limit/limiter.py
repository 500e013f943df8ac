"""Fixed-window rate limiters: in-memory (LRU-bounded) and Redis-backed.

Both fail open. A limiter that cannot count a request lets it through; rate
limiting is best-effort and never coordinated across instances beyond what
Redis gives for free.
"""

import logging
import math
import time
from collections import OrderedDict
from dataclasses import dataclass

from starlette.requests import Request

logger = logging.getLogger(__name__)

# Requests per window, per plan
RATE_LIMIT_TIERS: dict[str, dict[str, int]] = {
    "free": {"window_seconds": 60, "max_requests": 10},
    "pro": {"window_seconds": 60, "max_requests": 60},
    "enterprise": {"window_seconds": 60, "max_requests": 600},
}


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    def retry_after(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_at - now))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class InMemoryRateLimiter:
    """Per-process fixed window counter. Oldest identifiers are evicted past `max_keys`."""

    def __init__(self, window_seconds: int, max_requests: int, max_keys: int = 10_000):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.max_keys = max_keys
        # identifier -> (count, reset_at)
        self._entries: OrderedDict[str, tuple[int, float]] = OrderedDict()

    async def hit(self, identifier: str, now: float | None = None) -> RateLimitResult:
        now = time.time() if now is None else now
        entry = self._entries.get(identifier)

        if entry is None or entry[1] <= now:
            reset_at = now + self.window_seconds
            self._store(identifier, 1, reset_at)
            return RateLimitResult(True, self.max_requests, self.max_requests - 1, reset_at)

        count, reset_at = entry
        if count >= self.max_requests:
            self._entries.move_to_end(identifier)
            return RateLimitResult(False, self.max_requests, 0, reset_at)

        count += 1
        self._store(identifier, count, reset_at)
        return RateLimitResult(True, self.max_requests, self.max_requests - count, reset_at)

    async def reset(self, identifier: str) -> None:
        self._entries.pop(identifier, None)

    def _store(self, identifier: str, count: int, reset_at: float) -> None:
        self._entries[identifier] = (count, reset_at)
        self._entries.move_to_end(identifier)
        while len(self._entries) > self.max_keys:
            self._entries.popitem(last=False)


class RedisRateLimiter:
    """Shared counter: INCR + EXPIRE on `ratelimit:{identifier}:{window}`."""

    def __init__(self, redis, window_seconds: int, max_requests: int, key_prefix: str = "ratelimit:"):
        self._redis = redis
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.key_prefix = key_prefix

    def _allowed(self, now: float) -> RateLimitResult:
        return RateLimitResult(True, self.max_requests, self.max_requests, now + self.window_seconds)

    async def hit(self, identifier: str, now: float | None = None) -> RateLimitResult:
        now = time.time() if now is None else now
        window = int(now // self.window_seconds)
        key = f"{self.key_prefix}{identifier}:{window}"
        reset_at = float((window + 1) * self.window_seconds)

        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds)
            results = await pipe.execute()
        except Exception:
            logger.warning("Redis rate limit check failed, allowing request", exc_info=True)
            return self._allowed(now)

        count = int(results[0])
        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=reset_at,
        )

    async def reset(self, identifier: str) -> None:
        try:
            keys = [k async for k in self._redis.scan_iter(match=f"{self.key_prefix}{identifier}:*")]
            if keys:
                await self._redis.delete(*keys)
        except Exception:
            logger.warning("Failed to reset rate limit for %s", identifier, exc_info=True)


# Limiters are cached per (name, window, limit)
_limiters: dict[tuple[str, int, int], InMemoryRateLimiter | RedisRateLimiter] = {}
_redis_client = None


def _get_redis(url: str):
    global _redis_client
    if _redis_client is None:
        import redis.asyncio as redis_asyncio

        _redis_client = redis_asyncio.from_url(url, socket_timeout=1.0, socket_connect_timeout=1.0)
    return _redis_client


def get_limiter(name: str, window_seconds: int, max_requests: int) -> InMemoryRateLimiter | RedisRateLimiter:
    from sitebot.config.settings import get_settings

    cache_key = (name, window_seconds, max_requests)
    if cache_key not in _limiters:
        redis_url = get_settings().REDIS_URL
        if redis_url:
            _limiters[cache_key] = RedisRateLimiter(
                _get_redis(redis_url), window_seconds, max_requests, key_prefix=f"ratelimit:{name}:"
            )
        else:
            _limiters[cache_key] = InMemoryRateLimiter(window_seconds, max_requests)
    return _limiters[cache_key]


def get_tier_limiter(tier: str) -> InMemoryRateLimiter | RedisRateLimiter:
    config = RATE_LIMIT_TIERS.get(tier, RATE_LIMIT_TIERS["free"])
    return get_limiter(f"tier-{tier}", config["window_seconds"], config["max_requests"])


def reset_limiters() -> None:
    _limiters.clear()


def client_identifier(request: Request) -> str:
    """Best guess at the caller's IP, honouring common proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value
    if request.client:
        return request.client.host
    return "unknown"
