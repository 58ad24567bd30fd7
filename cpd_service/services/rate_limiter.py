"""Token-bucket rate limiting for the write endpoints.

Certificate issuance, quiz attempts and provider webhooks are the calls
worth throttling: each one can create rows, and a retry storm from a
misbehaving provider integration should not starve everyone else.

A bucket holds `capacity` tokens and refills at `refill_rate` tokens per
second; each request spends one.  That allows a short burst (a provider
flushing a backlog of completions) while enforcing a long-term average.
State per client is two numbers: tokens left and last refill time.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Outcome of one bucket check.

    retry_after is the number of seconds until a token is available
    (0 when allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    retry_after: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Bucket size (burst) and refill rate (sustained requests per second).

    capacity=20, refill_rate=0.33 means a burst of 20, then about one
    request every three seconds.
    """

    capacity: int = 60
    refill_rate: float = 1.0


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


class InMemoryRateLimiter:
    """Per-process buckets for dev and tests.

    With several API processes each one keeps its own buckets, so the
    effective limit multiplies; production uses RedisRateLimiter.
    """

    def __init__(self) -> None:
        # key -> (tokens_remaining, last_refill_timestamp)
        self._buckets: dict[str, tuple[float, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()
        tokens, last_refill = self._buckets.get(key, (float(config.capacity), now))

        tokens = min(config.capacity, tokens + (now - last_refill) * config.refill_rate)
        if tokens >= 1:
            tokens -= 1
            self._buckets[key] = (tokens, now)
            return RateLimitResult(
                allowed=True,
                remaining=int(tokens),
                limit=config.capacity,
                retry_after=0,
            )

        self._buckets[key] = (tokens, now)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)


class RedisRateLimiter:
    """Buckets shared by every API process.

    Refill-then-spend is a read-modify-write, so it runs as one Lua
    script; Redis executes scripts atomically.
    """

    # KEYS[1] = bucket key
    # ARGV = capacity, refill_rate, now (seconds)
    # Returns {allowed 0/1, remaining, retry_after_ms}
    _LUA_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / refill_rate) + 60

    local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
    local tokens = tonumber(bucket[1]) or capacity
    local last_refill = tonumber(bucket[2]) or now

    tokens = math.min(capacity, tokens + (now - last_refill) * refill_rate)

    if tokens >= 1 then
        tokens = tokens - 1
        redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
        redis.call('EXPIRE', key, ttl)
        return {1, math.floor(tokens), 0}
    end

    redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
    redis.call('EXPIRE', key, ttl)
    return {0, 0, math.ceil((1 - tokens) / refill_rate * 1000)}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        return self._script

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        script = self._get_script()
        allowed, remaining, retry_after_ms = await script(
            keys=[f"ratelimit:{key}"],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=int(remaining),
            limit=config.capacity,
            retry_after=retry_after_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"ratelimit:{key}")
