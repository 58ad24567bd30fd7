"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a connection pool is
created; when it is None (local dev, tests) the rate limiter and task
queue fall back to in-memory implementations and no Redis server is
needed.

Redis holds only ephemeral, shared state here: token buckets for rate
limiting and the notification task lists.  Compliance data never lives
in Redis.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from cpd_service.core.config import SETTINGS

logger = logging.getLogger(__name__)

# Every consumer of redis_pool checks for None and falls back to in-memory.

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify connectivity on startup and release the pool on shutdown."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, Redis features use in-memory fallbacks")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        # Keep serving; rate limiting and notifications degrade
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
