"""Liveness and readiness checks.

/health answers "is the process alive" and reports dependency status;
it returns 200 even when degraded so an orchestrator does not restart
the container over a Redis blip.  /ready answers "can this instance take
traffic".  The engine runs on the in-memory store when Redis is absent,
so Redis is reported but never gates readiness.  The database is checked
with SELECT 1 when DATABASE_URL is set.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from redis.exceptions import RedisError

from cpd_service.db import engine as db_engine
from cpd_service.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except (RedisError, OSError) as exc:
            logger.warning("Redis health check failed: %s", exc)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    checks["database"] = await db_engine.check_database()
    if checks["database"] == "degraded":
        overall = "degraded"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200)
