"""Async SQLAlchemy engine.

When DATABASE_URL is configured, provides:
- async engine for PostgreSQL via asyncpg
- a connectivity check used by /health
- FastAPI lifespan hook for startup/shutdown

The compliance repositories are the in-memory store in every deployment.
The database holds the relational schema managed by Alembic
(db/tables.py, alembic/), so the engine only has to answer whether that
database is reachable.  When DATABASE_URL is None the engine is None.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cpd_service.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


# --- Engine (None when no DATABASE_URL) ---

if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,  # log SQL in dev only
        pool_size=5,
        max_overflow=10,
    )
else:
    engine = None


async def check_database() -> str:
    """Return "in_memory", "ok" or "degraded" for the health report."""
    if engine is None:
        return "in_memory"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database health check failed: %s", exc)
        return "degraded"
    return "ok"


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured, using the in-memory store")
        yield
        return

    logger.info(
        "Database engine created: %s (repositories stay in memory)",
        engine.url.render_as_string(hide_password=True),
    )
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
