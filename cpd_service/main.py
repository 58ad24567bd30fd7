from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cpd_service.api.activities import router as activities_router
from cpd_service.api.admin import router as admin_router
from cpd_service.api.allocations import router as allocations_router
from cpd_service.api.certificates import router as certificates_router
from cpd_service.api.completion import router as completion_router
from cpd_service.api.cpd_records import router as cpd_records_router
from cpd_service.api.credentials import router as credentials_router
from cpd_service.api.errors import register_error_handlers
from cpd_service.api.health import router as health_router
from cpd_service.api.metrics_endpoint import router as metrics_router
from cpd_service.api.progress import router as progress_router
from cpd_service.api.provider_events import router as provider_events_router
from cpd_service.api.quizzes import router as quizzes_router
from cpd_service.api.rule_packs import router as rule_packs_router
from cpd_service.core.config import SETTINGS
from cpd_service.core.logging import setup_logging
from cpd_service.db.engine import lifespan_db
from cpd_service.db.redis import lifespan_redis
from cpd_service.middleware.metrics import MetricsMiddleware
from cpd_service.middleware.request_context import RequestContextMiddleware

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # teardown runs in reverse order
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="cpd-compliance-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

register_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(activities_router)
app.include_router(admin_router)
app.include_router(allocations_router)
app.include_router(certificates_router)
app.include_router(completion_router)
app.include_router(cpd_records_router)
app.include_router(credentials_router)
app.include_router(progress_router)
app.include_router(provider_events_router)
app.include_router(quizzes_router)
app.include_router(rule_packs_router)

logger.info(
    "cpd-compliance-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
