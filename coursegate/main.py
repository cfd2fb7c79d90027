from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from coursegate.api.admin import router as admin_router
from coursegate.api.courses import me_router as enrollments_router
from coursegate.api.courses import router as courses_router
from coursegate.api.health import router as health_router
from coursegate.api.metrics_endpoint import router as metrics_router
from coursegate.api.payments import router as payments_router
from coursegate.core.config import SETTINGS
from coursegate.core.logging import setup_logging
from coursegate.db.engine import lifespan_db
from coursegate.middleware.metrics import MetricsMiddleware
from coursegate.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        yield


app = FastAPI(
    title="coursegate",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext -> Metrics -> route handler,
# so every request has an ID before metrics are recorded.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(enrollments_router)
app.include_router(payments_router)
app.include_router(admin_router)

logger.info(
    "coursegate started  env=%s log_level=%s port=%d docs=%s store=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    "postgres" if SETTINGS.database_url else "memory",
)
