from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from achievement_service.api.achievements import router as achievements_router
from achievement_service.api.dependencies import memory_catalog_repo
from achievement_service.api.health import router as health_router
from achievement_service.api.metrics_endpoint import router as metrics_router
from achievement_service.api.points import router as points_router
from achievement_service.core.config import SETTINGS
from achievement_service.core.logging import setup_logging
from achievement_service.db import engine as db_engine
from achievement_service.db.engine import lifespan_db
from achievement_service.db.redis import lifespan_redis
from achievement_service.middleware.metrics import MetricsMiddleware
from achievement_service.middleware.request_context import RequestContextMiddleware
from achievement_service.repos.pg_catalog_repo import PgCatalogRepo
from achievement_service.services.catalog_service import seed_default_catalog

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


async def _seed_catalog() -> None:
    if db_engine.async_session_factory is None:
        await seed_default_catalog(memory_catalog_repo)
        return
    async with db_engine.async_session_factory() as session:
        await seed_default_catalog(PgCatalogRepo(session))
        await session.commit()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse order: Redis closes before the engine.
    async with lifespan_db():
        async with lifespan_redis():
            if SETTINGS.seed_default_achievements:
                await _seed_catalog()
            yield


app = FastAPI(
    title="achievement-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last added runs first: RequestContext -> Metrics -> route handler.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(achievements_router)
app.include_router(points_router)

logger.info(
    "achievement-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
