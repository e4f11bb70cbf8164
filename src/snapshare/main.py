"""SnapShare API application.

Run with: uvicorn snapshare.main:app
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from snapshare.auth.router import router as auth_router
from snapshare.config import get_settings
from snapshare.database import close_db, init_db
from snapshare.engagement.router import router as likes_router
from snapshare.engagement.saves_router import router as saves_router
from snapshare.health.router import router as health_router
from snapshare.middleware import setup_middleware
from snapshare.redis_client import close_redis, init_redis

logger = structlog.get_logger()

ROUTERS = (health_router, auth_router, likes_router, saves_router)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("api_started", environment=settings.environment, redis_enabled=bool(settings.redis_url))
    try:
        yield
    finally:
        await close_redis()
        await close_db()
        logger.info("api_stopped")


def create_app() -> FastAPI:
    """Build the app: middleware first, then every router under ``api_prefix``."""
    settings = get_settings()

    app = FastAPI(
        title="SnapShare API",
        description="Account activation and engagement (likes, saved posts) for SnapShare",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    for router in ROUTERS:
        app.include_router(router, prefix=settings.api_prefix)

    return app


app = create_app()
