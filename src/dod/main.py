"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from dod.config import get_settings
from dod.database import close_db, init_db
from dod.health.router import router as health_router
from dod.leaderboard.router import router as leaderboard_router
from dod.middleware import setup_middleware
from dod.redis_client import close_redis, init_redis
from dod.runs.router import router as runs_router
from dod.users.router import router as profile_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.info("redis_disabled")

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Double or Die API",
        description="Run tokens, run verification, and the seasonal leaderboard for Double or Die",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(runs_router)
    app.include_router(leaderboard_router)
    app.include_router(profile_router)

    return app


app = create_app()
