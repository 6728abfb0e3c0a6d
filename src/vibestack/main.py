"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from vibestack.analytics.router import router as analytics_router
from vibestack.auth.router import router as auth_router
from vibestack.config import get_settings
from vibestack.habits.router import router as habits_router
from vibestack.health.router import router as health_router
from vibestack.middleware import setup_middleware
from vibestack.notifications.router import router as notifications_router
from vibestack.redis_client import close_redis, init_redis
from vibestack.social.router import router as social_router
from vibestack.supabase_client import close_supabase, init_supabase
from vibestack.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_supabase(settings.supabase_url, settings.supabase_key)
    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.warning("redis_not_configured", detail="attempt counters are process-local")

    yield

    await close_redis()
    await close_supabase()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="VibeStack API",
        description="Backend API for VibeStack: habits, social challenges and avatar companions",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(habits_router)
    app.include_router(social_router)
    app.include_router(notifications_router)
    app.include_router(analytics_router)

    return app


app = create_app()
