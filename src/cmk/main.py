"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cmk.config import get_settings
from cmk.database import close_db, get_session, init_db
from cmk.health.router import router as health_router
from cmk.middleware import setup_middleware
from cmk.redis_client import close_redis, init_redis
from cmk.rewards.router import admin_router
from cmk.rewards.router import router as rewards_router
from cmk.rewards.seed import seed_demo_accounts


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed demo accounts (idempotent)
    if settings.seed_demo_accounts:
        try:
            async for db in get_session():
                await seed_demo_accounts(db)
                break
        except Exception:
            logging.getLogger(__name__).warning("Demo account seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="CMK Rewards API",
        description="Loyalty engine for the CMK marketplace: points, referrals, daily bonus, courses, achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(rewards_router)
    app.include_router(admin_router)

    return app


app = create_app()
