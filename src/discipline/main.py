"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from discipline.challenges.router import router as challenges_router
from discipline.config import get_settings
from discipline.database import close_db, get_session, init_db
from discipline.health.router import router as health_router
from discipline.middleware import setup_middleware
from discipline.profiles.router import router as profiles_router
from discipline.redis_client import close_redis, init_redis
from discipline.seasons.service import ensure_active_season

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    try:
        async for db in get_session():
            await ensure_active_season(db)
            break
    except SQLAlchemyError:
        logger.warning("Season seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Discipline Engine API",
        description="XP, ranks, decay and challenges for habit discipline",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(profiles_router)
    app.include_router(challenges_router)

    return app


app = create_app()
