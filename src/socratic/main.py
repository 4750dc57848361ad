"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from socratic.config import Settings, get_settings
from socratic.database import Database
from socratic.gamification.router import router as gamification_router
from socratic.gamification.seed import seed_catalog
from socratic.health.router import router as health_router
from socratic.middleware import setup_middleware
from socratic.redis_client import close_redis, create_redis
from socratic.storage import MemoryStore, create_store
from socratic.tutor.client import TutorClient
from socratic.tutor.router import router as sessions_router

logger = logging.getLogger(__name__)


async def _seed(app: FastAPI, settings: Settings) -> None:
    """Load the course and achievement catalog (idempotent)."""
    if settings.storage_backend == "memory":
        await seed_catalog(create_store(settings, memory_store=app.state.memory_store))
        return
    async for session in app.state.database.session():
        await seed_catalog(create_store(settings, session=session))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()

    app.state.database = None
    app.state.memory_store = None
    if settings.storage_backend == "memory":
        app.state.memory_store = MemoryStore()
    else:
        app.state.database = Database(settings.database_url, settings.database_pool_size)
        if settings.create_schema:
            await app.state.database.create_schema()

    if settings.seed_catalog:
        await _seed(app, settings)

    app.state.redis = create_redis(settings.redis_url)
    app.state.tutor = TutorClient(
        settings.tutor_url,
        api_key=settings.tutor_api_key,
        default_model=settings.tutor_model,
        timeout=settings.tutor_timeout_seconds,
    )
    logger.info("Started with %s storage", settings.storage_backend)

    yield

    await app.state.tutor.close()
    await close_redis(app.state.redis)
    if app.state.database is not None:
        await app.state.database.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Socratic Tutor API",
        description="Backend API for the Socratic tutoring platform: sessions, courses, XP and achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(sessions_router)
    app.include_router(gamification_router)

    return app


app = create_app()
