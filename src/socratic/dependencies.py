"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from socratic.config import Settings, get_settings
from socratic.gamification.achievements import AchievementEvaluator
from socratic.gamification.events import EventEmitter
from socratic.gamification.progress import ProgressTracker
from socratic.storage import BaseStore, create_store
from socratic.tutor.client import TutorClient
from socratic.tutor.session_service import ChatSessionService


async def get_store(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[BaseStore, None]:
    """Yield the configured store. SQL stores wrap one session per request.

    Writes not committed by the time the request fails are rolled back.
    """
    if settings.storage_backend == "memory":
        store = create_store(settings, memory_store=request.app.state.memory_store)
        try:
            yield store
        except Exception:
            await store.rollback()
            raise
        return
    async with request.app.state.database.new_session() as session:
        store = create_store(settings, session=session)
        try:
            yield store
        except Exception:
            await store.rollback()
            raise


def get_redis_dep(request: Request) -> object | None:
    """The Redis client, or None when broadcasting is disabled."""
    return request.app.state.redis


def get_tutor_client(request: Request) -> TutorClient:
    return request.app.state.tutor


def get_emitter(redis: object | None = Depends(get_redis_dep)) -> EventEmitter:
    return EventEmitter(redis)


def get_progress_tracker(
    store: BaseStore = Depends(get_store),
    emitter: EventEmitter = Depends(get_emitter),
) -> ProgressTracker:
    return ProgressTracker(store, AchievementEvaluator(store), emitter)


def get_session_service(
    store: BaseStore = Depends(get_store),
    tutor: TutorClient = Depends(get_tutor_client),
    emitter: EventEmitter = Depends(get_emitter),
    settings: Settings = Depends(get_settings),
) -> ChatSessionService:
    return ChatSessionService(
        store,
        tutor,
        AchievementEvaluator(store),
        emitter,
        max_message_length=settings.max_message_length,
    )
