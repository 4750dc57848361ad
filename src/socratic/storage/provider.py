"""Store selection by configuration."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from socratic.config import Settings
from socratic.storage.base import BaseStore
from socratic.storage.memory_store import MemoryStore
from socratic.storage.sql_store import SqlStore


def create_store(
    settings: Settings,
    session: AsyncSession | None = None,
    memory_store: MemoryStore | None = None,
) -> BaseStore:
    """Create the store named by ``settings.storage_backend``.

    The memory backend is process-wide, so callers pass the shared instance
    built at startup; the SQL backend wraps the request's session.
    """
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return memory_store if memory_store is not None else MemoryStore()
    if backend == "sql":
        if session is None:
            msg = "SQL storage backend requires a database session"
            raise ValueError(msg)
        return SqlStore(session)
    msg = f"Unsupported storage backend: {backend}"
    raise ValueError(msg)
