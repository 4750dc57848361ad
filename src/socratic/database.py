"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from socratic.db.base import Base


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str, pool_size: int = 10) -> None:
        self.url = url
        kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
        if url.startswith("postgresql"):
            kwargs.update(
                pool_size=pool_size,
                max_overflow=10,
                connect_args={"statement_cache_size": 0},
            )
        self._engine: AsyncEngine | None = create_async_engine(url, **kwargs)
        if url.startswith("sqlite"):
            _enable_sqlite_savepoints(self._engine)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            msg = "Database already closed."
            raise RuntimeError(msg)
        return self._engine

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the database engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None

    def new_session(self) -> AsyncSession:
        """A fresh session; use as an async context manager."""
        return self._session_factory()

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an async database session."""
        async with self.new_session() as session:
            yield session


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside a real transaction."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")
