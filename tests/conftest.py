"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from socratic.config import get_settings
from socratic.database import Database
from socratic.gamification.seed import seed_catalog
from socratic.storage import MemoryStore, SqlStore
from socratic.tutor.client import TutorClient

TEST_USER_ID = "user-alice"
TEST_SECRET = "test-secret-key-for-hs256-signing"


class FakeTutor:
    """Scripted stand-in for the tutor endpoint, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.agent = "socratic"
        self.reply = "What do you already know about it?"
        self.next_state: dict[str, Any] = {"attempt_number": 0, "hint_level": 0, "misconception": "none"}
        self.status_code = 200
        self.requests: list[dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "upstream failure"})
        return httpx.Response(200, json={
            "active_agent": self.agent,
            "combinedMessage": self.reply,
            "next_state": self.next_state,
        })

    def client(self) -> TutorClient:
        return TutorClient("http://tutor.test/chat", transport=httpx.MockTransport(self.handler))


@pytest_asyncio.fixture
async def memory_store() -> MemoryStore:
    """Memory store with the course and achievement catalog loaded."""
    store = MemoryStore()
    await seed_catalog(store)
    return store


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database with the schema created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.create_schema()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def sql_store(database: Database) -> AsyncGenerator[SqlStore, None]:
    """SQL store on its own session, catalog seeded."""
    async for session in database.session():
        store = SqlStore(session)
        await seed_catalog(store)
        yield store


@pytest.fixture
def fake_tutor() -> FakeTutor:
    return FakeTutor()


@pytest.fixture
def app_settings(monkeypatch: pytest.MonkeyPatch):
    """Settings for an app instance on the memory backend, without Redis."""
    monkeypatch.setenv("SOCRATIC_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("SOCRATIC_REDIS_URL", "")
    monkeypatch.setenv("SOCRATIC_JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("SOCRATIC_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


async def _client_for(fake_tutor: FakeTutor) -> AsyncGenerator[AsyncClient, None]:
    from socratic.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        await app.state.tutor.close()
        app.state.tutor = fake_tutor.client()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


@pytest_asyncio.fixture
async def client(app_settings, fake_tutor: FakeTutor) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated HTTP client with full app lifecycle."""
    async for ac in _client_for(fake_tutor):
        yield ac


@pytest_asyncio.fixture
async def sql_client(app_settings, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fake_tutor: FakeTutor):
    """HTTP client for an app on the SQL backend (SQLite file)."""
    monkeypatch.setenv("SOCRATIC_STORAGE_BACKEND", "sql")
    monkeypatch.setenv("SOCRATIC_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    get_settings.cache_clear()
    async for ac in _client_for(fake_tutor):
        ac.headers["Authorization"] = f"Bearer {_token(TEST_USER_ID)}"
        yield ac


def _token(user_id: str) -> str:
    from socratic.auth.jwt import create_access_token

    return create_access_token(user_id)


@pytest.fixture
def auth_headers(app_settings):
    """Factory for bearer headers of any user."""

    def make(user_id: str = TEST_USER_ID) -> dict[str, str]:
        return {"Authorization": f"Bearer {_token(user_id)}"}

    return make


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, auth_headers) -> AsyncClient:
    """Client authenticated as TEST_USER_ID."""
    client.headers.update(auth_headers())
    return client
