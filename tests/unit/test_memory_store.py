"""MemoryStore behaviour shared with the SQL store contract."""

from __future__ import annotations

import pytest
import pytest_asyncio

from socratic.exceptions import DuplicateRecordError, RecordNotFoundError, StoreError
from socratic.storage import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


class TestRecords:

    @pytest.mark.asyncio
    async def test_insert_assigns_id(self, store):
        row = await store.insert_row("xp_ledger", {"user_id": "u1", "amount": 5, "source": "lesson"})
        assert row["id"]
        assert await store.get_row("xp_ledger", {"id": row["id"]}) == row

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get_row("user_stats", {"user_id": "ghost"}) is None

    @pytest.mark.asyncio
    async def test_unknown_table(self, store):
        with pytest.raises(StoreError):
            await store.query("users")

    @pytest.mark.asyncio
    async def test_natural_key_enforced(self, store):
        await store.insert_row("user_progress", {"user_id": "u1", "course_id": "c1"})
        await store.insert_row("user_progress", {"user_id": "u1", "course_id": "c2"})
        with pytest.raises(DuplicateRecordError):
            await store.insert_row("user_progress", {"user_id": "u1", "course_id": "c1"})

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self, store):
        await store.insert_row("user_progress", {"user_id": "u1", "course_id": "c1", "completed_lessons": [0]})
        row = await store.get_row("user_progress", {"user_id": "u1"})
        row["completed_lessons"].append(1)
        fresh = await store.get_row("user_progress", {"user_id": "u1"})
        assert fresh["completed_lessons"] == [0]

    @pytest.mark.asyncio
    async def test_update(self, store):
        await store.insert_row("user_stats", {"user_id": "u1", "total_xp": 0})
        row = await store.update_row("user_stats", {"user_id": "u1"}, {"total_xp": 10})
        assert row["total_xp"] == 10

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        with pytest.raises(RecordNotFoundError):
            await store.update_row("user_stats", {"user_id": "u1"}, {"total_xp": 10})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.insert_row("chat_sessions", {"id": "s1", "user_id": "u1"})
        await store.delete_row("chat_sessions", {"id": "s1"})
        assert await store.count("chat_sessions") == 0
        with pytest.raises(RecordNotFoundError):
            await store.delete_row("chat_sessions", {"id": "s1"})


class TestUnitOfWork:

    @pytest.mark.asyncio
    async def test_rollback_discards_uncommitted_writes(self, store):
        await store.insert_row("user_stats", {"user_id": "u1", "total_xp": 0})
        await store.commit()

        await store.update_row("user_stats", {"user_id": "u1"}, {"total_xp": 50})
        await store.insert_row("xp_ledger", {"user_id": "u1", "amount": 50, "source": "lesson"})
        await store.delete_row("user_stats", {"user_id": "u1"})
        await store.rollback()

        row = await store.get_row("user_stats", {"user_id": "u1"})
        assert row["total_xp"] == 0
        assert await store.count("xp_ledger") == 0

    @pytest.mark.asyncio
    async def test_commit_keeps_writes(self, store):
        await store.insert_row("user_stats", {"user_id": "u1", "total_xp": 10})
        await store.commit()
        await store.rollback()
        assert (await store.get_row("user_stats", {"user_id": "u1"}))["total_xp"] == 10

    @pytest.mark.asyncio
    async def test_rollback_without_writes_is_noop(self, store):
        await store.rollback()
        assert await store.count("user_stats") == 0


class TestQuery:

    @pytest_asyncio.fixture
    async def populated(self, store):
        for user_id, xp in (("a", 300), ("b", 100), ("c", 300), ("d", 0)):
            await store.insert_row("user_stats", {"user_id": user_id, "total_xp": xp})
        return store

    @pytest.mark.asyncio
    async def test_lookups(self, populated):
        assert await populated.count("user_stats", {"total_xp__gt": 100}) == 2
        assert await populated.count("user_stats", {"total_xp__gte": 100}) == 3
        assert await populated.count("user_stats", {"total_xp__lt": 100}) == 1
        assert await populated.count("user_stats", {"user_id__in": ["a", "d", "z"]}) == 2
        assert await populated.count("user_stats", {"user_id__ne": "a"}) == 3

    @pytest.mark.asyncio
    async def test_mixed_order(self, populated):
        rows = await populated.query("user_stats", order=["-total_xp", "user_id"])
        assert [r["user_id"] for r in rows] == ["a", "c", "b", "d"]

    @pytest.mark.asyncio
    async def test_limit_offset(self, populated):
        rows = await populated.query("user_stats", order=["user_id"], limit=2, offset=1)
        assert [r["user_id"] for r in rows] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_none_sorts_last(self, store):
        await store.insert_row("chat_sessions", {"id": "s1", "user_id": "u1", "updated_at": None})
        await store.insert_row("chat_sessions", {"id": "s2", "user_id": "u1", "updated_at": 5})
        rows = await store.query("chat_sessions", order=["-updated_at"])
        assert [r["id"] for r in rows] == ["s2", "s1"]
