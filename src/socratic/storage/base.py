"""Abstract store over row-shaped records.

Filters map ``field`` or ``field__op`` to a value. Supported ops are listed
in ``LOOKUP_OPS``; a bare field means equality. Orders are field names with
an optional leading ``-`` for descending.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from socratic.exceptions import DuplicateRecordError

Record = dict[str, Any]
Filter = Mapping[str, Any]

LOOKUP_OPS = frozenset({"eq", "ne", "gt", "gte", "lt", "lte", "in"})

# Natural keys enforced by every implementation on insert.
UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "user_stats": ("user_id",),
    "user_progress": ("user_id", "course_id"),
    "user_achievements": ("user_id", "achievement_id"),
}


def split_lookup(key: str) -> tuple[str, str]:
    """Split ``'total_xp__gt'`` into ``('total_xp', 'gt')``."""
    field, sep, op = key.rpartition("__")
    if not sep or op not in LOOKUP_OPS:
        return key, "eq"
    return field, op


def split_order(order: str) -> tuple[str, bool]:
    """Split ``'-total_xp'`` into ``('total_xp', True)`` (descending)."""
    if order.startswith("-"):
        return order[1:], True
    return order, False


class BaseStore(ABC):
    """The five record operations the engine depends on, plus delete and unit-of-work hooks."""

    @abstractmethod
    async def get_row(self, table: str, key: Filter) -> Record | None:
        """Return the first record matching ``key``, or None."""

    async def insert_row(self, table: str, record: Record) -> Record:
        """Insert a record, enforcing the table's natural key."""
        unique = UNIQUE_KEYS.get(table)
        if unique:
            natural_key = {field: record.get(field) for field in unique}
            if await self.get_row(table, natural_key) is not None:
                msg = f"Duplicate {table} record for {natural_key}"
                raise DuplicateRecordError(msg)
        return await self._insert(table, record)

    @abstractmethod
    async def _insert(self, table: str, record: Record) -> Record: ...

    @abstractmethod
    async def update_row(self, table: str, key: Filter, partial: Record) -> Record:
        """Apply ``partial`` to the record matching ``key`` and return it."""

    @abstractmethod
    async def query(
        self,
        table: str,
        filter: Filter | None = None,  # noqa: A002
        order: Sequence[str] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Record]:
        """Return records matching ``filter`` in ``order``."""

    @abstractmethod
    async def count(self, table: str, filter: Filter | None = None) -> int:  # noqa: A002
        """Count records matching ``filter``."""

    @abstractmethod
    async def delete_row(self, table: str, key: Filter) -> None:
        """Delete the record matching ``key``."""

    async def commit(self) -> None:
        """Make pending writes durable. No-op for stores that write through."""

    async def rollback(self) -> None:
        """Discard pending writes. No-op for stores that write through."""
