"""In-process store used for local development and as the test fake."""

from __future__ import annotations

import copy
import operator
from collections.abc import Callable, Sequence
from typing import Any
from uuid import uuid4

from socratic.exceptions import RecordNotFoundError, StoreError
from socratic.storage.base import BaseStore, Filter, Record, split_lookup, split_order

KNOWN_TABLES = frozenset({
    "courses",
    "achievements",
    "user_stats",
    "user_progress",
    "user_achievements",
    "xp_ledger",
    "chat_sessions",
})

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
    "in": lambda value, options: value in options,
}


def _matches(record: Record, filter: Filter | None) -> bool:  # noqa: A002
    for key, expected in (filter or {}).items():
        field, op = split_lookup(key)
        value = record.get(field)
        if value is None and op not in ("eq", "ne"):
            return False
        if not _OPERATORS[op](value, expected):
            return False
    return True


class _Reversed:
    """Inverts comparison so one sort pass can mix ascending and descending keys."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __lt__(self, other: _Reversed) -> bool:
        return other.value < self.value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Reversed) and other.value == self.value


def _sort_key(order: Sequence[str]) -> Callable[[Record], tuple]:
    fields = [split_order(o) for o in order]

    def key(record: Record) -> tuple:
        parts = []
        for field, descending in fields:
            value = record.get(field)
            # None sorts last in both directions.
            slot = (value is None, _Reversed(value) if descending and value is not None else value)
            parts.append(slot)
        return tuple(parts)

    return key


class MemoryStore(BaseStore):
    """Dict-of-lists store. Records are deep-copied in and out.

    The first write after a commit snapshots every table; ``rollback``
    restores that snapshot and ``commit`` discards it.
    """

    def __init__(self) -> None:
        self._tables: dict[str, list[Record]] = {name: [] for name in KNOWN_TABLES}
        self._snapshot: dict[str, list[Record]] | None = None

    def _begin_write(self) -> None:
        if self._snapshot is None:
            self._snapshot = copy.deepcopy(self._tables)

    def _table(self, table: str) -> list[Record]:
        try:
            return self._tables[table]
        except KeyError:
            msg = f"Unknown table: {table}"
            raise StoreError(msg) from None

    def _find(self, table: str, key: Filter) -> Record | None:
        for record in self._table(table):
            if _matches(record, key):
                return record
        return None

    async def get_row(self, table: str, key: Filter) -> Record | None:
        found = self._find(table, key)
        return copy.deepcopy(found) if found is not None else None

    async def _insert(self, table: str, record: Record) -> Record:
        rows = self._table(table)
        self._begin_write()
        stored = copy.deepcopy(record)
        stored.setdefault("id", str(uuid4()))
        rows.append(stored)
        return copy.deepcopy(stored)

    async def update_row(self, table: str, key: Filter, partial: Record) -> Record:
        found = self._find(table, key)
        if found is None:
            msg = f"No {table} record for {dict(key)}"
            raise RecordNotFoundError(msg)
        self._begin_write()
        found.update(copy.deepcopy(partial))
        return copy.deepcopy(found)

    async def query(
        self,
        table: str,
        filter: Filter | None = None,  # noqa: A002
        order: Sequence[str] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Record]:
        rows = [r for r in self._table(table) if _matches(r, filter)]
        if order:
            rows.sort(key=_sort_key(order))
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, table: str, filter: Filter | None = None) -> int:  # noqa: A002
        return sum(1 for r in self._table(table) if _matches(r, filter))

    async def delete_row(self, table: str, key: Filter) -> None:
        rows = self._table(table)
        for idx, record in enumerate(rows):
            if _matches(record, key):
                self._begin_write()
                del rows[idx]
                return
        msg = f"No {table} record for {dict(key)}"
        raise RecordNotFoundError(msg)

    async def commit(self) -> None:
        self._snapshot = None

    async def rollback(self) -> None:
        if self._snapshot is not None:
            self._tables = self._snapshot
            self._snapshot = None
