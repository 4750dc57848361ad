"""SQLAlchemy-backed store. Tables are ORM models, rows come back as dicts."""

from __future__ import annotations

import copy
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import ColumnElement, Select, delete, func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socratic.db.base import Base
from socratic.db.models import TABLE_MODELS
from socratic.exceptions import DuplicateRecordError, RecordNotFoundError, StoreError
from socratic.storage.base import BaseStore, Filter, Record, split_lookup, split_order


def _model(table: str) -> type[Base]:
    try:
        return TABLE_MODELS[table]
    except KeyError:
        msg = f"Unknown table: {table}"
        raise StoreError(msg) from None


def _conditions(model: type[Base], filter: Filter | None) -> list[ColumnElement[bool]]:  # noqa: A002
    conditions = []
    for key, value in (filter or {}).items():
        field, op = split_lookup(key)
        column = getattr(model, field)
        if op == "eq":
            conditions.append(column.is_(None) if value is None else column == value)
        elif op == "ne":
            conditions.append(column.is_not(None) if value is None else column != value)
        elif op == "gt":
            conditions.append(column > value)
        elif op == "gte":
            conditions.append(column >= value)
        elif op == "lt":
            conditions.append(column < value)
        elif op == "lte":
            conditions.append(column <= value)
        elif op == "in":
            conditions.append(column.in_(list(value)))
    return conditions


def _to_dict(obj: Base) -> Record:
    """Column values as a dict. Naive datetimes (SQLite) are read back as UTC.

    JSON values are copied so in-place edits by callers never alias ORM state.
    """
    record: Record = {}
    for attr in inspect(obj).mapper.column_attrs:
        value = getattr(obj, attr.key)
        if isinstance(value, (list, dict)):
            value = copy.deepcopy(value)
        elif isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        record[attr.key] = value
    return record


class SqlStore(BaseStore):
    """Store bound to one AsyncSession; ``commit`` ends the unit of work."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _scalars(self, stmt: Select[Any]) -> list[Any]:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"Query failed: {exc}") from exc
        return list(result.scalars().all())

    async def _first(self, table: str, key: Filter) -> Base | None:
        model = _model(table)
        rows = await self._scalars(select(model).where(*_conditions(model, key)).limit(1))
        return rows[0] if rows else None

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateRecordError(f"Constraint violated: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Write failed: {exc}") from exc

    async def get_row(self, table: str, key: Filter) -> Record | None:
        obj = await self._first(table, key)
        return _to_dict(obj) if obj is not None else None

    async def _insert(self, table: str, record: Record) -> Record:
        """Insert inside a SAVEPOINT so a constraint violation only undoes this row."""
        obj = _model(table)(**record)
        try:
            async with self.session.begin_nested():
                self.session.add(obj)
                await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateRecordError(f"Constraint violated: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Write failed: {exc}") from exc
        return _to_dict(obj)

    async def update_row(self, table: str, key: Filter, partial: Record) -> Record:
        obj = await self._first(table, key)
        if obj is None:
            msg = f"No {table} record for {dict(key)}"
            raise RecordNotFoundError(msg)
        for field, value in partial.items():
            setattr(obj, field, value)
        await self._flush()
        return _to_dict(obj)

    async def query(
        self,
        table: str,
        filter: Filter | None = None,  # noqa: A002
        order: Sequence[str] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Record]:
        model = _model(table)
        stmt = select(model).where(*_conditions(model, filter))
        for entry in order or ():
            field, descending = split_order(entry)
            column = getattr(model, field)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [_to_dict(obj) for obj in await self._scalars(stmt)]

    async def count(self, table: str, filter: Filter | None = None) -> int:  # noqa: A002
        model = _model(table)
        stmt = select(func.count()).select_from(model).where(*_conditions(model, filter))
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"Count failed: {exc}") from exc
        return int(result.scalar_one())

    async def delete_row(self, table: str, key: Filter) -> None:
        model = _model(table)
        try:
            result = await self.session.execute(delete(model).where(*_conditions(model, key)))
        except SQLAlchemyError as exc:
            raise StoreError(f"Delete failed: {exc}") from exc
        if result.rowcount == 0:
            msg = f"No {table} record for {dict(key)}"
            raise RecordNotFoundError(msg)

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Commit failed: {exc}") from exc

    async def rollback(self) -> None:
        await self.session.rollback()
