"""Storage capability: one interface, SQL and in-memory implementations."""

from socratic.storage.base import BaseStore, Filter, Record
from socratic.storage.memory_store import MemoryStore
from socratic.storage.provider import create_store
from socratic.storage.sql_store import SqlStore

__all__ = ["BaseStore", "Filter", "MemoryStore", "Record", "SqlStore", "create_store"]
