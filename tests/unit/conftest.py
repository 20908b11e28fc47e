"""Shared test fixtures."""

import sqlite3
from collections.abc import Iterator

import pytest

from worklog_outline.core.database.store import MemoryKeyValueStore, SqliteKeyValueStore


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def sqlite_store() -> Iterator[SqliteKeyValueStore]:
    """Return a key/value store on an in-memory SQLite database."""
    store = SqliteKeyValueStore(sqlite3.connect(":memory:"))
    yield store
    store.close()
