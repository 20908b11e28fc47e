"""Tests for the scope-keyed collapse store."""

import json

import pytest

from worklog_outline.config import COLLAPSED_KEY
from worklog_outline.core.collapse.store import CollapseStore
from worklog_outline.core.database.store import MemoryKeyValueStore, SqliteKeyValueStore


@pytest.fixture(params=["memory", "sqlite"])
def store(
    request: pytest.FixtureRequest,
    memory_store: MemoryKeyValueStore,
    sqlite_store: SqliteKeyValueStore,
) -> MemoryKeyValueStore | SqliteKeyValueStore:
    return memory_store if request.param == "memory" else sqlite_store


def test_scopes_are_independent(store: MemoryKeyValueStore) -> None:
    collapse = CollapseStore(store)
    collapse.save(None, ["a", "b"])
    collapse.save("f", ["c"])
    assert collapse.load() == {"a", "b"}
    assert collapse.load("f") == {"c"}
    assert collapse.load("other") == set()
    assert store.get(COLLAPSED_KEY) == json.dumps(["a", "b"])
    assert store.get(f"{COLLAPSED_KEY}.f") == json.dumps(["c"])


def test_set_collapsed_adds_and_removes(store: MemoryKeyValueStore) -> None:
    collapse = CollapseStore(store)
    assert collapse.set_collapsed(None, "a", True) == {"a"}
    assert collapse.set_collapsed(None, "a", True) == {"a"}
    assert collapse.set_collapsed(None, "a", False) == set()


@pytest.mark.parametrize("raw", ["not json", '{"a": 1}', "42"])
def test_corrupt_values_load_as_empty(store: MemoryKeyValueStore, raw: str) -> None:
    store.set(COLLAPSED_KEY, raw)
    assert CollapseStore(store).load() == set()


def test_scope_keys_ignore_unrelated_keys(store: MemoryKeyValueStore) -> None:
    collapse = CollapseStore(store)
    collapse.save(None, ["a"])
    collapse.save("x", ["b"])
    store.set(COLLAPSED_KEY + "_other", "[]")
    store.set("unrelated", "[]")
    assert collapse.scope_keys() == [COLLAPSED_KEY, f"{COLLAPSED_KEY}.x"]
    assert collapse.scope_of(f"{COLLAPSED_KEY}.x") == "x"
    assert collapse.scope_of(COLLAPSED_KEY) is None


def test_migrate_renames_members_and_scope_keys(store: MemoryKeyValueStore) -> None:
    collapse = CollapseStore(store)
    collapse.save(None, ["new-aaa", "7"])
    collapse.save("new-aaa", ["new-bbb"])
    collapse.save("7", ["new-aaa"])

    collapse.migrate_ids({"new-aaa": "100", "new-bbb": "101"})

    assert collapse.load() == {"100", "7"}
    assert collapse.load("100") == {"101"}
    assert collapse.load("7") == {"100"}
    assert store.get(f"{COLLAPSED_KEY}.new-aaa") is None


def test_migrate_is_idempotent(store: MemoryKeyValueStore) -> None:
    collapse = CollapseStore(store)
    collapse.save(None, ["new-aaa"])
    collapse.save("new-aaa", ["new-aaa"])
    mapping = {"new-aaa": "100"}

    collapse.migrate_ids(mapping)
    once = {k: store.get(k) for k in collapse.scope_keys()}
    collapse.migrate_ids(mapping)
    twice = {k: store.get(k) for k in collapse.scope_keys()}

    assert once == twice
    assert once == {COLLAPSED_KEY: '["100"]', f"{COLLAPSED_KEY}.100": '["100"]'}


def test_migrate_with_empty_mapping_writes_nothing() -> None:
    store = MemoryKeyValueStore({COLLAPSED_KEY: "not json"})
    CollapseStore(store).migrate_ids({})
    assert store.data == {COLLAPSED_KEY: "not json"}
