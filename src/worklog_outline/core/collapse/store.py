"""Collapsed node ids, one set per scope.

The unscoped (whole-tree) set lives under ``COLLAPSED_KEY``; the set used while
zoomed into a subtree lives under ``COLLAPSED_KEY + "." + <focus root id>``.
Values are JSON arrays of id strings. Nothing is cached: every call reads the
backing store.
"""

import json
from collections.abc import Iterable, Mapping

from loguru import logger

from worklog_outline.config import COLLAPSED_KEY
from worklog_outline.protocols import KeyValueStore


class CollapseStore:
    """Scope-keyed set of collapsed node ids."""

    def __init__(self, store: KeyValueStore, *, base_key: str = COLLAPSED_KEY) -> None:
        self.store = store
        self.base_key = base_key

    def key_for(self, scope: str | None) -> str:
        if scope is None:
            return self.base_key
        return f"{self.base_key}.{scope}"

    def scope_of(self, key: str) -> str | None:
        if key == self.base_key:
            return None
        return key[len(self.base_key) + 1 :]

    def _read(self, key: str) -> set[str]:
        raw = self.store.get(key)
        if raw is None:
            return set()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Ignoring corrupt collapse set under {!r}", key)
            return set()
        if not isinstance(parsed, list):
            return set()
        return {str(v) for v in parsed if v is not None}

    def _write(self, key: str, ids: Iterable[str]) -> None:
        self.store.set(key, json.dumps(sorted({str(i) for i in ids})))

    def load(self, scope: str | None = None) -> set[str]:
        return self._read(self.key_for(scope))

    def save(self, scope: str | None, ids: Iterable[str]) -> None:
        self._write(self.key_for(scope), ids)

    def set_collapsed(self, scope: str | None, node_id: str, collapsed: bool) -> set[str]:
        """Add or remove one id and return the resulting set."""
        ids = self.load(scope)
        if collapsed:
            ids.add(node_id)
        else:
            ids.discard(node_id)
        self.save(scope, ids)
        return ids

    def scope_keys(self) -> list[str]:
        prefix = self.base_key + "."
        return [
            k for k in self.store.keys(self.base_key) if k == self.base_key or k.startswith(prefix)
        ]

    def migrate_ids(self, mapping: Mapping[str, str]) -> None:
        """Rename ids after reconciliation, both as scope keys and as set members.

        Applying the same mapping twice has no further effect.
        """
        if not mapping:
            return
        mapping = {str(k): str(v) for k, v in mapping.items()}

        for key in self.scope_keys():
            scope = self.scope_of(key)
            if scope is None or scope not in mapping:
                continue
            ids = self._read(key)
            self._write(self.key_for(mapping[scope]), ids)
            self.store.delete(key)
            logger.debug("Moved collapse scope {!r} to {!r}", scope, mapping[scope])

        for key in self.scope_keys():
            ids = self._read(key)
            renamed = {mapping.get(i, i) for i in ids}
            if renamed != ids:
                self._write(key, renamed)
