"""Persisted filter configuration."""

import json
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from loguru import logger

from worklog_outline.config import (
    FILTER_ARCHIVED_KEY,
    FILTER_FUTURE_KEY,
    FILTER_SOON_KEY,
    FILTER_STATUS_KEY,
    FILTER_TAG_EXCLUDE_KEY,
    FILTER_TAG_INCLUDE_KEY,
)
from worklog_outline.core.filter.visibility import FilterConfiguration
from worklog_outline.core.tokens.tags import normalize_tag_list
from worklog_outline.models.node import STATUSES
from worklog_outline.protocols import KeyValueStore

MARKER_KEYS: dict[str, str] = {
    "archived": FILTER_ARCHIVED_KEY,
    "future": FILTER_FUTURE_KEY,
    "soon": FILTER_SOON_KEY,
}


def _json_or_none(raw: str | None, key: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Ignoring corrupt filter value under {!r}", key)
        return None


def _tag_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return normalize_tag_list(v for v in raw if isinstance(v, str))


def normalize_tag_filters(
    include: Iterable[str], exclude: Iterable[str]
) -> tuple[list[str], list[str]]:
    """Canonical, sorted lists; a tag both included and excluded stays included."""
    include_list = normalize_tag_list(include)
    included = set(include_list)
    exclude_list = [t for t in normalize_tag_list(exclude) if t not in included]
    return include_list, exclude_list


class FilterPreferences:
    """Reads and writes the filter configuration; each load reads the store afresh.

    Booleans are stored as ``"1"``/``"0"``; the status filter as a JSON object,
    tag lists as JSON arrays. Missing or corrupt values mean "show everything".
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def load_status_filter(self) -> dict[str, bool]:
        raw = _json_or_none(self.store.get(FILTER_STATUS_KEY), FILTER_STATUS_KEY)
        obj = raw if isinstance(raw, dict) else {}
        return {s: obj[s] if isinstance(obj.get(s), bool) else True for s in STATUSES}

    def load_marker_visible(self, marker: str) -> bool:
        return self.store.get(MARKER_KEYS[marker]) != "0"

    def load_tag_filters(self) -> tuple[list[str], list[str]]:
        include = _tag_list(_json_or_none(self.store.get(FILTER_TAG_INCLUDE_KEY), FILTER_TAG_INCLUDE_KEY))
        exclude = _tag_list(_json_or_none(self.store.get(FILTER_TAG_EXCLUDE_KEY), FILTER_TAG_EXCLUDE_KEY))
        return normalize_tag_filters(include, exclude)

    def load(self) -> FilterConfiguration:
        include, exclude = self.load_tag_filters()
        return FilterConfiguration(
            status_filter=self.load_status_filter(),
            show_archived=self.load_marker_visible("archived"),
            show_future=self.load_marker_visible("future"),
            show_soon=self.load_marker_visible("soon"),
            include_tags=frozenset(include),
            exclude_tags=frozenset(exclude),
        )

    def save(self, config: FilterConfiguration) -> None:
        status = {s: config.shows_status(s) for s in STATUSES}
        self.store.set(FILTER_STATUS_KEY, json.dumps(status))
        self.store.set(FILTER_ARCHIVED_KEY, "1" if config.show_archived else "0")
        self.store.set(FILTER_FUTURE_KEY, "1" if config.show_future else "0")
        self.store.set(FILTER_SOON_KEY, "1" if config.show_soon else "0")
        include, exclude = normalize_tag_filters(config.include_tags, config.exclude_tags)
        self.store.set(FILTER_TAG_INCLUDE_KEY, json.dumps(include))
        self.store.set(FILTER_TAG_EXCLUDE_KEY, json.dumps(exclude))

    def set_status_visible(self, status: str, visible: bool) -> FilterConfiguration:
        if status not in STATUSES:
            msg = f"Unknown status {status!r}, expected one of {STATUSES!r}"
            raise ValueError(msg)
        config = self.load()
        config = replace(config, status_filter={**config.status_filter, status: visible})
        self.save(config)
        return config

    def set_marker_visible(self, marker: str, visible: bool) -> FilterConfiguration:
        if marker not in MARKER_KEYS:
            msg = f"Unknown marker {marker!r}, expected one of {sorted(MARKER_KEYS)!r}"
            raise ValueError(msg)
        config = replace(self.load(), **{f"show_{marker}": visible})
        self.save(config)
        return config

    def set_tag_mode(self, tag: str, mode: str | None) -> FilterConfiguration:
        """Put ``tag`` in the include list, the exclude list, or (``None``) neither."""
        if mode not in ("include", "exclude", None):
            msg = f"Unknown tag filter mode {mode!r}"
            raise ValueError(msg)
        canonical = normalize_tag_list([tag])
        if not canonical:
            msg = f"Not a valid tag: {tag!r}"
            raise ValueError(msg)
        config = self.load()
        include = set(config.include_tags) - set(canonical)
        exclude = set(config.exclude_tags) - set(canonical)
        if mode == "include":
            include.update(canonical)
        elif mode == "exclude":
            exclude.update(canonical)
        config = replace(config, include_tags=frozenset(include), exclude_tags=frozenset(exclude))
        self.save(config)
        return config
