"""Focus root (the zoomed-in subtree) and where it is recorded outside the editor."""

from collections.abc import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from loguru import logger

from worklog_outline.config import FOCUS_KEY
from worklog_outline.core.tree.navigation import find_by_id
from worklog_outline.models.node import Node
from worklog_outline.protocols import FocusLocation, KeyValueStore

FOCUS_QUERY_PARAM = "focus"


class UrlFocusLocation:
    """Focus root carried as the ``focus`` query parameter of a shareable link."""

    def __init__(self, url: str) -> None:
        self.url = url

    def read(self) -> str | None:
        query = dict(parse_qsl(urlsplit(self.url).query))
        return query.get(FOCUS_QUERY_PARAM) or None

    def write(self, node_id: str | None) -> None:
        parts = urlsplit(self.url)
        params = [(k, v) for k, v in parse_qsl(parts.query) if k != FOCUS_QUERY_PARAM]
        if node_id:
            params.append((FOCUS_QUERY_PARAM, node_id))
        self.url = urlunsplit(parts._replace(query=urlencode(params)))


class StoredFocusLocation:
    """Focus root kept in the preferences store."""

    def __init__(self, store: KeyValueStore, *, key: str = FOCUS_KEY) -> None:
        self.store = store
        self.key = key

    def read(self) -> str | None:
        return self.store.get(self.key) or None

    def write(self, node_id: str | None) -> None:
        if node_id:
            self.store.set(self.key, node_id)
        else:
            self.store.delete(self.key)


class FocusState:
    """Current focus root id, mirrored to a :class:`FocusLocation`.

    The recorded id may name a node that no longer exists; :meth:`resolve`
    then reports no focus.
    """

    def __init__(self, location: FocusLocation | None = None) -> None:
        self.location = location
        self.root_id: str | None = location.read() if location is not None else None

    def set(self, node_id: str | None) -> None:
        if node_id == self.root_id:
            return
        self.root_id = node_id
        if self.location is not None:
            self.location.write(node_id)

    def clear(self) -> None:
        self.set(None)

    def resolve(self, roots: list[Node]) -> Node | None:
        if self.root_id is None:
            return None
        return find_by_id(roots, self.root_id)

    def effective_id(self, roots: list[Node]) -> str | None:
        """The focus root id if it still names a node, else None."""
        return self.root_id if self.resolve(roots) is not None else None

    def migrate_ids(self, mapping: Mapping[str, str]) -> bool:
        """Follow the focus root through an id reconciliation. Returns True when it moved."""
        if self.root_id is None or self.root_id not in mapping:
            return False
        new_id = str(mapping[self.root_id])
        logger.debug("Focus root {} is now {}", self.root_id, new_id)
        self.set(new_id)
        return True
