"""The editing context: owns the live tree and wires edits, filters, collapse, focus and saving."""

import random
from collections import Counter
from collections.abc import Callable, Mapping
from datetime import date, datetime

from loguru import logger

from worklog_outline.core.collapse.store import CollapseStore
from worklog_outline.core.edit import structure
from worklog_outline.core.edit.reorder import DragController
from worklog_outline.core.edit.structure import EditResult, Position
from worklog_outline.core.filter.preferences import FilterPreferences
from worklog_outline.core.filter.visibility import VisibilityResult, compute_visibility
from worklog_outline.core.focus import FocusState, StoredFocusLocation
from worklog_outline.core.reminders.actions import (
    ReminderAction,
    ReminderActionResult,
    apply_reminder_action,
)
from worklog_outline.core.reminders.scan import ReminderEntry, ReminderSurfacer
from worklog_outline.core.sync import reconcile
from worklog_outline.core.sync.loader import OutlineLoader
from worklog_outline.core.sync.saver import OutlineSaver
from worklog_outline.core.tree.markdown import render_outline_as_markdown
from worklog_outline.core.tree.navigation import clone, find_by_id, node_at, path_of, walk
from worklog_outline.models.node import Node, cycle_status
from worklog_outline.protocols import FocusLocation, KeyValueStore, OutlineApiProtocol


class OutlineSession:
    """Single owner of the live outline.

    Every mutation goes through this object so that the tree is marked dirty
    and a debounced save is scheduled. Consumers that only read (previews,
    reports) get a clone from :meth:`preview`.
    """

    def __init__(
        self,
        api: OutlineApiProtocol,
        store: KeyValueStore,
        *,
        focus_location: FocusLocation | None = None,
        rng: random.Random | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self.api = api
        self.roots: list[Node] = []
        self.rng = rng or random.Random()
        self.collapse = CollapseStore(store)
        self.filters = FilterPreferences(store)
        self.focus = FocusState(focus_location or StoredFocusLocation(store))
        self.loader = OutlineLoader(api)
        saver_kwargs = {} if debounce_seconds is None else {"debounce_seconds": debounce_seconds}
        self.saver = OutlineSaver(
            api, self._snapshot_for_save, on_saved=self.apply_id_mapping, **saver_kwargs
        )
        self.reminders = ReminderSurfacer()
        self.drag = DragController(self.roots, on_change=self._changed)
        self._listeners: list[Callable[[], None]] = []

    # --- loading and saving ---

    async def load(self) -> bool:
        """Replace the tree with the stored outline. False when superseded by a newer load."""
        roots = await self.loader.load()
        if roots is None:
            return False
        self.roots[:] = roots
        self._apply_collapse_set()
        self.reminders.refresh_now(self.roots)
        self._notify()
        return True

    def _snapshot_for_save(self) -> list[dict]:
        reconcile.assign_temporary_ids(self.roots, self.rng)
        return reconcile.serialize_outline(self.roots)

    def apply_id_mapping(self, mapping: Mapping[str, str]) -> None:
        """Move every id-keyed piece of state onto the durable ids from a save."""
        if not mapping:
            return
        rewritten = reconcile.apply_id_mapping(self.roots, mapping)
        logger.debug("Applied {} of {} id mappings", rewritten, len(mapping))
        try:
            self.collapse.migrate_ids(mapping)
        except Exception:
            logger.opt(exception=True).warning("Collapse state migration failed, collapse state may be lost")
        self.focus.migrate_ids(mapping)

    async def save(self) -> bool:
        return await self.saver.save()

    async def flush(self) -> bool:
        """Wait for pending saves; True when nothing is left unsaved."""
        return await self.saver.flush()

    @property
    def dirty(self) -> bool:
        return self.saver.dirty

    @property
    def save_status(self) -> str:
        return self.saver.status

    def on_change(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()

    def _changed(self) -> None:
        self.saver.mark_dirty()
        try:
            self.saver.queue_save()
        except RuntimeError:
            logger.debug("No running event loop, save waits for an explicit flush")
        self._notify()

    def _edit(self, result: EditResult) -> EditResult:
        if result.applied:
            self._changed()
        return result

    # --- lookup ---

    def find(self, node_id: str) -> Node | None:
        return find_by_id(self.roots, node_id)

    def require(self, node_id: str) -> Node:
        node = self.find(node_id)
        if node is None:
            msg = f"Node {node_id!r} not found"
            raise ValueError(msg)
        return node

    def position_of(self, node_id: str, offset: int = 0) -> Position:
        path = path_of(self.roots, self.require(node_id))
        if path is None:
            msg = f"Node {node_id!r} is not reachable from the roots"
            raise ValueError(msg)
        return Position(path, offset)

    def preview(self) -> list[Node]:
        """Independent copy of the tree for read-only consumers."""
        return clone(self.roots)

    # --- structural edits ---

    def press_enter(self, position: Position) -> EditResult:
        return self._edit(structure.press_enter(self.roots, position))

    def indent(self, position: Position) -> EditResult:
        result = structure.indent(self.roots, position)
        if result.applied and result.position is not None:
            # The new parent is expanded by the edit; the stored set must agree.
            parent = node_at(self.roots, result.position.path[:-1])
            if parent.id is not None:
                self.collapse.set_collapsed(self.collapse_scope, parent.id, False)
        return self._edit(result)

    def outdent(self, position: Position) -> EditResult:
        return self._edit(structure.outdent(self.roots, position))

    def merge_backward(self, position: Position) -> EditResult:
        return self._edit(structure.merge_backward(self.roots, position))

    def move(self, drag_id: str, target_id: str | None, placement: str = "before") -> EditResult:
        self.drag.begin_drag(drag_id)
        return self.drag.complete_drop(target_id, placement)

    def set_text(self, node_id: str, text: str) -> None:
        self.require(node_id).set_text(text)
        self._changed()

    def set_status(self, node_id: str, status: str) -> None:
        node = self.require(node_id)
        if node.status != status:
            node.set_status(status)
            self._changed()

    def cycle_status(self, node_id: str) -> str:
        node = self.require(node_id)
        node.set_status(cycle_status(node.status))
        self._changed()
        return node.status

    def apply_reminder_action(
        self, action: ReminderAction, *, today: date | None = None
    ) -> ReminderActionResult:
        result = apply_reminder_action(self.roots, action, today=today)
        if result.applied:
            self._changed()
        return result

    # --- collapse, focus, visibility ---

    @property
    def collapse_scope(self) -> str | None:
        return self.focus.effective_id(self.roots)

    def _apply_collapse_set(self) -> None:
        collapsed = self.collapse.load(self.collapse_scope)
        for node, _parent, _depth in walk(self.roots):
            node.collapsed = node.id is not None and node.id in collapsed

    def set_collapsed(self, node_id: str, collapsed: bool) -> None:
        node = self.require(node_id)
        node.collapsed = collapsed
        self.collapse.set_collapsed(self.collapse_scope, node_id, collapsed)
        self._notify()

    def set_focus(self, node_id: str | None) -> None:
        if node_id is not None:
            self.require(node_id)
        self.focus.set(node_id)
        self._apply_collapse_set()
        self._notify()

    def compute_visibility(self) -> VisibilityResult:
        """Visibility with the filter configuration and collapse set as stored right now."""
        scope = self.collapse_scope
        return compute_visibility(
            self.roots,
            self.filters.load(),
            focus_root_id=scope,
            collapsed=self.collapse.load(scope),
        )

    def render_markdown(self, *, max_depth: int | None = None, show_ids: bool = False) -> str:
        return render_outline_as_markdown(
            self.roots,
            visibility=self.compute_visibility(),
            max_depth=max_depth,
            show_ids=show_ids,
        )

    # --- reminders and tags ---

    async def refresh_reminders(self, now: datetime | None = None) -> list[ReminderEntry] | None:
        return await self.reminders.refresh(self.roots, now)

    def tag_counts(self) -> Counter[str]:
        counts: Counter[str] = Counter()
        for node, _parent, _depth in walk(self.roots):
            counts.update(node.tags)
        return counts
