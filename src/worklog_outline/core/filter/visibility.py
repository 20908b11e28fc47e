"""Per-node visibility for the current filter configuration and focus root.

The computation is pure: it reads the tree, the configuration and the
collapse set, and returns a :class:`VisibilityResult` without touching any of
them. Passes over the tree run on a flat pre-order list, so parents always
come before their children and outline depth never turns into call depth.
"""

from collections.abc import Collection, Iterator, Mapping
from dataclasses import dataclass, field

from worklog_outline.core.tree.navigation import walk
from worklog_outline.models.node import STATUSES, Node

VISIBLE = "visible"
HIDDEN = "hidden"
PARENT = "parent"
FOCUS_ROOT = "focus-root"
FOCUS_DESCENDANT = "focus-descendant"
FOCUS_ANCESTOR = "focus-ancestor"
FOCUS_HIDDEN = "focus-hidden"


def _all_statuses() -> dict[str, bool]:
    return {status: True for status in STATUSES}


@dataclass(frozen=True)
class FilterConfiguration:
    """User-adjustable filters. The default shows everything."""

    status_filter: Mapping[str, bool] = field(default_factory=_all_statuses)
    show_archived: bool = True
    show_future: bool = True
    show_soon: bool = True
    include_tags: frozenset[str] = frozenset()
    exclude_tags: frozenset[str] = frozenset()

    def shows_status(self, status: str) -> bool:
        return self.status_filter.get(status, True) is not False


@dataclass
class NodeVisibility:
    """Visibility decision and the facts it was derived from."""

    node: Node = field(repr=False)
    depth: int
    classification: str = VISIBLE
    archived: bool = False
    future: bool = False
    soon: bool = False
    include_self: bool = False
    include_descendant: bool = False
    include_ancestor: bool = False
    exclude_self: bool = False
    exclude_ancestor: bool = False
    collapsed_ancestor: bool = False
    hidden_by: tuple[str, ...] = ()

    @property
    def visible(self) -> bool:
        """Full content is shown (collapse aside)."""
        return self.classification in (VISIBLE, FOCUS_ROOT, FOCUS_DESCENDANT)

    @property
    def rendered(self) -> bool:
        """Takes up a row: visible, a pass-through parent or a breadcrumb, and not folded away."""
        if self.classification in (HIDDEN, FOCUS_HIDDEN):
            return False
        return not self.collapsed_ancestor


class VisibilityResult:
    """Visibility of every node, in document order."""

    def __init__(self, entries: list[NodeVisibility], focus_root: Node | None) -> None:
        self.entries = entries
        self.focus_root = focus_root
        self._by_object = {id(e.node): e for e in entries}

    def __iter__(self) -> Iterator[NodeVisibility]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def of(self, node: Node) -> NodeVisibility:
        return self._by_object[id(node)]

    def by_id(self, node_id: str) -> NodeVisibility | None:
        for entry in self.entries:
            if entry.node.id == node_id:
                return entry
        return None

    def ids_with(self, *classifications: str) -> list[str]:
        return [
            e.node.id
            for e in self.entries
            if e.node.id is not None and e.classification in classifications
        ]

    @property
    def focus_active(self) -> bool:
        return self.focus_root is not None


def compute_visibility(
    roots: list[Node],
    config: FilterConfiguration,
    focus_root_id: str | None = None,
    collapsed: Collection[str] | None = None,
) -> VisibilityResult:
    """Classify every node of ``roots``.

    ``collapsed`` holds the ids collapsed in the current scope, on top of each
    node's own ``collapsed`` flag. A ``focus_root_id`` that is not in the tree
    is treated as no focus at all.
    """
    collapsed_ids = set(collapsed or ())
    include = {t.lower() for t in config.include_tags}
    exclude = {t.lower() for t in config.exclude_tags}
    include_required = bool(include)

    entries: list[NodeVisibility] = []
    parent_of: list[int] = []
    index_of: dict[int, int] = {}

    # Leaf pass: facts about each node on its own.
    for node, parent, depth in walk(roots):
        own_tags = set(node.tags)
        entry = NodeVisibility(
            node=node,
            depth=depth,
            archived=node.archived_self,
            future=node.future_self,
            soon=node.soon_self,
            include_self=bool(own_tags & include),
            exclude_self=bool(own_tags & exclude),
        )
        index_of[id(node)] = len(entries)
        parent_of.append(index_of[id(parent)] if parent is not None else -1)
        entries.append(entry)

    # Upward pass: children before parents.
    for i in range(len(entries) - 1, -1, -1):
        p = parent_of[i]
        if p < 0:
            continue
        if entries[i].include_self or entries[i].include_descendant:
            entries[p].include_descendant = True

    focus_index = -1
    if focus_root_id is not None:
        for i, entry in enumerate(entries):
            if entry.node.id == focus_root_id:
                focus_index = i
                break

    # Downward pass: parents before children.
    focus_role = [""] * len(entries)
    if focus_index >= 0:
        focus_role[focus_index] = FOCUS_ROOT
        p = parent_of[focus_index]
        while p >= 0:
            focus_role[p] = FOCUS_ANCESTOR
            p = parent_of[p]

    for i, entry in enumerate(entries):
        p = parent_of[i]
        if p < 0:
            continue
        parent = entries[p]
        entry.archived = entry.archived or parent.archived
        entry.future = entry.future or parent.future
        entry.soon = entry.soon or parent.soon
        entry.include_ancestor = parent.include_self or parent.include_ancestor
        entry.exclude_ancestor = parent.exclude_self or parent.exclude_ancestor
        if focus_role[p] in (FOCUS_ROOT, FOCUS_DESCENDANT):
            focus_role[i] = FOCUS_DESCENDANT
        if focus_role[p] != FOCUS_ANCESTOR:
            parent_node = parent.node
            parent_collapsed = parent_node.collapsed or (
                parent_node.id is not None and parent_node.id in collapsed_ids
            )
            entry.collapsed_ancestor = parent.collapsed_ancestor or parent_collapsed

    # Decision pass.
    for i, entry in enumerate(entries):
        if focus_index >= 0:
            entry.classification = focus_role[i] or FOCUS_HIDDEN
            continue
        reasons: list[str] = []
        if not config.shows_status(entry.node.status):
            reasons.append("status")
        if not config.show_archived and entry.archived:
            reasons.append("archived")
        if not config.show_future and entry.future:
            reasons.append("future")
        if not config.show_soon and entry.soon:
            reasons.append("soon")
        if include_required and not (
            entry.include_self or entry.include_descendant or entry.include_ancestor
        ):
            reasons.append("include")
        if entry.exclude_self or entry.exclude_ancestor:
            reasons.append("exclude")
        entry.hidden_by = tuple(reasons)
        entry.classification = HIDDEN if reasons else VISIBLE

    # Keep filtered-out branches navigable when something below them survives.
    if focus_index < 0:
        has_visible_below = [False] * len(entries)
        for i in range(len(entries) - 1, -1, -1):
            entry = entries[i]
            if entry.classification == HIDDEN and has_visible_below[i]:
                entry.classification = PARENT
            p = parent_of[i]
            if p >= 0 and (entry.classification != HIDDEN or has_visible_below[i]):
                has_visible_below[p] = True

    focus_root = entries[focus_index].node if focus_index >= 0 else None
    return VisibilityResult(entries, focus_root)
