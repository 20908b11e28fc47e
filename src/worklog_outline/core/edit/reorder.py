"""Drag reordering of nodes."""

from collections.abc import Callable

from loguru import logger

from worklog_outline.core.edit.structure import EditResult, Position
from worklog_outline.core.tree.navigation import clone, is_descendant, locate, path_of
from worklog_outline.models.node import Node

PLACEMENTS: tuple[str, ...] = ("before", "after")


def _insert_relative(roots: list[Node], node: Node, target_id: str | None, placement: str) -> bool:
    target = locate(roots, target_id)
    if target is None:
        return False
    offset = 1 if placement == "after" else 0
    target.siblings.insert(target.index + offset, node)
    return True


def move_node(
    roots: list[Node],
    drag_id: str | None,
    target_id: str | None,
    placement: str = "before",
) -> EditResult:
    """Move ``drag_id`` before or after ``target_id``.

    Nodes at the same depth are swapped around in place. Otherwise the tree is
    rebuilt from a copy: the dragged node is removed and re-inserted next to the
    target, or appended at the end when the target is gone.
    """
    if placement not in PLACEMENTS:
        msg = f"Unknown drop placement {placement!r}, expected one of {PLACEMENTS!r}"
        raise ValueError(msg)
    if drag_id is None or drag_id == target_id:
        return EditResult(applied=False, reason="same-node")

    dragged = locate(roots, drag_id)
    if dragged is None:
        return EditResult(applied=False, reason="not-found")
    if is_descendant(dragged.node, target_id):
        logger.debug("Rejected drop of {} inside its own subtree", drag_id)
        return EditResult(applied=False, reason="drop-inside-self")

    target = locate(roots, target_id)
    if target is not None and target.depth == dragged.depth:
        moving = dragged.siblings.pop(dragged.index)
        index = next(i for i, n in enumerate(target.siblings) if n is target.node)
        target.siblings.insert(index + (1 if placement == "after" else 0), moving)
        new_path = path_of(roots, moving)
        return EditResult(True, Position(new_path or (), 0), "same-depth")

    logger.debug("Depth mismatch dropping {} on {}, rebuilding tree", drag_id, target_id)
    rebuilt = clone(roots)
    source = locate(rebuilt, drag_id)
    if source is None:
        return EditResult(applied=False, reason="not-found")
    moving = source.siblings.pop(source.index)
    if not _insert_relative(rebuilt, moving, target_id, placement):
        rebuilt.append(moving)
    roots[:] = rebuilt
    new_path = path_of(roots, moving)
    return EditResult(True, Position(new_path or (), 0), "rebuilt")


class DragController:
    """Two-phase drag command: capture intent first, commit on drop."""

    def __init__(
        self,
        roots: list[Node],
        *,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.roots = roots
        self.on_change = on_change
        self.drag_id: str | None = None

    def begin_drag(self, node_id: str) -> None:
        self.drag_id = node_id

    def cancel(self) -> None:
        self.drag_id = None

    def complete_drop(self, target_id: str | None, placement: str = "before") -> EditResult:
        drag_id, self.drag_id = self.drag_id, None
        if drag_id is None:
            return EditResult(applied=False, reason="no-drag")
        result = move_node(self.roots, drag_id, target_id, placement)
        if result.applied and self.on_change:
            self.on_change()
        return result
