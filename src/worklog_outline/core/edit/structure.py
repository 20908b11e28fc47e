"""Outline-style structural edits: Enter, Tab, Shift+Tab and Backspace-merge.

Every operation takes the live list of roots plus a cursor :class:`Position`,
mutates the tree in place and returns an :class:`EditResult` whose
``position`` re-anchors the cursor. Unmet preconditions are reported through
``applied=False`` and leave the tree untouched.
"""

from dataclasses import dataclass

from loguru import logger

from worklog_outline.core.tree.navigation import node_at
from worklog_outline.models.node import (
    ContentElement,
    Node,
    TextRun,
    element_text,
)


@dataclass(frozen=True)
class Position:
    """Cursor position: child-index path of the node plus a text offset."""

    path: tuple[int, ...]
    offset: int = 0


@dataclass(frozen=True)
class EditResult:
    """Outcome of a structural edit."""

    applied: bool
    position: Position | None = None
    reason: str = ""
    created: Node | None = None


def _noop(reason: str, position: Position | None = None) -> EditResult:
    logger.debug("Structural edit skipped: {}", reason)
    return EditResult(applied=False, position=position, reason=reason)


def siblings_of(roots: list[Node], path: tuple[int, ...]) -> list[Node]:
    """The list that holds the node at ``path``."""
    if len(path) == 1:
        return roots
    return node_at(roots, path[:-1]).children


def split_body(
    body: list[ContentElement], offset: int
) -> tuple[list[ContentElement], list[ContentElement]]:
    """Split a body at a text offset. Text runs are cut, other elements stay whole."""
    before: list[ContentElement] = []
    after: list[ContentElement] = []
    consumed = 0
    for element in body:
        length = len(element_text(element))
        if consumed + length <= offset:
            before.append(element)
        elif consumed >= offset:
            after.append(element)
        elif isinstance(element, TextRun):
            cut = offset - consumed
            before.append(TextRun(element.text[:cut], element.marks))
            after.append(TextRun(element.text[cut:], element.marks))
        else:
            before.append(element)
        consumed += length
    return before, after


def _new_node(body: list[ContentElement] | None = None) -> Node:
    # Freshly created nodes never inherit identity, status or collapse state.
    return Node(id=None, body=body or [], status="none", collapsed=False)


def press_enter(roots: list[Node], position: Position) -> EditResult:
    """Handle Enter at ``position``.

    * empty node (no text, no children): new empty sibling after it;
    * at the end of a node with collapsed children: new sibling after it;
    * at the end of a node with expanded children: new first child;
    * at the very start of a non-empty child node: empty sibling before it;
    * otherwise split: the text after the cursor moves into a new sibling.
    """
    node = node_at(roots, position.path)
    siblings = siblings_of(roots, position.path)
    index = position.path[-1]
    parent_path = position.path[:-1]
    text_length = len(node.text)
    offset = max(0, min(position.offset, text_length))
    at_end = offset >= text_length

    if node.is_empty:
        created = _new_node()
        siblings.insert(index + 1, created)
        logger.debug("Enter on empty node: new sibling after {}", position.path)
        return EditResult(True, Position((*parent_path, index + 1), 0), "empty-node", created)

    if at_end and node.children and node.collapsed:
        created = _new_node()
        siblings.insert(index + 1, created)
        logger.debug("Enter after collapsed node: new sibling after {}", position.path)
        return EditResult(True, Position((*parent_path, index + 1), 0), "after-collapsed", created)

    if at_end and node.children:
        created = _new_node()
        node.children.insert(0, created)
        logger.debug("Enter at end of expanded node: new first child of {}", position.path)
        return EditResult(True, Position((*position.path, 0), 0), "first-child", created)

    if offset == 0 and parent_path and text_length > 0:
        created = _new_node()
        siblings.insert(index, created)
        logger.debug("Enter at start of child node: empty sibling before {}", position.path)
        return EditResult(True, Position(position.path, 0), "before", created)

    before, after = split_body(node.body, offset)
    node.set_body(before)
    created = _new_node(after)
    siblings.insert(index + 1, created)
    logger.debug("Split node {} at offset {}", position.path, offset)
    return EditResult(True, Position((*parent_path, index + 1), 0), "split", created)


def indent(roots: list[Node], position: Position) -> EditResult:
    """Make the node the last child of its previous sibling."""
    node_at(roots, position.path)
    index = position.path[-1]
    if index == 0:
        return _noop("no-previous-sibling", position)
    siblings = siblings_of(roots, position.path)
    previous = siblings[index - 1]
    node = siblings.pop(index)
    previous.children.append(node)
    previous.collapsed = False
    new_path = (*position.path[:-1], index - 1, len(previous.children) - 1)
    return EditResult(True, Position(new_path, position.offset), "indented")


def outdent(roots: list[Node], position: Position) -> EditResult:
    """Move the node right after its former parent. Following siblings stay put."""
    node_at(roots, position.path)
    if len(position.path) == 1:
        return _noop("at-root", position)
    parent_path = position.path[:-1]
    parent = node_at(roots, parent_path)
    node = parent.children.pop(position.path[-1])
    outer = siblings_of(roots, parent_path)
    outer.insert(parent_path[-1] + 1, node)
    new_path = (*parent_path[:-1], parent_path[-1] + 1)
    return EditResult(True, Position(new_path, position.offset), "outdented")


def _previous_in_document(roots: list[Node], path: tuple[int, ...]) -> tuple[int, ...] | None:
    index = path[-1]
    if index == 0:
        return path[:-1] or None
    prev_path = (*path[:-1], index - 1)
    prev = node_at(roots, prev_path)
    while prev.children and not prev.collapsed:
        prev_path = (*prev_path, len(prev.children) - 1)
        prev = prev.children[-1]
    return prev_path


def merge_backward(roots: list[Node], position: Position) -> EditResult:
    """Backspace at the start of a node: append its body to the previous node.

    The merged node's children follow it: under its former parent when the
    parent absorbed the text, otherwise they become children of the target.
    """
    node_at(roots, position.path)
    if position.offset != 0:
        return _noop("not-at-start", position)
    target_path = _previous_in_document(roots, position.path)
    if target_path is None:
        return _noop("at-start-of-outline", position)

    target = node_at(roots, target_path)
    siblings = siblings_of(roots, position.path)
    node = siblings.pop(position.path[-1])
    joined_at = len(target.text)
    target.set_body([*target.body, *node.body])
    if target_path == position.path[:-1]:
        target.children[position.path[-1] : position.path[-1]] = node.children
    else:
        target.children.extend(node.children)
    return EditResult(True, Position(target_path, joined_at), "merged")


def remove_node(roots: list[Node], path: tuple[int, ...]) -> Node:
    """Detach and return the node (with its subtree) at ``path``."""
    node_at(roots, path)
    siblings = siblings_of(roots, path)
    return siblings.pop(path[-1])
