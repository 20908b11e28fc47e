"""Tree navigation: lookup by id, ancestors, depth, paths, deep copies.

All walks use an explicit stack so outline depth never limits recursion depth.
"""

from collections.abc import Iterator
from dataclasses import dataclass, replace

from worklog_outline.models.node import Node


@dataclass(frozen=True)
class NodeLocation:
    """Where a node sits: its parent (None for roots), sibling list and index."""

    node: Node
    parent: Node | None
    siblings: list[Node]
    index: int
    depth: int


def walk(roots: list[Node]) -> Iterator[tuple[Node, Node | None, int]]:
    """Yield ``(node, parent, depth)`` in document (pre-)order."""
    stack: list[tuple[Node, Node | None, int]] = [(n, None, 0) for n in reversed(roots)]
    while stack:
        node, parent, depth = stack.pop()
        yield node, parent, depth
        for child in reversed(node.children):
            stack.append((child, node, depth + 1))


def locate(roots: list[Node], node_id: str | None) -> NodeLocation | None:
    """Find the first node with ``node_id``, depth-first."""
    if node_id is None:
        return None
    stack: list[tuple[list[Node], Node | None, int]] = [(roots, None, 0)]
    while stack:
        siblings, parent, depth = stack.pop()
        for index, node in enumerate(siblings):
            if node.id == node_id:
                return NodeLocation(node, parent, siblings, index, depth)
        for node in reversed(siblings):
            if node.children:
                stack.append((node.children, node, depth + 1))
    return None


def locate_node(roots: list[Node], target: Node) -> NodeLocation | None:
    """Like :func:`locate` but by object identity; works for nodes without ids."""
    stack: list[tuple[list[Node], Node | None, int]] = [(roots, None, 0)]
    while stack:
        siblings, parent, depth = stack.pop()
        for index, node in enumerate(siblings):
            if node is target:
                return NodeLocation(node, parent, siblings, index, depth)
            if node.children:
                stack.append((node.children, node, depth + 1))
    return None


def find_by_id(roots: list[Node], node_id: str | None) -> Node | None:
    if node_id is None:
        return None
    for node, _parent, _depth in walk(roots):
        if node.id == node_id:
            return node
    return None


def ancestors_of(roots: list[Node], node_id: str) -> list[Node]:
    """Ancestors of ``node_id`` from the root down to its parent.

    Returns an empty list for roots and for unknown ids.
    """
    path: list[Node] = []
    stack: list[tuple[Node, int]] = [(n, 0) for n in reversed(roots)]
    while stack:
        node, depth = stack.pop()
        del path[depth:]
        if node.id == node_id:
            return path
        path.append(node)
        for child in reversed(node.children):
            stack.append((child, depth + 1))
    return []


def depth_of(roots: list[Node], node_id: str) -> int:
    """Depth of ``node_id`` (roots are 0), or -1 when it is not in the tree."""
    for node, _parent, depth in walk(roots):
        if node.id == node_id:
            return depth
    return -1


def is_descendant(ancestor: Node, node_id: str | None) -> bool:
    """True when a strict descendant of ``ancestor`` carries ``node_id``."""
    if node_id is None:
        return False
    return any(n.id == node_id for n, _p, _d in walk(ancestor.children))


def node_at(roots: list[Node], path: tuple[int, ...]) -> Node:
    """Resolve a child-index path. Raises ValueError for paths outside the tree."""
    if not path:
        msg = "Empty node path"
        raise ValueError(msg)
    node = _child_at(roots, path[0], path)
    for index in path[1:]:
        node = _child_at(node.children, index, path)
    return node


def _child_at(siblings: list[Node], index: int, path: tuple[int, ...]) -> Node:
    if index < 0 or index >= len(siblings):
        msg = f"Node path {path!r} is outside the tree"
        raise ValueError(msg)
    return siblings[index]


def path_of(roots: list[Node], target: Node) -> tuple[int, ...] | None:
    """Child-index path of ``target`` (by identity), or None."""
    stack: list[tuple[Node, tuple[int, ...]]] = [
        (n, (i,)) for i, n in reversed(list(enumerate(roots)))
    ]
    while stack:
        node, path = stack.pop()
        if node is target:
            return path
        for i in range(len(node.children) - 1, -1, -1):
            stack.append((node.children[i], (*path, i)))
    return None


def clone_node(node: Node) -> Node:
    """Deep, independent copy of ``node`` and its subtree."""
    copy = replace(node, children=[])
    stack: list[tuple[Node, Node]] = [(node, copy)]
    while stack:
        src, dst = stack.pop()
        for child in src.children:
            child_copy = replace(child, children=[])
            dst.children.append(child_copy)
            stack.append((child, child_copy))
    return copy


def clone(roots: list[Node]) -> list[Node]:
    return [clone_node(n) for n in roots]


def collect_ids(roots: list[Node]) -> set[str]:
    return {n.id for n, _p, _d in walk(roots) if n.id is not None}


def count_nodes(roots: list[Node]) -> int:
    return sum(1 for _ in walk(roots))


def check_well_formed(roots: list[Node]) -> list[str]:
    """Return a description of every structural problem; empty when the tree is sound.

    Detects node objects reachable more than once (shared between parents, or
    cycles) and duplicate non-null ids.
    """
    problems: list[str] = []
    seen_objects: set[int] = set()
    seen_ids: set[str] = set()
    stack: list[Node] = list(reversed(roots))
    while stack:
        node = stack.pop()
        if id(node) in seen_objects:
            problems.append(f"node {node.id!r} is reachable more than once")
            continue
        seen_objects.add(id(node))
        if node.id is not None:
            if node.id in seen_ids:
                problems.append(f"duplicate id {node.id!r}")
            seen_ids.add(node.id)
        stack.extend(reversed(node.children))
    return problems
