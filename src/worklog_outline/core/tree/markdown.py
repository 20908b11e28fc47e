"""Render outline subtrees as markdown."""

import io

from worklog_outline.core.filter.visibility import PARENT, VisibilityResult
from worklog_outline.core.tree.navigation import clone, walk
from worklog_outline.models.node import Node

_STATUS_PREFIX = {
    "none": "- ",
    "todo": "- [ ] ",
    "in-progress": "- [~] ",
    "done": "- [x] ",
}


def render_outline_as_markdown(
    roots: list[Node],
    *,
    visibility: VisibilityResult | None = None,
    max_depth: int | None = None,
    show_ids: bool = False,
) -> str:
    """Render nodes and their descendants as indented markdown.

    Args:
        roots: Nodes to render; they are copied first, the caller's tree is never touched.
        visibility: When given, only rendered nodes are written (collapsed
            subtrees, filtered-out and focus-hidden nodes are skipped) and
            pass-through parents are shown in italics.
        max_depth: Max levels below ``roots`` to include (None = unlimited).
        show_ids: Append ``(id=...)`` to every line.

    Returns:
        Markdown string with bullet-list hierarchy.
    """
    # Visibility is keyed by the live nodes, so look it up before copying.
    shown: list[bool] | None = None
    parent_flags: list[bool] | None = None
    if visibility is not None:
        entries = [visibility.of(n) for n, _p, _d in walk(roots)]
        shown = [e.rendered for e in entries]
        parent_flags = [e.classification == PARENT for e in entries]

    copy = clone(roots)
    out = io.StringIO()
    stack: list[tuple[Node, int]] = [(n, 0) for n in reversed(copy)]
    order = 0
    while stack:
        node, depth = stack.pop()
        index = order
        order += 1
        for child in reversed(node.children):
            stack.append((child, depth + 1))

        if shown is not None and not shown[index]:
            continue
        if max_depth is not None and depth > max_depth:
            continue

        indent = "    " * depth
        title = node.title or "Untitled"
        if parent_flags is not None and parent_flags[index]:
            title = f"_{title}_"
        suffix = f" (id={node.id})" if show_ids and node.id else ""
        out.write(f"{indent}{_STATUS_PREFIX.get(node.status, '- ')}{title}{suffix}\n")

        if max_depth is not None and depth == max_depth and node.children:
            count = len(node.children)
            noun = "child" if count == 1 else "children"
            child_indent = "    " * (depth + 1)
            out.write(f"{child_indent}- ... ({count} more {noun})\n")
    return out.getvalue()

