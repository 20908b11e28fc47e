"""Load the outline from the backing store into model nodes."""

import asyncio
import json
from typing import Any

from loguru import logger

from worklog_outline.config import STARTER_PLACEHOLDER_TITLE
from worklog_outline.core.tree.navigation import count_nodes
from worklog_outline.models.node import (
    STATUS_NONE,
    ContentElement,
    HardBreak,
    MediaRef,
    Node,
    TextRun,
    body_from_text,
    normalize_status,
)
from worklog_outline.protocols import OutlineApiProtocol


def _inline_from_wire(raw: dict[str, Any]) -> ContentElement | None:
    kind = raw.get("type")
    if kind == "hardBreak":
        return HardBreak()
    if kind == "image":
        attrs = raw.get("attrs") or {}
        return MediaRef(src=str(attrs.get("src") or ""), alt=str(attrs.get("alt") or ""))
    text = raw.get("text")
    if isinstance(text, str):
        marks = tuple(
            str(m.get("type")) for m in raw.get("marks") or [] if isinstance(m, dict) and m.get("type")
        )
        return TextRun(text, marks)
    return None


def body_from_wire(raw: Any) -> list[ContentElement] | None:
    """Parse a stored body; None when there is nothing usable.

    Accepts a JSON string or a list of blocks. Paragraph blocks are flattened
    with a hard break between consecutive blocks; bare inline elements are
    taken as they are.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return None
    if not isinstance(raw, list):
        return None

    body: list[ContentElement] = []
    blocks = 0
    for item in raw:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "paragraph":
            if blocks:
                body.append(HardBreak())
            blocks += 1
            for inline in item.get("content") or []:
                if isinstance(inline, dict):
                    element = _inline_from_wire(inline)
                    if element is not None:
                        body.append(element)
            continue
        element = _inline_from_wire(item)
        if element is not None:
            body.append(element)
    if not blocks and not body:
        return None
    return body


def node_from_record(record: dict[str, Any]) -> Node:
    """Build a node (and its subtree) from a stored record."""
    root = _single_node(record)
    stack: list[tuple[dict[str, Any], Node]] = [(record, root)]
    while stack:
        raw, node = stack.pop()
        for child_raw in raw.get("children") or []:
            if not isinstance(child_raw, dict):
                continue
            child = _single_node(child_raw)
            node.children.append(child)
            stack.append((child_raw, child))
    return root


def _single_node(record: dict[str, Any]) -> Node:
    raw_id = record.get("id")
    node_id = str(raw_id) if raw_id is not None and raw_id != "" else None

    status = normalize_status(record.get("status"))
    if status is None:
        logger.warning("Unknown status {!r} on node {}, treating as none", record.get("status"), node_id)
        status = STATUS_NONE

    body = body_from_wire(record.get("body"))
    if body is None:
        body = body_from_wire(record.get("content"))
    if body is None:
        body = body_from_text(str(record.get("title") or ""))
    return Node(id=node_id, body=body, status=status)


def parse_outline(records: list[dict[str, Any]]) -> list[Node]:
    return [node_from_record(r) for r in records if isinstance(r, dict)]


def starter_outline() -> list[Node]:
    """What an empty outline is replaced with."""
    return [Node.from_text(STARTER_PLACEHOLDER_TITLE)]


class OutlineLoader:
    """Loads the outline; a newer load supersedes any load still in flight."""

    def __init__(self, api: OutlineApiProtocol) -> None:
        self.api = api
        self._generation = 0

    def cancel(self) -> None:
        """Make any in-flight load return None."""
        self._generation += 1

    async def load(self) -> list[Node] | None:
        """Fetch and parse the outline, or None when superseded by a newer load."""
        self._generation += 1
        generation = self._generation
        records = await asyncio.to_thread(self.api.get_outline)
        if generation != self._generation:
            logger.debug("Ignoring superseded outline load #{}", generation)
            return None
        roots = parse_outline(records)
        if not roots:
            roots = starter_outline()
        logger.info("Loaded outline with {} nodes", count_nodes(roots))
        return roots
