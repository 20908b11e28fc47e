"""Identity reconciliation and outline serialization for saves."""

import random
import string
from collections.abc import Mapping
from typing import Any

from loguru import logger

from worklog_outline.config import TEMP_ID_PREFIX
from worklog_outline.core.tokens.reminders import decode_display_markers
from worklog_outline.core.tree.navigation import walk
from worklog_outline.models.node import (
    ContentElement,
    HardBreak,
    MediaRef,
    Node,
    TextRun,
    status_to_wire,
)

UNTITLED = "Untitled"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def is_temporary_id(node_id: str | None) -> bool:
    return node_id is not None and node_id.startswith(TEMP_ID_PREFIX)


def _make_temporary_id(taken: set[str], rng: random.Random) -> str:
    while True:
        candidate = TEMP_ID_PREFIX + "".join(rng.choices(_ID_ALPHABET, k=6))
        if candidate not in taken:
            return candidate


def assign_temporary_ids(roots: list[Node], rng: random.Random | None = None) -> list[str]:
    """Give every node without a unique id a fresh temporary one.

    The first holder of a duplicated id keeps it. Returns the ids handed out.
    """
    rng = rng or random.Random()
    taken = {n.id for n, _p, _d in walk(roots) if n.id is not None}
    seen: set[str] = set()
    assigned: list[str] = []
    for node, _parent, _depth in walk(roots):
        if node.id is not None and node.id not in seen:
            seen.add(node.id)
            continue
        new_id = _make_temporary_id(taken, rng)
        taken.add(new_id)
        seen.add(new_id)
        node.id = new_id
        assigned.append(new_id)
    if assigned:
        logger.debug("Assigned {} temporary ids", len(assigned))
    return assigned


def element_to_wire(element: ContentElement) -> dict[str, Any]:
    match element:
        case TextRun(text=text, marks=marks):
            record: dict[str, Any] = {"type": "text", "text": decode_display_markers(text)}
            if marks:
                record["marks"] = [{"type": m} for m in marks]
            return record
        case MediaRef(src=src, alt=alt):
            return {"type": "image", "attrs": {"src": src, "alt": alt}}
        case HardBreak():
            return {"type": "hardBreak"}
    msg = f"Unknown content element: {element!r}"
    raise ValueError(msg)


def body_to_wire(body: list[ContentElement]) -> list[dict[str, Any]]:
    """Store format: a single paragraph block holding the inline elements."""
    content = [element_to_wire(e) for e in body]
    paragraph: dict[str, Any] = {"type": "paragraph"}
    if content:
        paragraph["content"] = content
    return [paragraph]


def serialize_node(node: Node) -> dict[str, Any]:
    """Nested record for one node; children are serialized in order."""
    root_record: dict[str, Any] = {}
    stack: list[tuple[Node, dict[str, Any]]] = [(node, root_record)]
    while stack:
        current, record = stack.pop()
        record.update(
            {
                "id": current.id,
                "title": current.title or UNTITLED,
                "status": status_to_wire(current.status),
                "dates": list(current.dates),
                "tags": list(current.tags),
                "body": body_to_wire(current.body),
                "children": [],
            }
        )
        for child in current.children:
            child_record: dict[str, Any] = {}
            record["children"].append(child_record)
            stack.append((child, child_record))
    return root_record


def serialize_outline(roots: list[Node]) -> list[dict[str, Any]]:
    return [serialize_node(n) for n in roots]


def apply_id_mapping(roots: list[Node], mapping: Mapping[str, Any]) -> int:
    """Rewrite temporary ids to durable ones in place; returns how many nodes changed.

    Entries whose key is no longer in the tree are skipped.
    """
    if not mapping:
        return 0
    normalized = {str(k): str(v) for k, v in mapping.items()}
    rewritten = 0
    for node, _parent, _depth in walk(roots):
        if node.id is not None and node.id in normalized:
            node.id = normalized[node.id]
            rewritten += 1
    skipped = len(normalized) - rewritten
    if skipped > 0:
        logger.debug("Skipped {} id mappings for nodes no longer present", skipped)
    return rewritten
