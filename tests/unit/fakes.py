"""Fake implementations for testing the outline editor."""

import copy
import threading
from typing import Any

import requests

from worklog_outline.models.node import Node

STORED_OUTLINE: list[dict[str, Any]] = [
    {
        "id": 1,
        "title": "Work #work",
        "status": "",
        "content": '[{"type": "paragraph", "content": [{"type": "text", "text": "Work #work"}]}]',
        "children": [
            {
                "id": 2,
                "title": "Write report",
                "status": "todo",
                "content": (
                    '[{"type": "paragraph", "content": [{"type": "text", '
                    '"text": "Write report [[reminder|incomplete|2026-01-05T09:00:00Z|Send%20it]]"}]}]'
                ),
                "children": [],
            },
            {
                "id": 3,
                "title": "Old project",
                "status": "done",
                "content": '[{"type": "paragraph", "content": [{"type": "text", "text": "Old project @archived"}]}]',
                "children": [],
            },
        ],
    },
    {
        "id": 4,
        "title": "Home #personal",
        "status": "in-progress",
        "content": "[]",
        "children": [],
    },
]


def node(node_id: str | None, text: str = "", *children: Node, **kwargs: Any) -> Node:
    """Shorthand for building trees in tests."""
    return Node.from_text(text or (node_id or ""), id=node_id, children=list(children), **kwargs)


def ids(nodes: list[Node]) -> list[str | None]:
    return [n.id for n in nodes]


class FakeApi:
    """In-memory fake for OutlineApi.

    Stores the outline like the real backing store does: nodes whose id is
    missing or starts with ``new-`` get a durable numeric id, returned in the
    save reply. Records all calls for assertions.
    """

    def __init__(self, roots: list[dict[str, Any]] | None = None) -> None:
        self.roots: list[dict[str, Any]] = roots or []
        self.calls: list[tuple[str, Any]] = []
        self.saved: list[list[dict[str, Any]]] = []
        self.next_id = 100
        self.fail_saves = 0
        self.gate: threading.Event | None = None
        self.save_started = threading.Event()
        self.load_gates: list[threading.Event] = []

    def get_outline(self) -> list[dict[str, Any]]:
        self.calls.append(("get_outline", None))
        if self.load_gates:
            self.load_gates.pop(0).wait(5)
        return copy.deepcopy(self.roots)

    def save_outline(self, outline: list[dict[str, Any]]) -> dict[str, str]:
        self.calls.append(("save_outline", outline))
        self.saved.append(copy.deepcopy(outline))
        self.save_started.set()
        if self.gate is not None:
            self.gate.wait(5)
            self.gate = None
        if self.fail_saves:
            self.fail_saves -= 1
            msg = "store unreachable"
            raise requests.ConnectionError(msg)

        mapping: dict[str, str] = {}
        stored = copy.deepcopy(outline)
        stack = list(stored)
        while stack:
            record = stack.pop()
            node_id = record.get("id")
            if not node_id or str(node_id).startswith("new-"):
                durable = str(self.next_id)
                self.next_id += 1
                if node_id:
                    mapping[str(node_id)] = durable
                record["id"] = durable
            stack.extend(record.get("children") or [])
        self.roots = stored
        return mapping


class FakeLocation:
    """In-memory focus location that remembers every write."""

    def __init__(self, value: str | None = None) -> None:
        self.value = value
        self.writes: list[str | None] = []

    def read(self) -> str | None:
        return self.value

    def write(self, node_id: str | None) -> None:
        self.value = node_id
        self.writes.append(node_id)
