"""Tests for temporary ids, serialization and id mapping."""

import random

from tests.unit.fakes import ids, node
from worklog_outline.core.sync.reconcile import (
    UNTITLED,
    apply_id_mapping,
    assign_temporary_ids,
    body_to_wire,
    is_temporary_id,
    serialize_outline,
)
from worklog_outline.core.tokens.reminders import encode_display_markers
from worklog_outline.core.tree.navigation import check_well_formed, collect_ids
from worklog_outline.models.node import HardBreak, MediaRef, Node, TextRun


def test_assign_temporary_ids_fills_missing_and_duplicate_ids() -> None:
    dup = node("1", "copy")
    roots = [node("1", "first", node(None, "child")), dup]
    assigned = assign_temporary_ids(roots, random.Random(0))

    assert len(assigned) == 2
    assert roots[0].id == "1"
    assert all(is_temporary_id(i) for i in assigned)
    assert dup.id in assigned
    assert check_well_formed(roots) == []
    assert len(collect_ids(roots)) == 3


def test_assign_temporary_ids_is_noop_when_ids_are_unique() -> None:
    roots = [node("1"), node("2")]
    assert assign_temporary_ids(roots) == []
    assert ids(roots) == ["1", "2"]


def test_is_temporary_id() -> None:
    assert is_temporary_id("new-abc123")
    assert not is_temporary_id("42")
    assert not is_temporary_id(None)


def test_serialize_outline_nests_children_in_order() -> None:
    roots = [
        node("1", "Plan #Work @2026-01-05", node("2", "a", status="todo"), node("3", "b")),
        Node(id="4"),
    ]
    records = serialize_outline(roots)
    assert [r["id"] for r in records] == ["1", "4"]
    assert [c["id"] for c in records[0]["children"]] == ["2", "3"]
    assert records[0]["title"] == "Plan #Work"
    assert records[0]["tags"] == ["work"]
    assert records[0]["dates"] == ["2026-01-05"]
    assert records[0]["status"] == ""
    assert records[0]["children"][0]["status"] == "todo"
    assert records[1]["title"] == UNTITLED


def test_body_to_wire_decodes_display_markers() -> None:
    marker = "[[reminder|incomplete|2026-01-05T09:00:00Z|go]]"
    body = [
        TextRun(encode_display_markers(f"Call {marker}"), ("bold",)),
        HardBreak(),
        MediaRef("a.png", "pic"),
    ]
    assert body_to_wire(body) == [
        {
            "type": "paragraph",
            "content": [
                {"type": "text", "text": f"Call {marker}", "marks": [{"type": "bold"}]},
                {"type": "hardBreak"},
                {"type": "image", "attrs": {"src": "a.png", "alt": "pic"}},
            ],
        }
    ]
    assert body_to_wire([]) == [{"type": "paragraph"}]


def test_apply_id_mapping_rewrites_in_place() -> None:
    child = node("new-bbb", "child")
    roots = [node("new-aaa", "parent", child), node("7")]
    assert apply_id_mapping(roots, {"new-aaa": 100, "new-bbb": "101", "new-gone": "102"}) == 2
    assert ids(roots) == ["100", "7"]
    assert roots[0].children[0] is child
    assert child.id == "101"


def test_apply_id_mapping_twice_is_same_as_once() -> None:
    roots = [node("new-aaa", "", node("new-bbb"))]
    mapping = {"new-aaa": "100", "new-bbb": "101"}
    apply_id_mapping(roots, mapping)
    assert apply_id_mapping(roots, mapping) == 0
    assert ids(roots) == ["100"]
    assert ids(roots[0].children) == ["101"]


def test_apply_empty_mapping() -> None:
    roots = [node("new-aaa")]
    assert apply_id_mapping(roots, {}) == 0
    assert ids(roots) == ["new-aaa"]
