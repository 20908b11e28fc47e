"""Tests for markdown rendering of node trees."""

from tests.unit.fakes import node
from worklog_outline.core.filter.visibility import FilterConfiguration, compute_visibility
from worklog_outline.core.tree.markdown import render_outline_as_markdown
from worklog_outline.models.node import Node


def _tree() -> list[Node]:
    return [
        node(
            "1",
            "Work #work",
            node("2", "Write report", node("2a", "Outline"), status="todo"),
            node("3", "Old project @archived", status="done"),
        ),
        node("4", "Home", status="in-progress"),
    ]


def test_render_full_tree_with_status_prefixes() -> None:
    md = render_outline_as_markdown(_tree())
    assert md == (
        "- Work #work\n"
        "    - [ ] Write report\n"
        "        - Outline\n"
        "    - [x] Old project @archived\n"
        "- [~] Home\n"
    )


def test_render_with_depth_limit_shows_truncation() -> None:
    """Nodes at the depth boundary with children show a truncation indicator."""
    md = render_outline_as_markdown(_tree(), max_depth=1)
    assert "Outline" not in md
    assert "        - ... (1 more child)\n" in md
    assert "... (0 more" not in md


def test_render_depth_zero_counts_children() -> None:
    md = render_outline_as_markdown(_tree(), max_depth=0)
    assert md == "- Work #work\n    - ... (2 more children)\n- [~] Home\n"


def test_render_with_ids_and_untitled() -> None:
    md = render_outline_as_markdown([node("9", ""), Node()], show_ids=True)
    assert md == "- 9 (id=9)\n- Untitled\n"


def test_render_skips_hidden_and_italicizes_parents() -> None:
    roots = _tree()
    config = FilterConfiguration(
        status_filter={"none": False, "todo": True, "in-progress": False, "done": True},
        show_archived=False,
    )
    md = render_outline_as_markdown(roots, visibility=compute_visibility(roots, config))
    assert md == "- _Work #work_\n    - [ ] Write report\n"


def test_render_skips_collapsed_subtrees() -> None:
    roots = _tree()
    visibility = compute_visibility(roots, FilterConfiguration(), collapsed={"2"})
    md = render_outline_as_markdown(roots, visibility=visibility)
    assert "Write report" in md
    assert "Outline" not in md


def test_render_does_not_touch_tree() -> None:
    roots = _tree()
    render_outline_as_markdown(roots, max_depth=0)
    assert [n.id for n in roots[0].children] == ["2", "3"]
