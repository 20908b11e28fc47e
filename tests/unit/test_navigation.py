"""Tests for tree navigation (lookup, ancestors, paths, clones)."""

import pytest

from tests.unit.fakes import ids, node
from worklog_outline.core.tree.navigation import (
    ancestors_of,
    check_well_formed,
    clone,
    collect_ids,
    count_nodes,
    depth_of,
    find_by_id,
    is_descendant,
    locate,
    locate_node,
    node_at,
    path_of,
    walk,
)
from worklog_outline.models.node import Node


@pytest.fixture
def tree() -> list[Node]:
    return [
        node("a", "", node("a1", "", node("a1x")), node("a2")),
        node("b"),
    ]


def test_walk_is_preorder_with_depth(tree: list[Node]) -> None:
    assert [(n.id, p.id if p else None, d) for n, p, d in walk(tree)] == [
        ("a", None, 0),
        ("a1", "a", 1),
        ("a1x", "a1", 2),
        ("a2", "a", 1),
        ("b", None, 0),
    ]


def test_locate_returns_parent_siblings_and_index(tree: list[Node]) -> None:
    loc = locate(tree, "a2")
    assert loc is not None
    assert loc.parent is tree[0]
    assert loc.siblings is tree[0].children
    assert loc.index == 1
    assert loc.depth == 1
    assert locate(tree, "missing") is None
    assert locate(tree, None) is None


def test_locate_node_works_without_ids(tree: list[Node]) -> None:
    anonymous = Node.from_text("no id")
    tree[1].children.append(anonymous)
    loc = locate_node(tree, anonymous)
    assert loc is not None
    assert loc.parent is tree[1]
    assert loc.index == 0


def test_ancestors_and_depth(tree: list[Node]) -> None:
    assert ids(ancestors_of(tree, "a1x")) == ["a", "a1"]
    assert ancestors_of(tree, "a") == []
    assert ancestors_of(tree, "missing") == []
    assert depth_of(tree, "a1x") == 2
    assert depth_of(tree, "b") == 0
    assert depth_of(tree, "missing") == -1


def test_ancestors_after_a_sibling_branch(tree: list[Node]) -> None:
    assert ids(ancestors_of(tree, "a2")) == ["a"]


def test_is_descendant(tree: list[Node]) -> None:
    assert is_descendant(tree[0], "a1x")
    assert not is_descendant(tree[0], "a")
    assert not is_descendant(tree[0], "b")
    assert not is_descendant(tree[0], None)


def test_node_at_and_path_of(tree: list[Node]) -> None:
    target = node_at(tree, (0, 0, 0))
    assert target.id == "a1x"
    assert path_of(tree, target) == (0, 0, 0)
    assert path_of(tree, Node()) is None


@pytest.mark.parametrize("path", [(), (2,), (0, 5), (-1,), (1, 0)])
def test_node_at_rejects_paths_outside_tree(tree: list[Node], path: tuple[int, ...]) -> None:
    with pytest.raises(ValueError):
        node_at(tree, path)


def test_find_and_count(tree: list[Node]) -> None:
    assert find_by_id(tree, "a1") is tree[0].children[0]
    assert find_by_id(tree, None) is None
    assert count_nodes(tree) == 5
    assert collect_ids(tree) == {"a", "a1", "a1x", "a2", "b"}


def test_clone_is_independent(tree: list[Node]) -> None:
    copy = clone(tree)
    assert ids(copy) == ids(tree)
    assert copy[0] is not tree[0]
    assert copy[0].children[0].children[0].id == "a1x"

    copy[0].children[0].set_text("changed #x")
    copy[0].children.pop()
    assert tree[0].children[0].title == "a1"
    assert tree[0].children[0].tags == ()
    assert ids(tree[0].children) == ["a1", "a2"]


def test_clone_of_deep_chain() -> None:
    root = current = node("0")
    for i in range(1, 5000):
        child = node(str(i))
        current.children.append(child)
        current = child
    copy = clone([root])
    assert count_nodes(copy) == 5000
    assert depth_of(copy, "4999") == 4999


def test_check_well_formed(tree: list[Node]) -> None:
    assert check_well_formed(tree) == []

    tree[1].children.append(tree[0].children[0])
    problems = check_well_formed(tree)
    assert any("reachable more than once" in p for p in problems)


def test_check_well_formed_reports_duplicate_ids(tree: list[Node]) -> None:
    tree.append(node("b"))
    assert check_well_formed(tree) == ["duplicate id 'b'"]
