"""Unit tests for the in-memory hierarchy algorithms (no I/O)."""

import pytest

from app.core.exceptions import HierarchyCorruptedError
from app.models.category import Category
from app.services.category_tree import (
    build_forest,
    creation_would_create_cycle,
    forest_to_dicts,
    has_sibling_conflict,
    resolve_path,
    walk_ancestors,
    would_create_cycle,
)


def _cat(id_: int, name: str, parent_id: int | None = None, tenant_id: int = 1) -> Category:
    return Category(id=id_, tenant_id=tenant_id, name=name, parent_id=parent_id)


@pytest.fixture
def catalog() -> list[Category]:
    # Electronics(1) > Computers(3) > Laptops(5); Electronics > Audio(4); Clothing(2)
    return [
        _cat(5, "Laptops", 3),
        _cat(2, "Clothing"),
        _cat(4, "Audio", 1),
        _cat(1, "Electronics"),
        _cat(3, "Computers", 1),
    ]


def _flatten(nodes):
    for node in nodes:
        yield node
        yield from _flatten(node.children)


# ── Tree builder ──────────────────────────────────────────────────────


def test_forest_roots_and_children_sorted_by_name(catalog):
    """Roots and every children list are ordered by name."""
    forest = build_forest(catalog, {})

    assert [n.name for n in forest] == ["Clothing", "Electronics"]
    electronics = forest[1]
    assert [c.name for c in electronics.children] == ["Audio", "Computers"]
    assert [c.name for c in electronics.children[1].children] == ["Laptops"]


def test_forest_leaves_carry_empty_children(catalog):
    """Leaves carry children=[] rather than omitting the field."""
    forest = build_forest(catalog, {})
    leaves = [n for n in _flatten(forest) if n.id in (2, 4, 5)]

    assert len(leaves) == 3
    assert all(n.children == [] for n in leaves)
    assert all("children" in n.model_dump() for n in leaves)


def test_forest_places_every_category_once(catalog):
    """Each category appears exactly once in the forest."""
    ids = [n.id for n in _flatten(build_forest(catalog, {}))]
    assert sorted(ids) == [1, 2, 3, 4, 5]


def test_forest_children_match_parent_grouping(catalog):
    """A node's children are exactly the rows naming it as parent."""
    for node in _flatten(build_forest(catalog, {})):
        expected = sorted(
            (c for c in catalog if c.parent_id == node.id), key=lambda c: (c.name, c.id)
        )
        assert [child.id for child in node.children] == [c.id for c in expected]


def test_forest_product_counts_default_to_zero(catalog):
    """Missing product counts default to 0."""
    forest = build_forest(catalog, {5: 7, 2: 1})
    by_id = {n.id: n for n in _flatten(forest)}

    assert by_id[5].product_count == 7
    assert by_id[2].product_count == 1
    assert by_id[1].product_count == 0


def test_forest_of_empty_tenant():
    """No rows build an empty forest."""
    assert build_forest([], {}) == []


def test_forest_of_deep_chain_builds_without_recursion():
    """A 5000-level chain nests fully, beyond the interpreter recursion limit."""
    rows = [_cat(1, "Level 0")] + [_cat(i, f"Level {i - 1}", i - 1) for i in range(2, 5001)]

    forest = build_forest(rows, {})

    depth, node = 1, forest[0]
    while node.children:
        (node,) = node.children
        depth += 1
    assert depth == 5000
    assert node.id == 5000


def test_forest_to_dicts_keeps_order_and_shape(catalog):
    """The plain-dict copy mirrors the forest, empty children included."""
    dumped = forest_to_dicts(build_forest(catalog, {5: 2}))

    assert [d["name"] for d in dumped] == ["Clothing", "Electronics"]
    assert dumped[0]["children"] == []
    computers = dumped[1]["children"][1]
    assert computers["name"] == "Computers"
    assert computers["children"] == [
        {
            "id": 5,
            "name": "Laptops",
            "description": None,
            "parent_id": 3,
            "product_count": 2,
            "children": [],
        }
    ]


def test_forest_to_dicts_of_deep_chain():
    """Converting a deep forest does not recurse either."""
    rows = [_cat(1, "Level 0")] + [_cat(i, f"Level {i - 1}", i - 1) for i in range(2, 3001)]
    node = forest_to_dicts(build_forest(rows, {}))[0]
    depth = 1
    while node["children"]:
        (node,) = node["children"]
        depth += 1
    assert depth == 3000


# ── Path resolver ─────────────────────────────────────────────────────


def test_path_is_root_first(catalog):
    """The breadcrumb runs from the root down to the category."""
    path = resolve_path(catalog, 5)
    assert [(p.id, p.name) for p in path] == [(1, "Electronics"), (3, "Computers"), (5, "Laptops")]


def test_path_of_root_is_itself(catalog):
    """A root's path is just the root."""
    assert [p.id for p in resolve_path(catalog, 1)] == [1]


def test_path_of_unknown_id_is_empty(catalog):
    """An unknown id resolves to an empty path."""
    assert resolve_path(catalog, 999) == []


def test_path_stops_at_missing_parent():
    """The walk stops where a parent row is missing."""
    rows = [_cat(10, "Orphan", parent_id=77)]
    assert [p.id for p in resolve_path(rows, 10)] == [10]


def test_path_raises_on_corrupted_loop():
    """A loop in parent links raises HierarchyCorruptedError."""
    rows = [_cat(1, "A", parent_id=2), _cat(2, "B", parent_id=1)]
    with pytest.raises(HierarchyCorruptedError):
        resolve_path(rows, 1)


# ── Cycle guard ───────────────────────────────────────────────────────


def test_cycle_detected_when_moving_under_descendant():
    """Moving A under its grandchild C is a cycle."""
    # A(1) -> B(2) -> C(3)
    links = {1: None, 2: 1, 3: 2}
    assert would_create_cycle(links, category_id=1, proposed_parent_id=3) is True


def test_self_parenting_is_a_cycle():
    """A category as its own parent is a cycle."""
    links = {1: None}
    assert would_create_cycle(links, category_id=1, proposed_parent_id=1) is True


def test_moving_under_unrelated_branch_is_not_a_cycle():
    """Moving into an unrelated branch is allowed."""
    links = {1: None, 2: 1, 3: None, 4: 3}
    assert would_create_cycle(links, category_id=2, proposed_parent_id=4) is False


def test_moving_under_own_ancestor_is_not_a_cycle():
    """Moving further up the same branch is allowed."""
    links = {1: None, 2: 1, 3: 2}
    assert would_create_cycle(links, category_id=3, proposed_parent_id=1) is False


def test_cycle_guard_bounded_on_corrupted_links():
    """The ancestor walk stops on looping links instead of spinning."""
    links = {1: 2, 2: 3, 3: 2, 9: None}
    with pytest.raises(HierarchyCorruptedError):
        would_create_cycle(links, category_id=9, proposed_parent_id=1)


def test_walk_ancestors_yields_leaf_to_root():
    """walk_ancestors yields the start id, then each ancestor."""
    assert list(walk_ancestors({1: None, 2: 1, 3: 2}, 3)) == [3, 2, 1]


def test_creation_never_creates_a_cycle():
    """Creation-time cycle check is always False."""
    assert creation_would_create_cycle(None) is False
    assert creation_would_create_cycle(42) is False


# ── Sibling uniqueness ────────────────────────────────────────────────


def test_sibling_conflict_on_same_name(catalog):
    """An existing sibling name conflicts."""
    siblings = [c for c in catalog if c.parent_id == 1]
    assert has_sibling_conflict(siblings, "Audio") is True


def test_sibling_conflict_is_case_sensitive(catalog):
    """Names differing only in case do not conflict."""
    siblings = [c for c in catalog if c.parent_id == 1]
    assert has_sibling_conflict(siblings, "audio") is False


def test_sibling_conflict_excludes_self(catalog):
    """The category being renamed is not its own conflict."""
    siblings = [c for c in catalog if c.parent_id == 1]
    assert has_sibling_conflict(siblings, "Audio", exclude_id=4) is False
    assert has_sibling_conflict(siblings, "Audio", exclude_id=3) is True
