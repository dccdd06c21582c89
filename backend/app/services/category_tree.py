"""In-memory hierarchy algorithms over a tenant's flat category rows.

Rows are indexed once per call (id -> row, parent_id -> children) and every
walk is bounded by the number of rows, so a loop in the stored parent links
surfaces as ``HierarchyCorruptedError`` instead of an endless walk.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence

from app.core.exceptions import HierarchyCorruptedError
from app.models.category import Category
from app.schemas.category import CategoryPathNode, CategoryTreeNode

logger = logging.getLogger(__name__)


def _sort_key(category: Category) -> tuple[str, int]:
    return category.name, category.id


def walk_ancestors(
    parent_links: Mapping[int, int | None], start_id: int | None
) -> Iterator[int]:
    """Yield ``start_id`` and then each ancestor id up to the root.

    Stops at a ``None`` parent or at an id missing from ``parent_links``.
    """
    limit = len(parent_links)
    current = start_id
    steps = 0
    while current is not None and current in parent_links:
        if steps >= limit:
            logger.error("Parent links loop while walking up from category %s", start_id)
            raise HierarchyCorruptedError(
                f"Category hierarchy contains a cycle reachable from category {start_id}"
            )
        yield current
        current = parent_links[current]
        steps += 1


def would_create_cycle(
    parent_links: Mapping[int, int | None],
    category_id: int,
    proposed_parent_id: int,
) -> bool:
    """True if making ``proposed_parent_id`` the parent of ``category_id`` closes a loop."""
    ancestors = walk_ancestors(parent_links, proposed_parent_id)
    return any(ancestor == category_id for ancestor in ancestors)


def creation_would_create_cycle(parent_id: int | None) -> bool:
    """Cycle check for a category that does not exist yet.

    Always False: a row that has not been inserted has no descendants, so no
    existing parent can sit below it. Kept as a named step so creation and
    reparenting read the same way.
    """
    return False


def has_sibling_conflict(
    siblings: Iterable[Category], name: str, exclude_id: int | None = None
) -> bool:
    """True if another category in the same parent group already uses ``name``."""
    return any(s.name == name and s.id != exclude_id for s in siblings)


def resolve_path(categories: Sequence[Category], start_id: int) -> list[CategoryPathNode]:
    """Root-first breadcrumb ending at ``start_id``; empty if it does not resolve."""
    by_id = {c.id: c for c in categories}
    parent_links = {c.id: c.parent_id for c in categories}
    path = [
        CategoryPathNode(id=by_id[cid].id, name=by_id[cid].name)
        for cid in walk_ancestors(parent_links, start_id)
    ]
    path.reverse()
    return path


def build_forest(
    categories: Sequence[Category], product_counts: Mapping[int, int]
) -> list[CategoryTreeNode]:
    """Nest a flat row set into name-ordered trees rooted at ``parent_id IS NULL``.

    Nodes are created flat and then linked to their parent's ``children``, so
    the depth of the hierarchy never grows the call stack.
    """
    ordered = sorted(categories, key=_sort_key)
    nodes = {
        category.id: CategoryTreeNode(
            id=category.id,
            name=category.name,
            description=category.description,
            parent_id=category.parent_id,
            product_count=product_counts.get(category.id, 0),
        )
        for category in ordered
    }

    forest: list[CategoryTreeNode] = []
    for category in ordered:
        node = nodes[category.id]
        if category.parent_id is None:
            forest.append(node)
        elif category.parent_id in nodes:
            nodes[category.parent_id].children.append(node)

    placed = 0
    pending = list(forest)
    while pending:
        node = pending.pop()
        placed += 1
        pending.extend(node.children)

    if placed != len(categories):
        # Rows whose parent is missing or that sit on a loop never hang off a root.
        logger.warning(
            "Category tree left %d of %d rows unplaced", len(categories) - placed, len(categories)
        )
    return forest


def forest_to_dicts(forest: Sequence[CategoryTreeNode]) -> list[dict]:
    """JSON-ready copy of ``forest``, walked with an explicit stack."""
    roots: list[dict] = []
    pending = [(node, roots) for node in reversed(forest)]
    while pending:
        node, siblings = pending.pop()
        item = {
            "id": node.id,
            "name": node.name,
            "description": node.description,
            "parent_id": node.parent_id,
            "product_count": node.product_count,
            "children": [],
        }
        siblings.append(item)
        pending.extend((child, item["children"]) for child in reversed(node.children))
    return roots
