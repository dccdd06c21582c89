"""Category hierarchy engine: tenant-scoped CRUD with structural invariants.

Invariants kept across every mutation:

1. A parent, when set, is an existing category of the same tenant.
2. Parent links form a forest (no category is its own ancestor).
3. Names are unique among siblings, the root group included.
4. Only categories with no products and no subcategories can be deleted.

Each mutation takes the tenant's hierarchy lock, validates against the store
and only then writes, so a rejected request leaves no partial change.
"""

import logging
from typing import Any

from app.core.exceptions import ConflictError, NotFoundError
from app.models.category import Category
from app.schemas.category import (
    CategoryDeleted,
    CategoryDetailResponse,
    CategoryListItem,
    CategoryPathNode,
    CategoryRef,
    CategoryStats,
    CategoryTreeNode,
)
from app.services.category_store import DUPLICATE_NAME_DETAIL, UNSET, CategoryStore
from app.services.category_tree import (
    build_forest,
    creation_would_create_cycle,
    has_sibling_conflict,
    resolve_path,
    would_create_cycle,
)

logger = logging.getLogger(__name__)

CATEGORY_NOT_FOUND = "Category not found"
PARENT_NOT_FOUND = "Parent category not found or does not belong to your organization"
SELF_PARENT = "Category cannot be its own parent"
CIRCULAR_REFERENCE = "Cannot create circular category reference"

_UPDATABLE_FIELDS = ("name", "description", "parent_id")


class CategoryService:
    def __init__(self, store: CategoryStore):
        self.store = store

    # ── Validation helpers ─────────────────────────────────────────────

    async def _require(self, category_id: int, tenant_id: int) -> Category:
        category = await self.store.find_by_id(category_id, tenant_id)
        if category is None:
            raise NotFoundError(CATEGORY_NOT_FOUND)
        return category

    async def _require_parent(self, parent_id: int, tenant_id: int) -> Category:
        parent = await self.store.find_by_id(parent_id, tenant_id)
        if parent is None:
            raise NotFoundError(PARENT_NOT_FOUND)
        return parent

    async def _ensure_unique_name(
        self,
        tenant_id: int,
        parent_id: int | None,
        name: str,
        exclude_id: int | None = None,
    ) -> None:
        siblings = await self.store.find_by_parent(tenant_id, parent_id)
        if has_sibling_conflict(siblings, name, exclude_id=exclude_id):
            raise ConflictError(DUPLICATE_NAME_DETAIL)

    async def _parent_links(self, tenant_id: int) -> dict[int, int | None]:
        rows = await self.store.list_all(tenant_id)
        return {c.id: c.parent_id for c in rows}

    # ── Mutations ──────────────────────────────────────────────────────

    async def create(
        self,
        tenant_id: int,
        name: str,
        description: str | None = None,
        parent_id: int | None = None,
    ) -> Category:
        await self.store.lock_hierarchy(tenant_id)

        if parent_id is not None:
            await self._require_parent(parent_id, tenant_id)
            # A row that does not exist yet cannot be an ancestor of its parent.
            if creation_would_create_cycle(parent_id):
                raise ConflictError(CIRCULAR_REFERENCE)

        await self._ensure_unique_name(tenant_id, parent_id, name)

        category = await self.store.insert(tenant_id, name, description, parent_id)
        logger.info(
            "Created category %s (%r) under parent %s for tenant %s",
            category.id,
            name,
            parent_id,
            tenant_id,
        )
        return category

    async def update(self, category_id: int, tenant_id: int, changes: dict[str, Any]) -> Category:
        """Apply a partial update.

        ``changes`` holds only the fields the caller set; ``{"parent_id": None}``
        moves the category to the root group.
        """
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported category fields: {sorted(unknown)}")

        await self.store.lock_hierarchy(tenant_id)
        category = await self._require(category_id, tenant_id)

        target_parent = category.parent_id
        if "parent_id" in changes and changes["parent_id"] != category.parent_id:
            new_parent_id = changes["parent_id"]
            if new_parent_id is not None:
                if new_parent_id == category.id:
                    raise ConflictError(SELF_PARENT)
                await self._require_parent(new_parent_id, tenant_id)
                links = await self._parent_links(tenant_id)
                if would_create_cycle(links, category.id, new_parent_id):
                    logger.info(
                        "Rejected move of category %s under %s for tenant %s: cycle",
                        category.id,
                        new_parent_id,
                        tenant_id,
                    )
                    raise ConflictError(CIRCULAR_REFERENCE)
            target_parent = new_parent_id

        target_name = changes.get("name", category.name)
        if target_name != category.name or target_parent != category.parent_id:
            await self._ensure_unique_name(
                tenant_id, target_parent, target_name, exclude_id=category.id
            )

        applied = {
            field: value
            for field, value in changes.items()
            if getattr(category, field) != value
        }
        category = await self.store.update(category, applied)
        logger.info(
            "Updated category %s for tenant %s: %s",
            category.id,
            tenant_id,
            ", ".join(sorted(applied)) or "no field changes",
        )
        return category

    async def move(self, category_id: int, new_parent_id: int | None, tenant_id: int) -> Category:
        return await self.update(category_id, tenant_id, {"parent_id": new_parent_id})

    async def delete(self, category_id: int, tenant_id: int) -> CategoryDeleted:
        await self.store.lock_hierarchy(tenant_id)
        category = await self._require(category_id, tenant_id)

        product_count = await self.store.count_products(category.id, tenant_id)
        if product_count > 0:
            raise ConflictError(
                f"Cannot delete category with {product_count} products. "
                "Move or delete products first."
            )

        children = await self.store.find_by_parent(tenant_id, category.id)
        if children:
            raise ConflictError(
                f"Cannot delete category with {len(children)} subcategories. "
                "Delete subcategories first."
            )

        deleted = CategoryDeleted(id=category.id, name=category.name)
        await self.store.delete(category)
        logger.info("Deleted category %s (%r) for tenant %s", deleted.id, deleted.name, tenant_id)
        return deleted

    # ── Reads ──────────────────────────────────────────────────────────

    async def get(self, category_id: int, tenant_id: int) -> CategoryDetailResponse:
        category = await self._require(category_id, tenant_id)

        parent_name = None
        if category.parent_id is not None:
            parent = await self.store.find_by_id(category.parent_id, tenant_id)
            parent_name = parent.name if parent else None

        children = await self.store.find_by_parent(tenant_id, category.id)
        product_count = await self.store.count_products(category.id, tenant_id)

        return CategoryDetailResponse(
            id=category.id,
            name=category.name,
            description=category.description,
            parent_id=category.parent_id,
            created_at=category.created_at,
            updated_at=category.updated_at,
            product_count=product_count,
            parent_name=parent_name,
            children=[CategoryRef(id=c.id, name=c.name) for c in children],
        )

    async def list_categories(
        self, tenant_id: int, search: str | None = None, parent_id: Any = UNSET
    ) -> list[CategoryListItem]:
        rows = await self.store.list_all(tenant_id, search=search, parent_id=parent_id)
        counts = await self.store.product_counts(tenant_id)
        return [
            CategoryListItem(
                id=c.id,
                name=c.name,
                description=c.description,
                parent_id=c.parent_id,
                created_at=c.created_at,
                updated_at=c.updated_at,
                product_count=counts.get(c.id, 0),
            )
            for c in rows
        ]

    async def tree(self, tenant_id: int) -> list[CategoryTreeNode]:
        rows = await self.store.list_all(tenant_id)
        counts = await self.store.product_counts(tenant_id)
        return build_forest(rows, counts)

    async def path(self, category_id: int, tenant_id: int) -> list[CategoryPathNode]:
        """Breadcrumb from the root down to ``category_id``.

        Unknown or foreign ids give an empty list rather than ``NotFoundError``.
        """
        rows = await self.store.list_all(tenant_id)
        return resolve_path(rows, category_id)

    async def stats(self, tenant_id: int) -> CategoryStats:
        rows = await self.store.list_all(tenant_id)
        counts = await self.store.product_counts(tenant_id)

        ids = {c.id for c in rows}
        attached = {cid: n for cid, n in counts.items() if cid in ids and n > 0}
        total = len(rows)
        # Mean over categories with at least one product.
        avg = round(sum(attached.values()) / len(attached), 2) if attached else 0.0

        return CategoryStats(
            total_categories=total,
            root_categories=sum(1 for c in rows if c.parent_id is None),
            categories_with_products=len(attached),
            avg_products_per_category=avg,
        )
