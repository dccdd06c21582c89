"""Tenant-scoped persistence for categories.

Every query filters on ``tenant_id``. SQLAlchemy errors are translated here so
the service layer only ever sees domain errors: a violation of the sibling
name constraint becomes ``ConflictError``, anything else ``StorageFailureError``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, StorageFailureError
from app.models.category import Category
from app.models.product import Product

logger = logging.getLogger(__name__)

DUPLICATE_NAME_DETAIL = "Category with this name already exists at this level"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# "No parent filter", as opposed to None which means "root categories only".
UNSET: Any = _Unset()


class CategoryStore(Protocol):
    async def find_by_id(self, category_id: int, tenant_id: int) -> Category | None: ...

    async def find_by_parent(self, tenant_id: int, parent_id: int | None) -> list[Category]: ...

    async def list_all(
        self, tenant_id: int, search: str | None = None, parent_id: Any = UNSET
    ) -> list[Category]: ...

    async def insert(
        self, tenant_id: int, name: str, description: str | None, parent_id: int | None
    ) -> Category: ...

    async def update(self, category: Category, changes: dict[str, Any]) -> Category: ...

    async def delete(self, category: Category) -> None: ...

    async def count_products(self, category_id: int, tenant_id: int) -> int: ...

    async def product_counts(self, tenant_id: int) -> dict[int, int]: ...

    async def lock_hierarchy(self, tenant_id: int) -> None: ...


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@asynccontextmanager
async def _storage_errors(
    action: str, conflict_detail: str = DUPLICATE_NAME_DETAIL
) -> AsyncIterator[None]:
    try:
        yield
    except IntegrityError as exc:
        logger.info("Integrity error while trying to %s: %s", action, exc.orig)
        raise ConflictError(conflict_detail) from exc
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while trying to %s", action)
        raise StorageFailureError(f"Could not {action}: storage unavailable") from exc


class SqlCategoryStore:
    """``CategoryStore`` backed by an ``AsyncSession`` (PostgreSQL in production)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, category_id: int, tenant_id: int) -> Category | None:
        async with _storage_errors("load category"):
            result = await self.db.execute(
                select(Category).where(
                    Category.id == category_id,
                    Category.tenant_id == tenant_id,
                )
            )
            return result.scalar_one_or_none()

    async def find_by_parent(self, tenant_id: int, parent_id: int | None) -> list[Category]:
        return await self.list_all(tenant_id, parent_id=parent_id)

    async def list_all(
        self, tenant_id: int, search: str | None = None, parent_id: Any = UNSET
    ) -> list[Category]:
        stmt = select(Category).where(Category.tenant_id == tenant_id)
        if search:
            stmt = stmt.where(Category.name.ilike(f"%{_escape_like(search)}%", escape="\\"))
        if parent_id is None:
            stmt = stmt.where(Category.parent_id.is_(None))
        elif parent_id is not UNSET:
            stmt = stmt.where(Category.parent_id == parent_id)
        stmt = stmt.order_by(Category.name.asc(), Category.id.asc())

        async with _storage_errors("list categories"):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    async def insert(
        self, tenant_id: int, name: str, description: str | None, parent_id: int | None
    ) -> Category:
        category = Category(
            tenant_id=tenant_id,
            name=name,
            description=description,
            parent_id=parent_id,
        )
        async with _storage_errors("create category"):
            self.db.add(category)
            await self.db.flush()
            await self.db.refresh(category)
        return category

    async def update(self, category: Category, changes: dict[str, Any]) -> Category:
        async with _storage_errors("update category"):
            for field, value in changes.items():
                setattr(category, field, value)
            category.updated_at = datetime.now(UTC)
            await self.db.flush()
            await self.db.refresh(category)
        return category

    async def delete(self, category: Category) -> None:
        async with _storage_errors(
            "delete category", "Category is still referenced and cannot be deleted"
        ):
            await self.db.delete(category)
            await self.db.flush()

    async def count_products(self, category_id: int, tenant_id: int) -> int:
        async with _storage_errors("count products"):
            result = await self.db.execute(
                select(func.count(Product.id)).where(
                    Product.category_id == category_id,
                    Product.tenant_id == tenant_id,
                    Product.deleted_at.is_(None),
                )
            )
            return result.scalar_one()

    async def product_counts(self, tenant_id: int) -> dict[int, int]:
        async with _storage_errors("count products"):
            result = await self.db.execute(
                select(Product.category_id, func.count(Product.id))
                .where(
                    Product.tenant_id == tenant_id,
                    Product.category_id.is_not(None),
                    Product.deleted_at.is_(None),
                )
                .group_by(Product.category_id)
            )
            return {category_id: count for category_id, count in result.all()}

    async def lock_hierarchy(self, tenant_id: int) -> None:
        """Serialize category mutations of one tenant until the transaction ends.

        Uses pg_advisory_xact_lock so validate-then-write runs as one unit; the
        lock is released automatically on commit or rollback.
        """
        if not settings.CATEGORY_HIERARCHY_LOCK:
            return
        if self.db.get_bind().dialect.name != "postgresql":
            return
        async with _storage_errors("lock category hierarchy"):
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"categories:{tenant_id}"},
            )
