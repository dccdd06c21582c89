"""SqlCategoryStore against a real PostgreSQL database.

Runs only when TEST_DATABASE_URL points at a disposable database; the tables
are created and dropped around each test.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.exceptions import ConflictError
from app.db.base import Base
from app.models.product import Product
from app.models.tenant import Tenant
from app.services.category_service import CategoryService
from app.services.category_store import SqlCategoryStore

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(
    not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"
)


@pytest.fixture
async def pg_db() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine(TEST_DATABASE_URL)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:  # noqa: BLE001
        await engine.dispose()
        pytest.skip(f"PostgreSQL not reachable: {exc}")

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        session.add_all(
            [Tenant(id=1, name="Tenant A", slug="tenant-a"), Tenant(id=2, name="B", slug="b")]
        )
        await session.commit()
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.mark.asyncio
async def test_unique_constraint_backstops_child_duplicates(pg_db: AsyncSession):
    """The unique constraint rejects a duplicate child name as a conflict."""
    store = SqlCategoryStore(pg_db)
    parent = await store.insert(1, "Electronics", None, None)
    await store.insert(1, "Laptops", None, parent.id)

    with pytest.raises(ConflictError, match="already exists at this level"):
        await store.insert(1, "Laptops", None, parent.id)


@pytest.mark.asyncio
async def test_unique_constraint_covers_root_group(pg_db: AsyncSession):
    """The unique constraint also applies among root categories."""
    store = SqlCategoryStore(pg_db)
    await store.insert(1, "Electronics", None, None)

    with pytest.raises(ConflictError):
        await store.insert(1, "Electronics", None, None)


@pytest.mark.asyncio
async def test_same_name_allowed_across_tenants(pg_db: AsyncSession):
    """Tenants may reuse each other's names."""
    store = SqlCategoryStore(pg_db)
    await store.insert(1, "Electronics", None, None)
    other = await store.insert(2, "Electronics", None, None)

    assert other.tenant_id == 2
    assert await store.find_by_id(other.id, 1) is None


@pytest.mark.asyncio
async def test_list_filters_and_search(pg_db: AsyncSession):
    """Parent filters and escaped search run in SQL."""
    store = SqlCategoryStore(pg_db)
    root = await store.insert(1, "Electronics", None, None)
    await store.insert(1, "Laptops", None, root.id)
    await store.insert(1, "100%_cotton", None, None)

    assert [c.name for c in await store.list_all(1, parent_id=None)] == [
        "100%_cotton",
        "Electronics",
    ]
    assert [c.name for c in await store.list_all(1, parent_id=root.id)] == ["Laptops"]
    assert [c.name for c in await store.list_all(1, search="LAP")] == ["Laptops"]
    assert [c.name for c in await store.list_all(1, search="%_")] == ["100%_cotton"]


@pytest.mark.asyncio
async def test_product_counts_ignore_deleted_products(pg_db: AsyncSession):
    """Soft-deleted products are left out of counts."""
    store = SqlCategoryStore(pg_db)
    category = await store.insert(1, "Electronics", None, None)
    pg_db.add_all(
        [
            Product(tenant_id=1, category_id=category.id, sku="A-1", name="A", price=1),
            Product(tenant_id=1, category_id=category.id, sku="A-2", name="B", price=1),
            Product(
                tenant_id=1,
                category_id=category.id,
                sku="A-3",
                name="C",
                price=1,
                deleted_at=datetime.now(UTC),
            ),
        ]
    )
    await pg_db.flush()

    assert await store.count_products(category.id, 1) == 2
    assert await store.product_counts(1) == {category.id: 2}
    assert await store.product_counts(2) == {}


@pytest.mark.asyncio
async def test_service_move_with_advisory_lock(pg_db: AsyncSession):
    """Moves run under the advisory lock and still reject cycles."""
    service = CategoryService(SqlCategoryStore(pg_db))
    a = await service.create(1, "A")
    b = await service.create(1, "B")

    moved = await service.move(b.id, a.id, 1)
    assert moved.parent_id == a.id

    with pytest.raises(ConflictError, match="circular"):
        await service.move(a.id, b.id, 1)
