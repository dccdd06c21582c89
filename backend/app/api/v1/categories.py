"""Authenticated endpoints for the tenant's category hierarchy."""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from app.core.dependencies import get_category_service, require_role
from app.models.tenant_member import TenantMember
from app.schemas.category import (
    CategoryCreate,
    CategoryDeleteResponse,
    CategoryDetailResponse,
    CategoryListResponse,
    CategoryMove,
    CategoryPathNode,
    CategoryResponse,
    CategoryStats,
    CategoryTreeResponse,
    CategoryUpdate,
)
from app.services.category_service import CategoryService
from app.services.category_store import UNSET
from app.services.category_tree import forest_to_dicts

router = APIRouter()


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    search: str | None = Query(None, max_length=255),
    parent_id: int | None = Query(None, gt=0),
    root_only: bool = Query(False, description="Only categories without a parent"),
    membership: TenantMember = Depends(require_role("member")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryListResponse:
    if root_only and parent_id is not None:
        raise HTTPException(status_code=400, detail="Use either parent_id or root_only")
    parent_filter = None if root_only else (parent_id if parent_id is not None else UNSET)

    items = await service.list_categories(
        membership.tenant_id, search=search, parent_id=parent_filter
    )
    return CategoryListResponse(items=items, count=len(items))


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    body: CategoryCreate,
    membership: TenantMember = Depends(require_role("manager")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.create(
        membership.tenant_id,
        name=body.name,
        description=body.description,
        parent_id=body.parent_id,
    )
    return CategoryResponse.model_validate(category)


@router.get("/tree", response_model=CategoryTreeResponse)
async def get_category_tree(
    membership: TenantMember = Depends(require_role("member")),
    service: CategoryService = Depends(get_category_service),
) -> JSONResponse:
    forest = await service.tree(membership.tenant_id)
    # Tree depth is unbounded; serialize with the stack-based walk.
    return JSONResponse({"items": forest_to_dicts(forest)})


@router.get("/stats", response_model=CategoryStats)
async def get_category_stats(
    membership: TenantMember = Depends(require_role("member")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryStats:
    return await service.stats(membership.tenant_id)


@router.get("/{category_id}", response_model=CategoryDetailResponse)
async def get_category(
    category_id: int,
    membership: TenantMember = Depends(require_role("member")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryDetailResponse:
    return await service.get(category_id, membership.tenant_id)


@router.get("/{category_id}/path", response_model=list[CategoryPathNode])
async def get_category_path(
    category_id: int,
    membership: TenantMember = Depends(require_role("member")),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryPathNode]:
    path = await service.path(category_id, membership.tenant_id)
    if not path:
        raise HTTPException(status_code=404, detail="Category not found")
    return path


@router.patch("/{category_id}", response_model=CategoryResponse)
@router.put("/{category_id}", response_model=CategoryResponse, include_in_schema=False)
async def update_category(
    category_id: int,
    body: CategoryUpdate,
    membership: TenantMember = Depends(require_role("manager")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.update(
        category_id, membership.tenant_id, body.model_dump(exclude_unset=True)
    )
    return CategoryResponse.model_validate(category)


@router.patch("/{category_id}/move", response_model=CategoryResponse)
async def move_category(
    category_id: int,
    body: CategoryMove,
    membership: TenantMember = Depends(require_role("manager")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.move(category_id, body.parent_id, membership.tenant_id)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", response_model=CategoryDeleteResponse)
async def delete_category(
    category_id: int,
    membership: TenantMember = Depends(require_role("admin")),
    service: CategoryService = Depends(get_category_service),
) -> CategoryDeleteResponse:
    deleted = await service.delete(category_id, membership.tenant_id)
    return CategoryDeleteResponse(
        id=deleted.id,
        name=deleted.name,
        message=f'Category "{deleted.name}" deleted successfully',
    )
