"""Tenant endpoints: create a tenant, inspect the acting one, list memberships."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_membership, get_current_user, get_db
from app.core.exceptions import ConflictError
from app.models.tenant import Tenant
from app.models.tenant_member import TenantMember
from app.models.user import User
from app.schemas.tenant import MembershipResponse, TenantCreate, TenantResponse

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/", response_model=TenantResponse, status_code=201)
async def create_tenant(
    body: TenantCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Tenant:
    """Create a tenant with the caller as its owner.

    Only needs an authenticated user, since the caller may not belong to any
    tenant yet.
    """
    tenant = Tenant(name=body.name, slug=body.slug)
    db.add(tenant)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(f"Tenant slug '{body.slug}' is already taken") from exc

    db.add(
        TenantMember(
            tenant_id=tenant.id,
            user_id=user.id,
            role="owner",
            status="active",
            joined_at=datetime.now(UTC),
        )
    )
    await db.flush()
    await db.refresh(tenant)

    logger.info("Created tenant %s (%s) owned by user %s", tenant.id, tenant.slug, user.id)
    return tenant


@router.get("/me", response_model=TenantResponse)
async def get_current_tenant(
    membership: TenantMember = Depends(get_current_membership),
    db: AsyncSession = Depends(get_db),
) -> Tenant:
    tenant = await db.get(Tenant, membership.tenant_id)
    if tenant is None or not tenant.is_active:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.get("/memberships", response_model=list[MembershipResponse])
async def list_my_memberships(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[MembershipResponse]:
    """Active tenants of the caller, usable as ``X-Tenant-Id`` values."""
    result = await db.execute(
        select(TenantMember, Tenant)
        .join(Tenant, Tenant.id == TenantMember.tenant_id)
        .where(TenantMember.user_id == user.id, TenantMember.status == "active")
        .order_by(TenantMember.joined_at.asc(), TenantMember.id.asc())
    )
    return [
        MembershipResponse(
            tenant_id=tenant.id,
            tenant_name=tenant.name,
            tenant_slug=tenant.slug,
            role=member.role,
        )
        for member, tenant in result.all()
    ]
