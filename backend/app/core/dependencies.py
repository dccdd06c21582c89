"""FastAPI dependency chain: JWT → User → active TenantMember → role gate."""

from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_access_token
from app.db.session import async_session_factory
from app.models.tenant_member import ROLE_HIERARCHY, TenantMember
from app.models.user import User
from app.services.category_service import CategoryService
from app.services.category_store import SqlCategoryStore

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session. Commits on success, rolls back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    """Extract and verify the Bearer token, returning JWT claims."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    try:
        claims = decode_access_token(credentials.credentials)
    except JWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}") from e

    return claims


async def get_current_user(
    claims: dict = Depends(get_current_user_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the JWT subject to a User row, provisioning it on first sight."""
    subject = claims.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    result = await db.execute(select(User).where(User.subject == subject))
    user = result.scalar_one_or_none()

    if user is None:
        email = claims.get("email") or f"{subject}@placeholder.local"
        user = User(subject=subject, email=email, full_name=claims.get("name") or email)
        db.add(user)
        await db.flush()

    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is deactivated")

    return user


async def get_current_membership(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TenantMember:
    """Resolve the acting tenant for this request.

    Uses the ``X-Tenant-Id`` header when present, otherwise the user's oldest
    active membership. The tenant id on the returned membership is the only
    tenant the request may touch.
    """
    stmt = select(TenantMember).where(
        TenantMember.user_id == user.id,
        TenantMember.status == "active",
    )

    requested_tenant_id = request.headers.get("X-Tenant-Id")
    if requested_tenant_id:
        try:
            tid = int(requested_tenant_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid X-Tenant-Id header") from exc
        stmt = stmt.where(TenantMember.tenant_id == tid)
    else:
        stmt = stmt.order_by(TenantMember.joined_at.asc(), TenantMember.id.asc()).limit(1)

    result = await db.execute(stmt)
    membership = result.scalar_one_or_none()
    if membership is None:
        raise HTTPException(status_code=403, detail="No active tenant membership")

    return membership


def require_role(min_role: str) -> Callable[..., Awaitable[TenantMember]]:
    """Dependency factory: the current membership, if its role is at least ``min_role``."""
    if min_role not in ROLE_HIERARCHY:
        raise ValueError(f"Unknown role: {min_role}")

    async def _check(
        membership: TenantMember = Depends(get_current_membership),
    ) -> TenantMember:
        if not membership.has_role(min_role):
            raise HTTPException(status_code=403, detail=f"Requires {min_role} role or higher")
        return membership

    return _check


async def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(SqlCategoryStore(db))
