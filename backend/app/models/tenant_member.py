from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import TenantScopedBase

ROLE_HIERARCHY = {"owner": 4, "admin": 3, "manager": 2, "member": 1}


class TenantMember(TenantScopedBase):
    __tablename__ = "tenant_members"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_tenant_members_tenant_user"),
        CheckConstraint(
            "role IN ('owner', 'admin', 'manager', 'member')", name="ck_tenant_members_role"
        ),
        CheckConstraint(
            "status IN ('active', 'invited', 'removed')", name="ck_tenant_members_status"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # tenant_id inherited from TenantScopedBase
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="invited")
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    tenant: Mapped["Tenant"] = relationship(back_populates="members")  # noqa: F821
    user: Mapped["User | None"] = relationship()  # noqa: F821

    def has_role(self, min_role: str) -> bool:
        return ROLE_HIERARCHY.get(self.role, 0) >= ROLE_HIERARCHY.get(min_role, 0)
