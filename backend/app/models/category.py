from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import TenantScopedBase


class Category(TenantScopedBase):
    __tablename__ = "categories"
    __table_args__ = (
        # Sibling names are unique per parent group, root group included.
        UniqueConstraint(
            "tenant_id",
            "parent_id",
            "name",
            name="uq_categories_tenant_parent_name",
            postgresql_nulls_not_distinct=True,
        ),
        Index("ix_categories_tenant_parent", "tenant_id", "parent_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # tenant_id inherited from TenantScopedBase
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name!r}, parent_id={self.parent_id})>"
