from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TenantScopedBase(Base):
    """Abstract base for all tenant-scoped tables. Adds tenant_id FK + index."""

    __abstract__ = True

    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
