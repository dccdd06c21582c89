"""Tenant request/response schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

# 3-63 chars, lowercase alphanumerics and inner hyphens
SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,61}[a-z0-9]$")


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=3, max_length=63)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: str) -> str:
        if not SLUG_PATTERN.match(v):
            raise ValueError(
                "Slug must be lowercase letters, digits and hyphens, "
                "not starting or ending with a hyphen"
            )
        return v


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MembershipResponse(BaseModel):
    tenant_id: int
    tenant_name: str
    tenant_slug: str
    role: str
