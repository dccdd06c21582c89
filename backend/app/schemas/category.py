"""Category request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: str | None = Field(None, max_length=500)
    parent_id: int | None = Field(None, gt=0)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class CategoryUpdate(BaseModel):
    """Partial update. An explicit ``parent_id: null`` moves the category to the root."""

    name: str | None = Field(None, min_length=2, max_length=255)
    description: str | None = Field(None, max_length=500)
    parent_id: int | None = Field(None, gt=0)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        if v is None:
            raise ValueError("Name cannot be null")
        return v.strip() if isinstance(v, str) else v


class CategoryMove(BaseModel):
    parent_id: int | None = Field(..., gt=0)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CategoryListItem(CategoryResponse):
    product_count: int = 0


class CategoryRef(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class CategoryDetailResponse(CategoryListItem):
    parent_name: str | None = None
    children: list[CategoryRef] = Field(default_factory=list)


class CategoryTreeNode(BaseModel):
    id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    product_count: int = 0
    children: list["CategoryTreeNode"] = Field(default_factory=list)


class CategoryPathNode(CategoryRef):
    pass


class CategoryListResponse(BaseModel):
    items: list[CategoryListItem]
    count: int


class CategoryTreeResponse(BaseModel):
    items: list[CategoryTreeNode]


class CategoryStats(BaseModel):
    total_categories: int
    root_categories: int
    categories_with_products: int
    avg_products_per_category: float


class CategoryDeleted(BaseModel):
    id: int
    name: str


class CategoryDeleteResponse(CategoryDeleted):
    message: str
