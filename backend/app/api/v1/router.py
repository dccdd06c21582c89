"""Aggregate all v1 sub-routers."""

from fastapi import APIRouter

from app.api.v1.categories import router as categories_router
from app.api.v1.health import router as health_router
from app.api.v1.tenants import router as tenants_router

api_v1_router = APIRouter()

api_v1_router.include_router(health_router, tags=["health"])
api_v1_router.include_router(tenants_router, prefix="/tenants", tags=["tenants"])
api_v1_router.include_router(
    categories_router, prefix="/tenants/me/categories", tags=["categories"]
)
