from app.models.category import Category
from app.models.product import Product
from app.models.tenant import Tenant
from app.models.tenant_member import TenantMember
from app.models.user import User

__all__ = [
    "Category",
    "Product",
    "Tenant",
    "TenantMember",
    "User",
]
