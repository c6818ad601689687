"""Import all models so SQLModel.metadata picks them up."""

from app.models.api_token import ApiToken
from app.models.customer import Customer, CustomerCreate, CustomerRead, CustomerUpdate
from app.models.order import (
    Order,
    OrderCreate,
    OrderItem,
    OrderItemCreate,
    OrderItemRead,
    OrderRead,
)
from app.models.product import Product, ProductCreate, ProductRead, ProductUpdate
from app.models.tenant import Tenant, TenantRead
from app.models.user import User, UserRead, UserRole

__all__ = [
    "ApiToken",
    "Customer",
    "CustomerCreate",
    "CustomerRead",
    "CustomerUpdate",
    "Order",
    "OrderCreate",
    "OrderItem",
    "OrderItemCreate",
    "OrderItemRead",
    "OrderRead",
    "Product",
    "ProductCreate",
    "ProductRead",
    "ProductUpdate",
    "Tenant",
    "TenantRead",
    "User",
    "UserRead",
    "UserRole",
]
