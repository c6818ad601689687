"""Order + OrderItem models — the transactional records stats are built from."""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class Order(TimestampMixin, SQLModel, table=True):
    __tablename__ = "orders"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    customer_id: uuid.UUID | None = Field(
        default=None, foreign_key="customers.id", nullable=True, index=True,
    )

    total: float = Field(default=0.0)
    item_count: int = Field(default=0)


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    order_id: uuid.UUID = Field(foreign_key="orders.id", nullable=False, index=True)
    product_id: uuid.UUID = Field(foreign_key="products.id", nullable=False, index=True)

    quantity: int = Field(default=1)
    # Unit price captured when the order was placed
    price: float = Field(default=0.0)


# ── Pydantic schemas ─────────────────────────────────────────

class OrderItemCreate(SQLModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1)


class OrderCreate(SQLModel):
    customer_id: uuid.UUID | None = None
    items: list[OrderItemCreate] = Field(min_length=1)


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price: float


class OrderRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    customer_id: uuid.UUID | None
    total: float
    item_count: int
    items: list[OrderItemRead] = []
    created_at: datetime
