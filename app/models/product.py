"""Product model — an item on the menu / in inventory."""

import uuid
from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class Product(TimestampMixin, SQLModel, table=True):
    __tablename__ = "products"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", max_length=1000)
    category: str = Field(max_length=100, nullable=False, index=True)

    # Sale price and unit cost in the tenant's currency
    price: float = Field(default=0.0, ge=0)
    cost: float = Field(default=0.0, ge=0)
    stock: int = Field(default=0)


# ── Pydantic schemas ─────────────────────────────────────────

class ProductCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=1000)
    category: str = Field(min_length=1, max_length=100)
    price: float = Field(ge=0)
    cost: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)


class ProductUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    price: float | None = Field(default=None, ge=0)
    cost: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)

    @field_validator("name", "description", "category", "price", "cost", "stock")
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; these columns have no null state
        if value is None:
            raise ValueError("must not be null")
        return value


class ProductRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    description: str
    category: str
    price: float
    cost: float
    stock: int
    low_stock: bool = False
    created_at: datetime
    updated_at: datetime
