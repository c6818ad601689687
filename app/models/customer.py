"""Customer model — a buyer belonging to a tenant."""

import uuid
from datetime import datetime

from pydantic import EmailStr, field_validator
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class Customer(TimestampMixin, SQLModel, table=True):
    __tablename__ = "customers"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    # Unique per tenant, enforced in the API layer
    email: str = Field(max_length=320, nullable=False, index=True)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=500)

    # Running totals, updated whenever an order is recorded
    total_spent: float = Field(default=0.0)
    visit_count: int = Field(default=0)
    loyalty_points: int = Field(default=0)
    last_visit: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class CustomerCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=500)


class CustomerUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=500)

    @field_validator("name", "email")
    @classmethod
    def _not_null(cls, value):
        # phone and address may be cleared with null; name and email may not
        if value is None:
            raise ValueError("must not be null")
        return value


class CustomerRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    email: str
    phone: str | None
    address: str | None
    total_spent: float
    visit_count: int
    loyalty_points: int
    last_visit: datetime | None
    created_at: datetime
    updated_at: datetime
