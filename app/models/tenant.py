"""Tenant model — one business, the top-level isolation boundary."""

import uuid

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)
    is_active: bool = Field(default=True)

    # ISO 4217 code the dashboard formats money with
    currency: str = Field(default="USD", max_length=3)


# ── Pydantic schemas ─────────────────────────────────────────

class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    is_active: bool
    currency: str
