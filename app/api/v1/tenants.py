"""Shop registration (bootstrap) and shop settings."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlmodel import select

from app.api.caching import invalidate_tenant
from app.api.deps import AdminAuth, Auth, Cache, Session
from app.core.security import generate_api_token, hash_api_token, hash_password
from app.models.api_token import ApiToken
from app.models.tenant import Tenant, TenantRead
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


class TenantBootstrapRequest(BaseModel):
    """A new shop plus the owner login that manages it."""
    tenant_name: str = Field(max_length=255)
    tenant_slug: str = Field(max_length=100, pattern=r"^[a-z0-9\-]+$")
    currency: str = Field(default="USD", pattern=r"^[A-Z]{3}$")
    owner_email: EmailStr
    owner_password: str = Field(min_length=8, max_length=128)
    owner_display_name: str = Field(default="", max_length=255)


class TenantUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")

    @field_validator("name", "currency")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class TenantBootstrapResponse(BaseModel):
    tenant: TenantRead
    api_token: str = Field(description="Returned once; only its hash is stored")
    token_prefix: str


async def _get_tenant_or_404(auth, session) -> Tenant:
    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def _issue_token(tenant: Tenant, owner: User) -> tuple[ApiToken, str]:
    raw = generate_api_token()
    token = ApiToken(
        tenant_id=tenant.id,
        user_id=owner.id,
        name="default",
        token_hash=hash_api_token(raw),
        token_prefix=raw[:8],
    )
    return token, raw


@router.post(
    "",
    response_model=TenantBootstrapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new shop (bootstrap)",
)
async def bootstrap_tenant(
    body: TenantBootstrapRequest,
    session: Session,
) -> TenantBootstrapResponse:
    """Create a shop, its owner and a first API token in one transaction.

    This is the only unauthenticated write endpoint.
    """
    taken = await session.execute(select(Tenant.id).where(Tenant.slug == body.tenant_slug))
    if taken.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Slug '{body.tenant_slug}' is already taken",
        )

    tenant = Tenant(name=body.tenant_name, slug=body.tenant_slug, currency=body.currency)
    session.add(tenant)
    await session.flush()  # tenant.id for the owner row

    owner = User(
        tenant_id=tenant.id,
        email=body.owner_email,
        password_hash=hash_password(body.owner_password),
        display_name=body.owner_display_name,
        role=UserRole.OWNER,
    )
    session.add(owner)
    await session.flush()

    token, raw = _issue_token(tenant, owner)
    session.add(token)
    await session.commit()
    await session.refresh(tenant)

    logger.info("Bootstrapped tenant %s (%s)", tenant.slug, tenant.id)
    return TenantBootstrapResponse(
        tenant=TenantRead.model_validate(tenant),
        api_token=raw,
        token_prefix=token.token_prefix,
    )


@router.get("/me", response_model=TenantRead, summary="Get current shop")
async def get_current_tenant(auth: Auth, session: Session) -> TenantRead:
    return TenantRead.model_validate(await _get_tenant_or_404(auth, session))


@router.patch("/me", response_model=TenantRead, summary="Update shop name or currency")
async def update_current_tenant(
    body: TenantUpdate,
    auth: AdminAuth,
    session: Session,
    cache: Cache,
) -> TenantRead:
    tenant = await _get_tenant_or_404(auth, session)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(tenant, field, value)
    tenant.touch()
    session.add(tenant)
    await session.commit()
    await session.refresh(tenant)

    # The overview report carries the currency
    invalidate_tenant(cache, tenant.id, "/v1/stats")
    return TenantRead.model_validate(tenant)
