"""FastAPI dependencies: bearer auth, tenant resolution and the response cache."""

import uuid
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.cache import TTLCache
from app.core.database import get_session
from app.core.security import decode_jwt, hash_api_token
from app.models.api_token import ApiToken
from app.models.base import utcnow
from app.models.user import User, UserRole

bearer_scheme = HTTPBearer()


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Who is calling, and for which shop."""

    tenant_id: uuid.UUID
    user_id: uuid.UUID
    user_role: str
    token_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.user_role in (UserRole.OWNER, UserRole.ADMIN)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def _resolve_api_token(raw_token: str, session: AsyncSession) -> AuthContext:
    """Opaque tokens are stored as SHA-256 hashes; look the hash up."""
    result = await session.execute(
        select(ApiToken).where(
            ApiToken.token_hash == hash_api_token(raw_token),
            ApiToken.is_active.is_(True),  # type: ignore[union-attr]
        )
    )
    api_token = result.scalar_one_or_none()
    if api_token is None:
        raise _unauthorized("Invalid or revoked API token")
    if api_token.expires_at and api_token.expires_at < utcnow():
        raise _unauthorized("API token has expired")

    owner = await session.get(User, api_token.user_id)
    if owner is None or not owner.is_active:
        raise _unauthorized("Token owner account is disabled")

    api_token.last_used_at = utcnow()
    session.add(api_token)
    await session.commit()

    return AuthContext(
        tenant_id=api_token.tenant_id,
        user_id=api_token.user_id,
        user_role=owner.role,
        token_id=api_token.id,
    )


def _resolve_jwt(token: str) -> AuthContext:
    """Login JWTs carry the tenant (``tid``), user (``sub``) and role."""
    try:
        claims = decode_jwt(token)
    except JWTError as exc:
        raise _unauthorized("Invalid or expired JWT") from exc

    try:
        return AuthContext(
            tenant_id=uuid.UUID(claims["tid"]),
            user_id=uuid.UUID(claims["sub"]),
            user_role=claims.get("role", UserRole.MEMBER),
        )
    except (KeyError, ValueError) as exc:
        raise _unauthorized("Malformed JWT payload") from exc


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AuthContext:
    """Resolve the bearer token.

    JWTs from ``/auth/login`` contain dots; API tokens from
    ``secrets.token_urlsafe`` never do.
    """
    raw = credentials.credentials
    if "." in raw:
        return _resolve_jwt(raw)
    return await _resolve_api_token(raw, session)


async def require_admin(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Owner or admin role required",
        )
    return auth


def get_cache(request: Request) -> TTLCache[Any]:
    """The response cache created alongside the app in app.main."""
    return request.app.state.cache


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
AdminAuth = Annotated[AuthContext, Depends(require_admin)]
Session = Annotated[AsyncSession, Depends(get_session)]
Cache = Annotated[TTLCache[Any], Depends(get_cache)]
