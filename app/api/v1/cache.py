"""Cache inspection and manual invalidation for the current tenant."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from app.api.caching import KEY_NAMESPACE, invalidate_tenant
from app.api.deps import AdminAuth, Auth, Cache
from app.core.cache import build_key
from app.core.invalidation import invalidate_all, invalidate_path

router = APIRouter(prefix="/cache", tags=["cache"])


class CacheStatsResponse(BaseModel):
    size: int
    tenant_entries: int
    keys: list[str]


class InvalidateResponse(BaseModel):
    invalidated: int


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(auth: Auth, cache: Cache) -> CacheStatsResponse:
    """Process-wide entry count plus this tenant's keys (other tenants' keys are hidden)."""
    stats = cache.stats()
    prefix = build_key(KEY_NAMESPACE, auth.tenant_id, "")
    keys = [k for k in stats.keys if k.startswith(prefix)]
    return CacheStatsResponse(size=stats.size, tenant_entries=len(keys), keys=keys)


@router.delete("", response_model=InvalidateResponse)
async def invalidate_cache(
    auth: Auth,
    cache: Cache,
    path: str | None = None,
) -> InvalidateResponse:
    """Drop this tenant's cached responses, optionally only under ``path``."""
    if path:
        count = invalidate_tenant(cache, auth.tenant_id, path)
    else:
        count = invalidate_tenant(cache, auth.tenant_id)
    return InvalidateResponse(invalidated=count)


@router.delete("/entry", response_model=InvalidateResponse)
async def invalidate_cache_entry(auth: Auth, cache: Cache, key: str) -> InvalidateResponse:
    """Drop one exact key, as reported by the X-Cache-Key header."""
    if not key.startswith(build_key(KEY_NAMESPACE, auth.tenant_id, "")):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cache key not found")
    return InvalidateResponse(invalidated=int(invalidate_path(cache, key)))


@router.delete("/all", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(auth: AdminAuth, cache: Cache) -> None:
    """Empty the whole process cache (all tenants)."""
    invalidate_all(cache)
