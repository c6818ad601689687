"""Response caching for tenant-scoped GET endpoints.

Keys always carry the tenant id so one tenant can never be served another
tenant's cached payload:

    api:<tenant_id>:<path>:<query string>

Write endpoints call :func:`invalidate_tenant` with the path prefixes they
affect once their transaction has committed.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import Request, Response

from app.core.cache import TTLCache, build_key
from app.core.invalidation import invalidate_by_pattern

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_NAMESPACE = "api"


def response_cache_key(tenant_id: uuid.UUID, request: Request) -> str:
    return build_key(KEY_NAMESPACE, tenant_id, request.url.path, request.url.query)


async def cached_response(
    request: Request,
    response: Response,
    cache: TTLCache[Any],
    tenant_id: uuid.UUID,
    producer: Callable[[], Awaitable[T]],
    ttl: float | None = None,
) -> T:
    """Serve ``producer()``'s result through the cache.

    Only GET requests are cached. Exceptions raised by the producer
    (including HTTPException) reach the client unchanged and leave the
    cache untouched.
    """
    if request.method != "GET":
        return await producer()

    key = response_cache_key(tenant_id, request)
    populated = False

    async def _populate() -> T:
        nonlocal populated
        populated = True
        return await producer()

    value = await cache.get_or_set(key, _populate, ttl)

    status = "MISS" if populated else "HIT"
    logger.debug("Cache %s: %s", status.lower(), key)
    response.headers["X-Cache"] = status
    response.headers["X-Cache-Key"] = key
    return value


def invalidate_tenant(cache: TTLCache[Any], tenant_id: uuid.UUID, *paths: str) -> int:
    """Evict a tenant's cached responses under the given path prefixes.

    With no paths, every cached response for the tenant is dropped.
    """
    if not paths:
        return invalidate_by_pattern(cache, build_key(KEY_NAMESPACE, tenant_id, ""))
    return sum(invalidate_by_pattern(cache, build_key(tenant_id, path)) for path in paths)
