"""System health endpoint — database connectivity and cache occupancy."""

import platform
import sys
import time

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from app.api.deps import Cache, Session

router = APIRouter(prefix="/system", tags=["system"])

_start_time = time.time()


class ServiceHealth(BaseModel):
    status: str  # "ok" or "error"
    detail: str | None = None
    latency_ms: int | None = None


class CacheHealth(BaseModel):
    entries: int
    default_ttl_seconds: float


class HealthResponse(BaseModel):
    status: str
    uptime_seconds: int
    python_version: str
    platform: str
    database: ServiceHealth
    cache: CacheHealth


@router.get("/health", response_model=HealthResponse)
async def system_health(session: Session, cache: Cache) -> HealthResponse:
    db = await _check_database(session)
    return HealthResponse(
        status="ok" if db.status == "ok" else "degraded",
        uptime_seconds=int(time.time() - _start_time),
        python_version=sys.version.split()[0],
        platform=platform.platform(),
        database=db,
        cache=CacheHealth(entries=len(cache), default_ttl_seconds=cache.default_ttl),
    )


async def _check_database(session) -> ServiceHealth:
    try:
        t0 = time.monotonic()
        await session.execute(text("SELECT 1"))
        latency = int((time.monotonic() - t0) * 1000)
        return ServiceHealth(status="ok", latency_ms=latency)
    except Exception as exc:
        # Reported in the payload instead of raising
        return ServiceHealth(status="error", detail=str(exc)[:200])
