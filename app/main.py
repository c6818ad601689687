"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import v1_router
from app.core.cache import TTLCache
from app.core.config import get_settings
from app.core.database import close_db, init_db
from app.workers.cache_sweeper import CacheSweeper

_settings = get_settings()

logging.getLogger("app").setLevel(_settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: ensure tables exist, then start sweeping expired cache entries
    await init_db()
    sweeper = CacheSweeper(app.state.cache, _settings.cache_cleanup_interval_seconds)
    sweeper.start()
    app.state.cache_sweeper = sweeper
    yield
    await sweeper.stop()
    await close_db()


app = FastAPI(
    title="Coffee Dashboard",
    version="0.1.0",
    description="Customers, products, orders and cached sales reporting per tenant",
    lifespan=lifespan,
)

# One response cache per process, shared by all requests via app.api.deps.get_cache
app.state.cache = TTLCache[Any](default_ttl=_settings.cache_default_ttl_seconds)

# ── CORS ─────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Cache-Key"],
)

# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
