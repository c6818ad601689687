"""V1 API router aggregation."""

from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.cache import router as cache_router
from app.api.v1.customers import router as customers_router
from app.api.v1.orders import router as orders_router
from app.api.v1.products import router as products_router
from app.api.v1.stats import router as stats_router
from app.api.v1.system import router as system_router
from app.api.v1.tenants import router as tenants_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(tenants_router)
v1_router.include_router(auth_router)
v1_router.include_router(customers_router)
v1_router.include_router(products_router)
v1_router.include_router(orders_router)
v1_router.include_router(stats_router)
v1_router.include_router(cache_router)
v1_router.include_router(system_router)
