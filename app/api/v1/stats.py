"""Sales statistics endpoints — the dashboard's charts and rankings."""

import uuid

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import select

from app.api.caching import cached_response
from app.api.deps import Auth, Cache, Session
from app.core.config import get_settings
from app.models.customer import Customer
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.tenant import Tenant
from app.services.metrics import (
    EntityMetrics,
    EntityRecord,
    LineItem,
    SalesReport,
    build_sales_report,
    rank_by_sold,
    to_decimal,
)

router = APIRouter(prefix="/stats", tags=["stats"])

settings = get_settings()


# ── Schemas ──────────────────────────────────────────────────

class OverviewStats(BaseModel):
    currency: str
    customers: int
    products: int
    orders: int
    total_revenue: float
    average_order_value: float
    low_stock_products: int


class ProductMetrics(BaseModel):
    product_id: uuid.UUID
    name: str
    category: str | None
    total_sold: int
    total_revenue: float
    profit_per_unit: float | None
    margin_percent: float | None


class CategoryStats(BaseModel):
    category: str
    count: int
    revenue: float


class ProductReport(BaseModel):
    total_revenue: float
    top_sellers: list[ProductMetrics]
    slow_movers: list[ProductMetrics]
    categories: list[CategoryStats]


class CustomerRanking(BaseModel):
    customer_id: uuid.UUID
    name: str
    order_count: int
    total_spent: float


# ── Data loading ─────────────────────────────────────────────

async def _product_sales(session, tenant_id: uuid.UUID, top_n: int) -> SalesReport:
    """Fetch products + their order lines and run the aggregation engine."""
    products = (await session.execute(
        select(Product)
        .where(Product.tenant_id == tenant_id)
        .order_by(Product.created_at.desc())  # type: ignore[union-attr]
    )).scalars().all()

    rows = (await session.execute(
        select(OrderItem.product_id, OrderItem.quantity, OrderItem.price)
        .where(OrderItem.tenant_id == tenant_id)
    )).all()

    entities = [
        EntityRecord(
            entity_id=p.id,
            price=to_decimal(p.price),
            cost=to_decimal(p.cost),
            category=p.category,
            name=p.name,
        )
        for p in products
    ]
    line_items = [
        LineItem(entity_id=row.product_id, quantity=row.quantity, unit_price=to_decimal(row.price))
        for row in rows
    ]
    return build_sales_report(entities, line_items, top_n=top_n)


def _product_metrics(m: EntityMetrics) -> ProductMetrics:
    return ProductMetrics(
        product_id=m.entity_id,
        name=m.name,
        category=m.category,
        total_sold=m.total_sold,
        total_revenue=float(m.total_revenue),
        profit_per_unit=None if m.profit_per_unit is None else float(m.profit_per_unit),
        margin_percent=None if m.margin_percent is None else float(m.margin_percent),
    )


def _categories(report: SalesReport) -> list[CategoryStats]:
    return [
        CategoryStats(category=c.category, count=c.count, revenue=float(c.revenue))
        for c in report.categories
    ]


# ── Routes ───────────────────────────────────────────────────

@router.get("/overview", response_model=OverviewStats)
async def get_overview(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> OverviewStats:
    """Summary counts for the tenant."""
    tid = auth.tenant_id

    async def _load() -> OverviewStats:
        customers = (await session.execute(
            select(func.count()).select_from(Customer).where(Customer.tenant_id == tid)
        )).scalar_one()

        products = (await session.execute(
            select(func.count()).select_from(Product).where(Product.tenant_id == tid)
        )).scalar_one()

        low_stock = (await session.execute(
            select(func.count()).select_from(Product).where(
                Product.tenant_id == tid,
                Product.stock <= settings.low_stock_threshold,
            )
        )).scalar_one()

        order_count, revenue = (await session.execute(
            select(func.count(), func.coalesce(func.sum(Order.total), 0.0))
            .where(Order.tenant_id == tid)
        )).one()

        tenant = await session.get(Tenant, tid)
        return OverviewStats(
            currency=tenant.currency if tenant else "USD",
            customers=customers,
            products=products,
            orders=order_count,
            total_revenue=round(revenue, 2),
            average_order_value=round(revenue / order_count, 2) if order_count else 0.0,
            low_stock_products=low_stock,
        )

    return await cached_response(
        request, response, cache, tid, _load, ttl=settings.stats_cache_ttl_seconds,
    )


@router.get("/products", response_model=list[ProductMetrics])
async def get_product_metrics(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> list[ProductMetrics]:
    """Per-product units sold, revenue, profit per unit and margin."""
    async def _load() -> list[ProductMetrics]:
        report = await _product_sales(session, auth.tenant_id, settings.top_sellers_limit)
        return [_product_metrics(m) for m in report.metrics]

    return await cached_response(
        request, response, cache, auth.tenant_id, _load, ttl=settings.stats_cache_ttl_seconds,
    )


@router.get("/products/report", response_model=ProductReport)
async def get_product_report(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
    top_n: int | None = None,
) -> ProductReport:
    """Top sellers, slow movers and category breakdown.

    With fewer than ``2 * top_n`` products the two rankings overlap.
    """
    n = settings.top_sellers_limit if top_n is None else max(0, min(top_n, 50))

    async def _load() -> ProductReport:
        report = await _product_sales(session, auth.tenant_id, n)
        return ProductReport(
            total_revenue=float(report.total_revenue),
            top_sellers=[_product_metrics(m) for m in report.top_sellers],
            slow_movers=[_product_metrics(m) for m in report.slow_movers],
            categories=_categories(report),
        )

    return await cached_response(
        request, response, cache, auth.tenant_id, _load, ttl=settings.stats_cache_ttl_seconds,
    )


@router.get("/categories", response_model=list[CategoryStats])
async def get_category_stats(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> list[CategoryStats]:
    async def _load() -> list[CategoryStats]:
        report = await _product_sales(session, auth.tenant_id, settings.top_sellers_limit)
        return _categories(report)

    return await cached_response(
        request, response, cache, auth.tenant_id, _load, ttl=settings.stats_cache_ttl_seconds,
    )


@router.get("/customers/top", response_model=list[CustomerRanking])
async def get_top_customers(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
    limit: int = 5,
) -> list[CustomerRanking]:
    """Customers ranked by number of orders; each order counts as one unit at its total."""
    tid = auth.tenant_id

    async def _load() -> list[CustomerRanking]:
        customers = (await session.execute(
            select(Customer)
            .where(Customer.tenant_id == tid)
            .order_by(Customer.created_at.asc())  # type: ignore[union-attr]
        )).scalars().all()

        orders = (await session.execute(
            select(Order.customer_id, Order.total)
            .where(Order.tenant_id == tid, Order.customer_id.is_not(None))  # type: ignore[union-attr]
        )).all()

        report = build_sales_report(
            [EntityRecord(entity_id=c.id, name=c.name) for c in customers],
            [LineItem(entity_id=o.customer_id, quantity=1, unit_price=to_decimal(o.total)) for o in orders],
            top_n=0,
        )
        ranked = rank_by_sold(report.metrics)[:max(0, limit)]
        return [
            CustomerRanking(
                customer_id=m.entity_id,
                name=m.name,
                order_count=m.total_sold,
                total_spent=float(m.total_revenue),
            )
            for m in ranked
        ]

    return await cached_response(
        request, response, cache, tid, _load, ttl=settings.stats_cache_ttl_seconds,
    )
