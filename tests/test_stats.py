"""Tests for stats endpoints."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.order import Order, OrderItem


async def _bootstrap(client: AsyncClient, slug: str):
    resp = await client.post("/v1/tenants", json={
        "tenant_name": f"{slug} Co",
        "tenant_slug": slug,
        "owner_email": f"owner@{slug}.com",
        "owner_password": "testpass123",
    })
    data = resp.json()
    return {"Authorization": f"Bearer {data['api_token']}"}


async def _bootstrap_with_sales(client: AsyncClient, slug: str):
    """Tenant with two customers, two products and three orders.

    Ada buys 2 lattes, then 1 latte; Bob buys 1 scone. Revenue is 4.50 * 3 + 2.75.
    """
    headers = await _bootstrap(client, slug)
    ada = (await client.post("/v1/customers", json={
        "name": "Ada", "email": f"ada@{slug}.com",
    }, headers=headers)).json()
    bob = (await client.post("/v1/customers", json={
        "name": "Bob", "email": f"bob@{slug}.com",
    }, headers=headers)).json()
    latte = (await client.post("/v1/products", json={
        "name": "Latte", "category": "Coffee", "price": 4.5, "cost": 1.2, "stock": 10,
    }, headers=headers)).json()
    scone = (await client.post("/v1/products", json={
        "name": "Scone", "category": "Pastry", "price": 2.75, "cost": 0.9, "stock": 1,
    }, headers=headers)).json()

    for customer, product, qty in ((ada, latte, 2), (ada, latte, 1), (bob, scone, 1)):
        resp = await client.post("/v1/orders", json={
            "customer_id": customer["id"],
            "items": [{"product_id": product["id"], "quantity": qty}],
        }, headers=headers)
        assert resp.status_code == 201

    return headers, {"ada": ada, "bob": bob, "latte": latte, "scone": scone}


@pytest.mark.asyncio
async def test_overview_stats_empty(client: AsyncClient):
    headers = await _bootstrap(client, slug="stats-empty")

    resp = await client.get("/v1/stats/overview", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {
        "currency": "USD",
        "customers": 0,
        "products": 0,
        "orders": 0,
        "total_revenue": 0.0,
        "average_order_value": 0.0,
        "low_stock_products": 0,
    }


@pytest.mark.asyncio
async def test_overview_stats_with_sales(client: AsyncClient):
    headers, _ = await _bootstrap_with_sales(client, slug="stats-overview")

    data = (await client.get("/v1/stats/overview", headers=headers)).json()
    assert data["customers"] == 2
    assert data["products"] == 2
    assert data["orders"] == 3
    assert data["total_revenue"] == 16.25
    assert data["average_order_value"] == 5.42
    # Scone sold out
    assert data["low_stock_products"] == 1


@pytest.mark.asyncio
async def test_product_metrics(client: AsyncClient):
    headers, seed = await _bootstrap_with_sales(client, slug="stats-products")

    resp = await client.get("/v1/stats/products", headers=headers)
    assert resp.status_code == 200
    by_id = {m["product_id"]: m for m in resp.json()}

    latte = by_id[seed["latte"]["id"]]
    assert latte["total_sold"] == 3
    assert latte["total_revenue"] == 13.5
    assert latte["profit_per_unit"] == 3.3
    assert latte["margin_percent"] == 73.3

    scone = by_id[seed["scone"]["id"]]
    assert scone["total_sold"] == 1
    assert scone["margin_percent"] == 67.3


@pytest.mark.asyncio
async def test_product_report_rankings(client: AsyncClient):
    headers, _ = await _bootstrap_with_sales(client, slug="stats-report")

    data = (await client.get("/v1/stats/products/report?top_n=1", headers=headers)).json()
    assert [m["name"] for m in data["top_sellers"]] == ["Latte"]
    assert [m["name"] for m in data["slow_movers"]] == ["Scone"]
    assert data["total_revenue"] == 16.25

    # Default ranking size exceeds the product count, so both lists hold everything
    data = (await client.get("/v1/stats/products/report", headers=headers)).json()
    assert len(data["top_sellers"]) == len(data["slow_movers"]) == 2
    assert data["top_sellers"][0]["name"] == "Latte"
    assert data["slow_movers"][-1]["name"] == "Scone"


@pytest.mark.asyncio
async def test_category_stats(client: AsyncClient):
    headers, _ = await _bootstrap_with_sales(client, slug="stats-categories")

    data = (await client.get("/v1/stats/categories", headers=headers)).json()
    by_name = {c["category"]: c for c in data}
    assert by_name["Coffee"] == {"category": "Coffee", "count": 1, "revenue": 13.5}
    assert by_name["Pastry"] == {"category": "Pastry", "count": 1, "revenue": 2.75}


@pytest.mark.asyncio
async def test_top_customers(client: AsyncClient):
    headers, seed = await _bootstrap_with_sales(client, slug="stats-top-customers")

    data = (await client.get("/v1/stats/customers/top", headers=headers)).json()
    assert [c["name"] for c in data] == ["Ada", "Bob"]
    assert data[0]["order_count"] == 2
    assert data[0]["total_spent"] == 13.5
    assert data[0]["customer_id"] == seed["ada"]["id"]

    data = (await client.get("/v1/stats/customers/top?limit=1", headers=headers)).json()
    assert len(data) == 1


@pytest.mark.asyncio
async def test_stats_ignore_lines_for_unknown_products(client: AsyncClient, session: AsyncSession):
    """Order lines whose product no longer exists are left out of the metrics."""
    headers, _ = await _bootstrap_with_sales(client, slug="stats-orphans")
    me = (await client.get("/v1/auth/me", headers=headers)).json()
    tenant_id = uuid.UUID(me["tenant"]["id"])

    order = Order(tenant_id=tenant_id, total=99.0, item_count=9)
    session.add(order)
    await session.flush()
    session.add(OrderItem(
        tenant_id=tenant_id,
        order_id=order.id,
        product_id=uuid.uuid4(),
        quantity=9,
        price=11.0,
    ))
    await session.commit()

    data = (await client.get("/v1/stats/products/report", headers=headers)).json()
    assert data["total_revenue"] == 16.25


@pytest.mark.asyncio
async def test_stats_caching(client: AsyncClient):
    """Stats are served from cache until a write invalidates them."""
    headers, seed = await _bootstrap_with_sales(client, slug="stats-cache")

    first = await client.get("/v1/stats/overview", headers=headers)
    assert first.headers["X-Cache"] == "MISS"
    second = await client.get("/v1/stats/overview", headers=headers)
    assert second.headers["X-Cache"] == "HIT"
    assert second.json() == first.json()

    await client.post("/v1/orders", json={
        "items": [{"product_id": seed["latte"]["id"]}],
    }, headers=headers)

    third = await client.get("/v1/stats/overview", headers=headers)
    assert third.headers["X-Cache"] == "MISS"
    assert third.json()["orders"] == 4


@pytest.mark.asyncio
async def test_stats_cache_not_shared_between_tenants(client: AsyncClient):
    h1, _ = await _bootstrap_with_sales(client, slug="stats-tenant-a")
    h2 = await _bootstrap(client, slug="stats-tenant-b")

    a = await client.get("/v1/stats/overview", headers=h1)
    b = await client.get("/v1/stats/overview", headers=h2)
    assert b.headers["X-Cache"] == "MISS"
    assert a.headers["X-Cache-Key"] != b.headers["X-Cache-Key"]
    assert b.json()["orders"] == 0


@pytest.mark.asyncio
async def test_stats_requires_auth(client: AsyncClient):
    resp = await client.get("/v1/stats/overview")
    assert resp.status_code in (401, 403)
