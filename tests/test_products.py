"""Tests for product CRUD and import."""

import pytest
from httpx import AsyncClient


async def _bootstrap(client: AsyncClient, slug: str):
    resp = await client.post("/v1/tenants", json={
        "tenant_name": f"{slug} Co",
        "tenant_slug": slug,
        "owner_email": f"owner@{slug}.com",
        "owner_password": "testpass123",
    })
    assert resp.status_code == 201
    data = resp.json()
    return {"Authorization": f"Bearer {data['api_token']}"}


async def _create(client: AsyncClient, headers: dict, **overrides) -> dict:
    body = {"name": "Latte", "category": "Coffee", "price": 4.5, "cost": 1.2, "stock": 20}
    body.update(overrides)
    resp = await client.post("/v1/products", json=body, headers=headers)
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_create_product(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-create")
    data = await _create(client, headers)
    assert data["name"] == "Latte"
    assert data["price"] == 4.5
    assert data["low_stock"] is False


@pytest.mark.asyncio
async def test_low_stock_flag(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-low")
    data = await _create(client, headers, name="Scone", category="Pastry", stock=2)
    assert data["low_stock"] is True


@pytest.mark.asyncio
async def test_negative_price_rejected(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-neg")
    resp = await client.post("/v1/products", json={
        "name": "Latte", "category": "Coffee", "price": -1, "cost": 1,
    }, headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_filter_by_category(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-filter")
    await _create(client, headers, name="Latte")
    await _create(client, headers, name="Croissant", category="Pastry", price=2.5, cost=0.8)

    resp = await client.get("/v1/products?category=Pastry", headers=headers)
    assert [p["name"] for p in resp.json()] == ["Croissant"]

    resp = await client.get("/v1/products", headers=headers)
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_update_invalidates_cached_product(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-update")
    pid = (await _create(client, headers))["id"]

    resp = await client.get(f"/v1/products/{pid}", headers=headers)
    assert resp.headers["X-Cache"] == "MISS"
    resp = await client.get(f"/v1/products/{pid}", headers=headers)
    assert resp.headers["X-Cache"] == "HIT"

    resp = await client.patch(f"/v1/products/{pid}", json={"price": 5.0}, headers=headers)
    assert resp.status_code == 200

    resp = await client.get(f"/v1/products/{pid}", headers=headers)
    assert resp.headers["X-Cache"] == "MISS"
    assert resp.json()["price"] == 5.0


@pytest.mark.asyncio
async def test_update_rejects_null_for_required_fields(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-null")
    pid = (await _create(client, headers))["id"]

    for field in ("name", "category", "price", "cost", "stock", "description"):
        resp = await client.patch(f"/v1/products/{pid}", json={field: None}, headers=headers)
        assert resp.status_code == 422, field

    resp = await client.get(f"/v1/products/{pid}", headers=headers)
    assert resp.json()["price"] == 4.5
    assert resp.json()["stock"] == 20


@pytest.mark.asyncio
async def test_delete_product(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-delete")
    pid = (await _create(client, headers))["id"]

    resp = await client.delete(f"/v1/products/{pid}", headers=headers)
    assert resp.status_code == 204
    resp = await client.get(f"/v1/products/{pid}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_product_in_order_conflicts(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-delete-used")
    pid = (await _create(client, headers))["id"]
    resp = await client.post("/v1/orders", json={"items": [{"product_id": pid}]}, headers=headers)
    assert resp.status_code == 201

    resp = await client.delete(f"/v1/products/{pid}", headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_import_products_rejects_duplicate_names(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-import")
    await _create(client, headers, name="Latte")

    resp = await client.post("/v1/products/import", json={"products": [
        {"name": "latte", "category": "Coffee", "price": 4, "cost": 1},
        {"name": "Mocha", "category": "Coffee", "price": 5, "cost": 1.5},
        {"name": "Cheap", "category": "Coffee", "price": "abc", "cost": 1},
    ]}, headers=headers)
    data = resp.json()
    assert data["success"] == 1
    assert data["failed"] == 2
    assert "latte: Product already exists" in data["errors"]


@pytest.mark.asyncio
async def test_import_products_csv(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-csv")
    csv_body = (
        b"name,category,price,cost,stock\n"
        b"Espresso,Coffee,3.00,0.90,40\n"
        b"\"Pain au chocolat\",Pastry,3.20,1.10,\n"
    )
    resp = await client.post(
        "/v1/products/import/csv",
        files={"file": ("menu.csv", csv_body, "text/csv")},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["success"] == 2

    resp = await client.get("/v1/products?category=Pastry", headers=headers)
    [pastry] = resp.json()
    assert pastry["name"] == "Pain au chocolat"
    assert pastry["stock"] == 0


@pytest.mark.asyncio
async def test_clear_products(client: AsyncClient):
    headers = await _bootstrap(client, slug="prod-clear")
    pid = (await _create(client, headers))["id"]
    await client.post("/v1/orders", json={"items": [{"product_id": pid, "quantity": 2}]}, headers=headers)

    resp = await client.delete("/v1/products/clear", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["count"] == 1

    resp = await client.get("/v1/products", headers=headers)
    assert resp.json() == []
