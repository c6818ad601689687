"""Product CRUD + bulk import — all queries scoped to tenant_id."""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy import delete, func
from sqlmodel import select

from app.api.caching import cached_response, invalidate_tenant
from app.api.deps import Auth, Cache, Session
from app.api.imports import ClearResult, ImportResult, read_csv_upload
from app.core.config import get_settings
from app.models.order import OrderItem
from app.models.product import Product, ProductCreate, ProductRead, ProductUpdate
from app.services.csv_import import PRODUCT_COLUMNS, validate_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

settings = get_settings()

_AFFECTED_PATHS = ("/v1/products", "/v1/stats")


class ProductImportRequest(BaseModel):
    products: list[dict[str, Any]] = Field(min_length=1)


# ── Helpers ───────────────────────────────────────────────────

def _to_read(p: Product) -> ProductRead:
    return ProductRead(
        id=p.id,
        tenant_id=p.tenant_id,
        name=p.name,
        description=p.description,
        category=p.category,
        price=p.price,
        cost=p.cost,
        stock=p.stock,
        low_stock=p.stock <= settings.low_stock_threshold,
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


async def _get_or_404(
    product_id: uuid.UUID,
    tenant_id: uuid.UUID,
    session,
) -> Product:
    stmt = select(Product).where(
        Product.id == product_id,
        Product.tenant_id == tenant_id,
    )
    result = await session.execute(stmt)
    product = result.scalar_one_or_none()
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


async def _name_taken(name: str, tenant_id: uuid.UUID, session) -> bool:
    stmt = select(Product.id).where(
        Product.tenant_id == tenant_id,
        func.lower(Product.name) == name.lower(),
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def _import_products(
    rows: list[ProductCreate],
    errors: list[str],
    tenant_id: uuid.UUID,
    session,
) -> ImportResult:
    success = 0
    failed = len(errors)
    seen: set[str] = set()

    for row in rows:
        name = row.name.lower()
        if name in seen or await _name_taken(row.name, tenant_id, session):
            failed += 1
            errors.append(f"{row.name}: Product already exists")
            continue
        seen.add(name)
        session.add(Product(tenant_id=tenant_id, **row.model_dump()))
        success += 1

    await session.commit()
    logger.info("Product import for tenant %s: %d ok, %d failed", tenant_id, success, failed)
    return ImportResult(
        message=f"Imported {success} products. {failed} failed.",
        success=success,
        failed=failed,
        errors=errors,
    )


# ── Routes ───────────────────────────────────────────────────

@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ProductRead:
    product = Product(tenant_id=auth.tenant_id, **body.model_dump())
    session.add(product)
    await session.commit()
    await session.refresh(product)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return _to_read(product)


@router.get("", response_model=list[ProductRead])
async def list_products(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
    category: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[ProductRead]:
    async def _load() -> list[ProductRead]:
        stmt = select(Product).where(Product.tenant_id == auth.tenant_id)
        if category is not None:
            stmt = stmt.where(Product.category == category)
        stmt = (
            stmt.order_by(Product.created_at.desc())  # type: ignore[union-attr]
            .limit(max(1, min(limit, 500)))
            .offset(max(0, offset))
        )
        result = await session.execute(stmt)
        return [_to_read(p) for p in result.scalars().all()]

    return await cached_response(request, response, cache, auth.tenant_id, _load)


@router.post("/import", response_model=ImportResult)
async def import_products(
    body: ProductImportRequest,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ImportResult:
    valid, errors = validate_rows(body.products, ProductCreate)
    result = await _import_products(valid, errors, auth.tenant_id, session)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return result


@router.post("/import/csv", response_model=ImportResult)
async def import_products_csv(
    file: UploadFile,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ImportResult:
    """Bulk import an uploaded CSV (columns: name, category, price, cost, stock, description)."""
    rows = await read_csv_upload(file, PRODUCT_COLUMNS)
    valid, errors = validate_rows(rows, ProductCreate)
    result = await _import_products(valid, errors, auth.tenant_id, session)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return result


@router.delete("/clear", response_model=ClearResult)
async def clear_products(
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ClearResult:
    """Delete ALL products of the tenant and the order lines that reference them."""
    tid = auth.tenant_id
    await session.execute(delete(OrderItem).where(OrderItem.tenant_id == tid))
    result = await session.execute(delete(Product).where(Product.tenant_id == tid))
    await session.commit()

    invalidate_tenant(cache, tid)
    count = result.rowcount or 0
    return ClearResult(success=True, message=f"Deleted {count} products", count=count)


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: uuid.UUID,
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ProductRead:
    async def _load() -> ProductRead:
        return _to_read(await _get_or_404(product_id, auth.tenant_id, session))

    return await cached_response(request, response, cache, auth.tenant_id, _load)


@router.patch("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: uuid.UUID,
    body: ProductUpdate,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ProductRead:
    product = await _get_or_404(product_id, auth.tenant_id, session)

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(product, field, value)

    product.touch()
    session.add(product)
    await session.commit()
    await session.refresh(product)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return _to_read(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: uuid.UUID,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> None:
    product = await _get_or_404(product_id, auth.tenant_id, session)

    in_use = await session.execute(
        select(func.count()).select_from(OrderItem).where(OrderItem.product_id == product.id)
    )
    if in_use.scalar_one():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product appears in recorded orders; clear or delete those orders first",
        )

    await session.delete(product)
    await session.commit()
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
