"""Customer CRUD + bulk import — all queries scoped to tenant_id."""

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
from app.models.customer import Customer, CustomerCreate, CustomerRead, CustomerUpdate
from app.models.order import Order, OrderItem
from app.services.csv_import import CUSTOMER_COLUMNS, validate_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])

# Paths whose cached responses depend on customer rows
_AFFECTED_PATHS = ("/v1/customers", "/v1/stats")


class CustomerImportRequest(BaseModel):
    customers: list[dict[str, Any]] = Field(min_length=1)


# ── Helpers ───────────────────────────────────────────────────

async def _get_or_404(
    customer_id: uuid.UUID,
    tenant_id: uuid.UUID,
    session,
) -> Customer:
    stmt = select(Customer).where(
        Customer.id == customer_id,
        Customer.tenant_id == tenant_id,
    )
    result = await session.execute(stmt)
    customer = result.scalar_one_or_none()
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


async def _email_taken(
    email: str,
    tenant_id: uuid.UUID,
    session,
    exclude_id: uuid.UUID | None = None,
) -> bool:
    stmt = select(Customer.id).where(
        Customer.tenant_id == tenant_id,
        func.lower(Customer.email) == email.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Customer.id != exclude_id)
    result = await session.execute(stmt)
    return result.first() is not None


async def _import_customers(
    rows: list[CustomerCreate],
    errors: list[str],
    tenant_id: uuid.UUID,
    session,
) -> ImportResult:
    """Insert valid rows; duplicate emails are reported, not raised.

    Imported customers start with zero stats. Recording orders fills them in.
    """
    success = 0
    failed = len(errors)
    seen: set[str] = set()

    for row in rows:
        email = row.email.lower()
        if email in seen or await _email_taken(row.email, tenant_id, session):
            failed += 1
            errors.append(f"{row.email}: Email already exists")
            continue
        seen.add(email)
        session.add(Customer(tenant_id=tenant_id, **row.model_dump()))
        success += 1

    await session.commit()
    logger.info("Customer import for tenant %s: %d ok, %d failed", tenant_id, success, failed)
    return ImportResult(
        message=f"Imported {success} customers. {failed} failed.",
        success=success,
        failed=failed,
        errors=errors,
    )


# ── Routes ───────────────────────────────────────────────────

@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(
    body: CustomerCreate,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> CustomerRead:
    if await _email_taken(body.email, auth.tenant_id, session):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Email '{body.email}' already exists",
        )

    customer = Customer(tenant_id=auth.tenant_id, **body.model_dump())
    session.add(customer)
    await session.commit()
    await session.refresh(customer)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return CustomerRead.model_validate(customer)


@router.get("", response_model=list[CustomerRead])
async def list_customers(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
    limit: int = 50,
    offset: int = 0,
) -> list[CustomerRead]:
    async def _load() -> list[CustomerRead]:
        stmt = (
            select(Customer)
            .where(Customer.tenant_id == auth.tenant_id)
            .order_by(Customer.created_at.desc())  # type: ignore[union-attr]
            .limit(max(1, min(limit, 500)))
            .offset(max(0, offset))
        )
        result = await session.execute(stmt)
        return [CustomerRead.model_validate(c) for c in result.scalars().all()]

    return await cached_response(request, response, cache, auth.tenant_id, _load)


@router.post("/import", response_model=ImportResult)
async def import_customers(
    body: CustomerImportRequest,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ImportResult:
    """Bulk import rows the dashboard already parsed client-side."""
    valid, errors = validate_rows(body.customers, CustomerCreate)
    result = await _import_customers(valid, errors, auth.tenant_id, session)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return result


@router.post("/import/csv", response_model=ImportResult)
async def import_customers_csv(
    file: UploadFile,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ImportResult:
    """Bulk import an uploaded CSV (columns: name, email, phone, address)."""
    rows = await read_csv_upload(file, CUSTOMER_COLUMNS)
    valid, errors = validate_rows(rows, CustomerCreate)
    result = await _import_customers(valid, errors, auth.tenant_id, session)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return result


@router.delete("/clear", response_model=ClearResult)
async def clear_customers(
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ClearResult:
    """Delete ALL customers of the tenant, along with their orders."""
    tid = auth.tenant_id
    owned_orders = select(Order.id).where(
        Order.tenant_id == tid,
        Order.customer_id.is_not(None),  # type: ignore[union-attr]
    )
    await session.execute(
        delete(OrderItem).where(
            OrderItem.tenant_id == tid,
            OrderItem.order_id.in_(owned_orders),  # type: ignore[attr-defined]
        )
    )
    await session.execute(
        delete(Order).where(
            Order.tenant_id == tid,
            Order.customer_id.is_not(None),  # type: ignore[union-attr]
        )
    )
    result = await session.execute(delete(Customer).where(Customer.tenant_id == tid))
    await session.commit()

    # Orders went too, so every cached view of this tenant is stale
    invalidate_tenant(cache, tid)
    count = result.rowcount or 0
    return ClearResult(success=True, message=f"Deleted {count} customers", count=count)


@router.get("/{customer_id}", response_model=CustomerRead)
async def get_customer(
    customer_id: uuid.UUID,
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> CustomerRead:
    async def _load() -> CustomerRead:
        customer = await _get_or_404(customer_id, auth.tenant_id, session)
        return CustomerRead.model_validate(customer)

    return await cached_response(request, response, cache, auth.tenant_id, _load)


@router.patch("/{customer_id}", response_model=CustomerRead)
async def update_customer(
    customer_id: uuid.UUID,
    body: CustomerUpdate,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> CustomerRead:
    customer = await _get_or_404(customer_id, auth.tenant_id, session)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("email") and await _email_taken(
        update_data["email"], auth.tenant_id, session, exclude_id=customer.id,
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Email '{update_data['email']}' already exists",
        )

    for field, value in update_data.items():
        setattr(customer, field, value)

    customer.touch()
    session.add(customer)
    await session.commit()
    await session.refresh(customer)
    invalidate_tenant(cache, auth.tenant_id, *_AFFECTED_PATHS)
    return CustomerRead.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: uuid.UUID,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> None:
    customer = await _get_or_404(customer_id, auth.tenant_id, session)

    # The orders stay in the sales history, just unlinked
    orders = await session.execute(
        select(Order).where(Order.tenant_id == auth.tenant_id, Order.customer_id == customer.id)
    )
    for order in orders.scalars().all():
        order.customer_id = None
        session.add(order)

    await session.delete(customer)
    await session.commit()
    invalidate_tenant(cache, auth.tenant_id)
