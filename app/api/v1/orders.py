"""Order capture — records line items and keeps customer / stock totals current."""

import logging
import math
import uuid

from fastapi import APIRouter, HTTPException, Request, Response, status
from sqlalchemy import delete
from sqlmodel import select

from app.api.caching import cached_response, invalidate_tenant
from app.api.deps import Auth, Cache, Session
from app.api.imports import ClearResult
from app.models.base import utcnow
from app.models.customer import Customer
from app.models.order import Order, OrderCreate, OrderItem, OrderItemRead, OrderRead
from app.models.product import Product
from app.services.metrics import to_decimal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


# ── Helpers ───────────────────────────────────────────────────

def _to_read(order: Order, items: list[OrderItem]) -> OrderRead:
    return OrderRead(
        id=order.id,
        tenant_id=order.tenant_id,
        customer_id=order.customer_id,
        total=order.total,
        item_count=order.item_count,
        items=[OrderItemRead.model_validate(i) for i in items],
        created_at=order.created_at,
    )


async def _get_or_404(order_id: uuid.UUID, tenant_id: uuid.UUID, session) -> Order:
    stmt = select(Order).where(Order.id == order_id, Order.tenant_id == tenant_id)
    result = await session.execute(stmt)
    order = result.scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


async def _items_for(order_ids: list[uuid.UUID], session) -> dict[uuid.UUID, list[OrderItem]]:
    grouped: dict[uuid.UUID, list[OrderItem]] = {oid: [] for oid in order_ids}
    if not order_ids:
        return grouped
    result = await session.execute(
        select(OrderItem).where(OrderItem.order_id.in_(order_ids))  # type: ignore[attr-defined]
    )
    for item in result.scalars().all():
        grouped[item.order_id].append(item)
    return grouped


async def _load_products(
    product_ids: set[uuid.UUID],
    tenant_id: uuid.UUID,
    session,
) -> dict[uuid.UUID, Product]:
    result = await session.execute(
        select(Product).where(
            Product.tenant_id == tenant_id,
            Product.id.in_(product_ids),  # type: ignore[attr-defined]
        )
    )
    products = {p.id: p for p in result.scalars().all()}
    missing = product_ids - products.keys()
    if missing:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Unknown product(s): {', '.join(sorted(str(m) for m in missing))}",
        )
    return products


# ── Routes ───────────────────────────────────────────────────

@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> OrderRead:
    """Record a sale.

    Unit prices are copied from the products at order time, stock is
    decremented, and the customer's spend / visit / loyalty totals advance.
    """
    tid = auth.tenant_id

    customer = None
    if body.customer_id is not None:
        customer = await session.get(Customer, body.customer_id)
        if customer is None or customer.tenant_id != tid:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
                detail="Customer not found or belongs to a different tenant",
            )

    products = await _load_products({i.product_id for i in body.items}, tid, session)

    order = Order(tenant_id=tid, customer_id=body.customer_id)
    session.add(order)
    await session.flush()  # populate order.id

    total = to_decimal(0)
    items = []
    for line in body.items:
        product = products[line.product_id]
        item = OrderItem(
            tenant_id=tid,
            order_id=order.id,
            product_id=product.id,
            quantity=line.quantity,
            price=product.price,
        )
        session.add(item)
        items.append(item)
        total += line.quantity * to_decimal(product.price)
        product.stock = max(0, product.stock - line.quantity)
        product.touch()
        session.add(product)

    order.total = float(total)
    order.item_count = sum(i.quantity for i in items)
    session.add(order)

    if customer is not None:
        customer.total_spent = float(to_decimal(customer.total_spent) + total)
        customer.visit_count += 1
        customer.loyalty_points += math.floor(total)
        customer.last_visit = utcnow()
        customer.touch()
        session.add(customer)

    await session.commit()
    await session.refresh(order)
    for item in items:
        await session.refresh(item)

    # Orders feed customer totals, stock levels and every report
    invalidate_tenant(cache, tid)
    logger.info("Recorded order %s for tenant %s: %s", order.id, tid, total)
    return _to_read(order, items)


@router.get("", response_model=list[OrderRead])
async def list_orders(
    request: Request,
    response: Response,
    auth: Auth,
    session: Session,
    cache: Cache,
    customer_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[OrderRead]:
    async def _load() -> list[OrderRead]:
        stmt = select(Order).where(Order.tenant_id == auth.tenant_id)
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        stmt = (
            stmt.order_by(Order.created_at.desc())  # type: ignore[union-attr]
            .limit(max(1, min(limit, 500)))
            .offset(max(0, offset))
        )
        orders = list((await session.execute(stmt)).scalars().all())
        items = await _items_for([o.id for o in orders], session)
        return [_to_read(o, items[o.id]) for o in orders]

    return await cached_response(request, response, cache, auth.tenant_id, _load)


@router.delete("/clear", response_model=ClearResult)
async def clear_orders(
    auth: Auth,
    session: Session,
    cache: Cache,
) -> ClearResult:
    """Delete ALL orders of the tenant. Customer totals are left as they are."""
    tid = auth.tenant_id
    await session.execute(delete(OrderItem).where(OrderItem.tenant_id == tid))
    result = await session.execute(delete(Order).where(Order.tenant_id == tid))
    await session.commit()

    invalidate_tenant(cache, tid)
    count = result.rowcount or 0
    return ClearResult(success=True, message=f"Deleted {count} orders", count=count)


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: uuid.UUID,
    auth: Auth,
    session: Session,
) -> OrderRead:
    order = await _get_or_404(order_id, auth.tenant_id, session)
    items = await _items_for([order.id], session)
    return _to_read(order, items[order.id])


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: uuid.UUID,
    auth: Auth,
    session: Session,
    cache: Cache,
) -> None:
    order = await _get_or_404(order_id, auth.tenant_id, session)
    await session.execute(delete(OrderItem).where(OrderItem.order_id == order.id))
    await session.delete(order)
    await session.commit()
    invalidate_tenant(cache, auth.tenant_id)
