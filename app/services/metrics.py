"""Sales aggregation: per-entity totals, margins, rankings and category rollups.

The engine works on plain records so it can measure products (price and
cost known) or customers (neither known) with the same code. Callers map
ORM rows to :class:`EntityRecord` / :class:`LineItem` first.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

EntityId = uuid.UUID | str

UNCATEGORIZED = "Uncategorized"

_ZERO = Decimal("0")
_ONE_PLACE = Decimal("0.1")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert via ``str`` so float inputs keep their printed value (4.5 -> 4.5)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class LineItem:
    entity_id: EntityId
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class EntityRecord:
    entity_id: EntityId
    price: Decimal | None = None
    cost: Decimal | None = None
    category: str | None = None
    name: str = ""


@dataclass(frozen=True)
class EntityMetrics:
    entity_id: EntityId
    name: str
    category: str | None
    total_sold: int
    total_revenue: Decimal
    profit_per_unit: Decimal | None
    margin_percent: Decimal | None


@dataclass(frozen=True)
class CategoryRollup:
    category: str
    count: int
    revenue: Decimal


@dataclass(frozen=True)
class SalesReport:
    metrics: list[EntityMetrics]
    top_sellers: list[EntityMetrics]
    slow_movers: list[EntityMetrics]
    categories: list[CategoryRollup]
    total_revenue: Decimal = field(default=_ZERO)


def margin_percent(price: Decimal | None, cost: Decimal | None) -> Decimal | None:
    """Margin as a percentage of price, one decimal place.

    Rounds half away from zero, so -12.25 becomes -12.3. A non-positive
    price yields 0 rather than dividing by zero.
    """
    if price is None or cost is None:
        return None
    if price <= 0:
        return _ZERO
    return ((price - cost) / price * 100).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


def compute_entity_metrics(
    entities: Sequence[EntityRecord],
    line_items: Iterable[LineItem],
) -> list[EntityMetrics]:
    """One :class:`EntityMetrics` per entity, in input order.

    Line items referencing an id that is not in ``entities`` cannot be
    attributed and are skipped.
    """
    known = {e.entity_id for e in entities}
    totals: dict[EntityId, tuple[int, Decimal]] = {}
    for item in line_items:
        if item.entity_id not in known:
            continue
        sold, revenue = totals.get(item.entity_id, (0, _ZERO))
        totals[item.entity_id] = (
            sold + item.quantity,
            revenue + item.quantity * item.unit_price,
        )

    result = []
    for entity in entities:
        sold, revenue = totals.get(entity.entity_id, (0, _ZERO))
        profit = None
        if entity.price is not None and entity.cost is not None:
            profit = entity.price - entity.cost
        result.append(EntityMetrics(
            entity_id=entity.entity_id,
            name=entity.name,
            category=entity.category,
            total_sold=sold,
            total_revenue=revenue,
            profit_per_unit=profit,
            margin_percent=margin_percent(entity.price, entity.cost),
        ))
    return result


def rank_by_sold(metrics: Sequence[EntityMetrics]) -> list[EntityMetrics]:
    """Descending by units sold; ties keep their input order."""
    return sorted(metrics, key=lambda m: m.total_sold, reverse=True)


def top_sellers(metrics: Sequence[EntityMetrics], n: int = 3) -> list[EntityMetrics]:
    return rank_by_sold(metrics)[:n] if n > 0 else []


def slow_movers(metrics: Sequence[EntityMetrics], n: int = 3) -> list[EntityMetrics]:
    # May overlap with top_sellers when there are fewer than 2n entities.
    return rank_by_sold(metrics)[-n:] if n > 0 else []


def category_rollup(metrics: Iterable[EntityMetrics]) -> list[CategoryRollup]:
    """Entity count and revenue per category, in first-seen order."""
    groups: dict[str, tuple[int, Decimal]] = {}
    for m in metrics:
        label = m.category or UNCATEGORIZED
        count, revenue = groups.get(label, (0, _ZERO))
        groups[label] = (count + 1, revenue + m.total_revenue)
    return [
        CategoryRollup(category=label, count=count, revenue=revenue)
        for label, (count, revenue) in groups.items()
    ]


def build_sales_report(
    entities: Sequence[EntityRecord],
    line_items: Iterable[LineItem],
    top_n: int = 3,
) -> SalesReport:
    metrics = compute_entity_metrics(entities, line_items)
    return SalesReport(
        metrics=metrics,
        top_sellers=top_sellers(metrics, top_n),
        slow_movers=slow_movers(metrics, top_n),
        categories=category_rollup(metrics),
        total_revenue=sum((m.total_revenue for m in metrics), _ZERO),
    )
