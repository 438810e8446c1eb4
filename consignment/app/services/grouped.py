"""Performance rolled up by vendor, brand, category or client."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from consignment.app.services.aggregates import (
    UNASSIGNED_NAME,
    is_first_payment,
    load_items,
    rank_key,
)
from consignment.app.services.filters import (
    GroupBy,
    ReportFilters,
    make_window,
    parse_group_by,
    parse_profit_bound,
)
from consignment.app.services.ranges import (
    ZERO,
    MoneyRange,
    ProfitBound,
    money,
    percentage,
    percentage_change,
    profit_range,
    safe_divide,
)
from consignment.app.services.transactions import (
    DimensionRef,
    ItemRecord,
    PaymentRecord,
    TransactionReader,
)


@dataclass
class _Group:
    ref: DimensionRef | None
    revenue: Decimal = ZERO
    expenses: Decimal = ZERO
    cost: MoneyRange = field(default_factory=MoneyRange.zero)
    payment_count: int = 0
    item_ids: set[UUID] = field(default_factory=set)

    @property
    def name(self) -> str:
        return self.ref.name if self.ref else UNASSIGNED_NAME

    @property
    def id(self) -> UUID | None:
        return self.ref.id if self.ref else None


def _item_dimension(item: ItemRecord, dimension: GroupBy) -> DimensionRef | None:
    if dimension == GroupBy.VENDOR:
        return item.vendor
    if dimension == GroupBy.BRAND:
        return item.brand
    return item.category


def _payment_dimension(
    payment: PaymentRecord,
    items_by_id: dict[UUID, ItemRecord],
    dimension: GroupBy,
) -> DimensionRef | None:
    if dimension == GroupBy.CLIENT:
        return payment.client
    return _item_dimension(items_by_id[payment.item_id], dimension)


def _revenue_by_key(
    payments: list[PaymentRecord],
    items_by_id: dict[UUID, ItemRecord],
    dimension: GroupBy,
) -> dict[UUID | None, Decimal]:
    totals: dict[UUID | None, Decimal] = defaultdict(lambda: ZERO)
    for p in payments:
        if p.item_id not in items_by_id:
            continue
        ref = _payment_dimension(p, items_by_id, dimension)
        totals[ref.id if ref else None] += p.amount
    return totals


def get_grouped_performance(
    db: Session,
    start_date: date | None,
    end_date: date | None,
    group_by: str | GroupBy,
    filters: ReportFilters | None = None,
    profit_bound: str | ProfitBound | None = None,
) -> dict[str, object]:
    """Per-group revenue, profit range, margin, item count and trend.

    An item's cost is charged to the group of its first-ever payment when
    that payment is among the window's (filtered) payments. Item expenses go
    to the item's group; for clients, to the client who paid first. A group
    therefore reports the same profit whether or not the other groups are
    filtered out. ``margin`` uses the profit resolved with *profit_bound*
    (midpoint by default). Groups without payments in the window are omitted.
    """
    window = make_window(start_date, end_date)
    dimension = parse_group_by(group_by)
    bound = parse_profit_bound(profit_bound)
    filters = filters or ReportFilters()
    reader = TransactionReader(db)

    items_by_id = load_items(reader, filters)
    payments = [p for p in reader.read_payments(window, filters) if p.item_id in items_by_id]
    expenses = reader.read_expenses(window, filters)
    previous = _revenue_by_key(
        reader.read_payments(window.previous(), filters), items_by_id, dimension,
    )

    groups: dict[UUID | None, _Group] = {}
    for p in payments:
        ref = _payment_dimension(p, items_by_id, dimension)
        group = groups.setdefault(ref.id if ref else None, _Group(ref=ref))
        group.revenue += p.amount
        group.payment_count += 1
        group.item_ids.add(p.item_id)
        if is_first_payment(p, items_by_id):
            group.cost = group.cost.add(items_by_id[p.item_id].cost)

    for e in expenses:
        item = items_by_id.get(e.item_id) if e.item_id is not None else None
        if item is None:
            continue
        if dimension == GroupBy.CLIENT:
            key = item.first_client_id
        else:
            ref = _item_dimension(item, dimension)
            key = ref.id if ref else None
        if key in groups:
            groups[key].expenses += e.amount

    ranked = sorted(groups.values(), key=lambda g: rank_key(g.revenue, g.name, g.id))

    rows: list[dict[str, object]] = []
    for g in ranked:
        profit = profit_range(g.revenue, g.cost, g.expenses)
        resolved = profit.resolve(bound)
        rows.append({
            "group_id": str(g.id) if g.id else None,
            "group_name": g.name,
            "revenue": money(g.revenue),
            "profit_range": profit.to_dict(),
            "profit": money(resolved),
            "margin": money(percentage(resolved, g.revenue)),
            "item_count": len(g.item_ids),
            "payment_count": g.payment_count,
            "average_order_value": money(safe_divide(g.revenue, g.payment_count)),
            "change": money(percentage_change(g.revenue, previous.get(g.id, ZERO))),
        })

    return {
        **window.to_dict(),
        "group_by": dimension.value,
        "profit_bound": bound.value,
        "groups": rows,
    }
