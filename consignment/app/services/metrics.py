"""KPI snapshot for the reports page."""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from consignment.app.models import InstallmentStatus, ItemStatus
from consignment.app.services.aggregates import (
    load_items,
    load_period_totals,
    period_totals,
    sold_item_ids,
)
from consignment.app.services.filters import ReportFilters, make_window
from consignment.app.services.ranges import (
    ZERO,
    money,
    percentage,
    percentage_change,
    safe_divide,
)
from consignment.app.services.transactions import (
    DimensionRef,
    ItemRecord,
    PaymentRecord,
    TransactionReader,
)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def top_dimension(
    payments: Sequence[PaymentRecord],
    items_by_id: dict[UUID, ItemRecord],
    pick: Callable[[ItemRecord], DimensionRef | None],
) -> DimensionRef | None:
    """Dimension value with the highest revenue.

    Ties go to the earliest-created value, then the lowest id.
    """
    revenue: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    refs: dict[UUID, DimensionRef] = {}
    for p in payments:
        item = items_by_id.get(p.item_id)
        ref = pick(item) if item is not None else None
        if ref is None:
            continue
        revenue[ref.id] += p.amount
        refs[ref.id] = ref
    if not revenue:
        return None
    best = min(
        revenue,
        key=lambda rid: (
            -revenue[rid],
            refs[rid].created_at or _FAR_FUTURE,
            str(rid),
        ),
    )
    return refs[best]


def get_report_kpis(
    db: Session,
    start_date: date | None,
    end_date: date | None,
    filters: ReportFilters | None = None,
    today: date | None = None,
) -> dict[str, object]:
    window = make_window(start_date, end_date)
    filters = filters or ReportFilters()
    today = today or date.today()
    reader = TransactionReader(db)

    items_by_id = load_items(reader, filters)
    payments = reader.read_payments(window, filters)
    expenses = reader.read_expenses(window, filters)
    current = period_totals(payments, expenses, items_by_id)
    previous = load_period_totals(reader, window.previous(), filters, items_by_id)

    profit = current.profit
    previous_profit = previous.profit

    # ── Installments due in the window ───────────────────────────────────
    installments = reader.read_installments(window, filters)
    pending_payments = sum(
        1 for i in installments
        if i.status == InstallmentStatus.PENDING and i.due_date > today
    )
    overdue_payments = sum(
        1 for i in installments
        if i.status == InstallmentStatus.PENDING and i.due_date <= today
    )

    # ── Days to sell (items whose sale falls in the window) ──────────────
    sell_days: list[int] = []
    for item_id in sold_item_ids(payments, items_by_id):
        item = items_by_id[item_id]
        acquired = item.acquired_on
        if acquired is not None and item.first_paid_at is not None:
            sell_days.append(max(0, (item.first_paid_at.date() - acquired).days))
    average_days_to_sell = safe_divide(Decimal(sum(sell_days)), len(sell_days))

    items_by_status = {status.value: 0 for status in ItemStatus}
    for item in items_by_id.values():
        items_by_status[item.status.value] += 1

    top_brand = top_dimension(payments, items_by_id, lambda i: i.brand)
    top_vendor = top_dimension(payments, items_by_id, lambda i: i.vendor)

    revenue = current.revenue
    return {
        **window.to_dict(),
        "total_revenue": money(revenue),
        "total_expenses": money(current.expenses),
        "cost_of_goods": current.cost_of_goods.to_dict(),
        "total_profit_range": profit.to_dict(),
        "items_sold": current.items_paid,
        "payment_count": current.payment_count,
        "unique_clients": len({p.client.id for p in payments}),
        "average_order_value": money(safe_divide(revenue, current.payment_count)),
        "gross_margin": money(percentage(revenue - current.cost_of_goods.midpoint, revenue)),
        "net_margin": money(percentage(profit.midpoint, revenue)),
        "average_days_to_sell": money(average_days_to_sell),
        "items_by_status": items_by_status,
        "pending_payments": pending_payments,
        "overdue_payments": overdue_payments,
        "revenue_change": money(percentage_change(revenue, previous.revenue)),
        "profit_change": money(
            percentage_change(profit.midpoint, previous_profit.midpoint)
        ),
        "top_performing_brand": top_brand.name if top_brand else None,
        "top_performing_vendor": top_vendor.name if top_vendor else None,
    }
