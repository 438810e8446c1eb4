"""Per-item profitability for items sold in a window."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from consignment.app.core.config import settings
from consignment.app.core.errors import InvalidRangeError
from consignment.app.services.aggregates import load_items, sold_item_ids
from consignment.app.services.filters import (
    ReportFilters,
    make_window,
    parse_profit_bound,
)
from consignment.app.services.ranges import (
    ZERO,
    ProfitBound,
    money,
    percentage,
    profit_range,
)
from consignment.app.services.transactions import TransactionReader

logger = logging.getLogger(__name__)


def get_item_profitability(
    db: Session,
    start_date: date | None,
    end_date: date | None,
    filters: ReportFilters | None = None,
    profit_bound: str | ProfitBound | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> dict[str, object]:
    """Items whose first payment falls in the window, most profitable first.

    Revenue is every in-window payment for the item; profit also deducts the
    item's own expenses incurred in the window.
    """
    window = make_window(start_date, end_date)
    bound = parse_profit_bound(profit_bound)
    limit = settings.DEFAULT_PAGE_SIZE if limit is None else limit
    if not 1 <= limit <= settings.MAX_PAGE_SIZE:
        raise InvalidRangeError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")
    if offset < 0:
        raise InvalidRangeError("offset must not be negative")
    filters = filters or ReportFilters()
    reader = TransactionReader(db)

    items_by_id = load_items(reader, filters)
    payments = reader.read_payments(window, filters)
    revenue: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for p in payments:
        revenue[p.item_id] += p.amount
    expenses: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for e in reader.read_expenses(window, filters):
        if e.item_id is not None:
            expenses[e.item_id] += e.amount

    rows = []
    for item_id in sold_item_ids(payments, items_by_id):
        item = items_by_id[item_id]
        profit = profit_range(revenue[item_id], item.cost, expenses[item_id])
        resolved = profit.resolve(bound)
        sold_on = item.first_paid_at.date()  # type: ignore[union-attr]
        acquired = item.acquired_on
        rows.append((resolved, item.title, str(item.id), {
            "item_id": str(item.id),
            "title": item.title,
            "vendor_name": item.vendor.name,
            "brand_name": item.brand.name if item.brand else None,
            "status": item.status.value,
            "revenue": money(revenue[item_id]),
            "cost_range": item.cost.to_dict(),
            "expenses": money(expenses[item_id]),
            "profit_range": profit.to_dict(),
            "profit": money(resolved),
            "margin": money(percentage(resolved, revenue[item_id])),
            "sold_date": sold_on.isoformat(),
            "days_to_sell": max(0, (sold_on - acquired).days) if acquired else None,
        }))

    rows.sort(key=lambda r: (-r[0], r[1], r[2]))
    page = [r[3] for r in rows[offset:offset + limit]]
    logger.debug("item profitability: %d items, page of %d", len(rows), len(page))

    return {
        **window.to_dict(),
        "profit_bound": bound.value,
        "total_count": len(rows),
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(page) < len(rows),
        "items": page,
    }
