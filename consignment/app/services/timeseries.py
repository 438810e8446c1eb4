"""Calendar-bucketed time series for the reports charts.

Every bucket that overlaps the requested window is emitted, including
empty ones, so charts never have gaps. Weeks start on Monday, months are
calendar months. A bucket's ``period`` is the ISO date of its first day;
``period_start`` / ``period_end`` are clipped to the window.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from consignment.app.services.aggregates import EMPTY_TOTALS, load_items, period_totals
from consignment.app.services.filters import (
    DateWindow,
    Granularity,
    ReportFilters,
    SeriesMetric,
    make_window,
    parse_granularity,
    parse_metrics,
    parse_profit_bound,
)
from consignment.app.services.ranges import ProfitBound, money
from consignment.app.services.transactions import (
    ExpenseRecord,
    PaymentRecord,
    TransactionReader,
)

WEEK_START = 0  # Monday

_OUTPUT_KEYS = {
    SeriesMetric.REVENUE: "revenue",
    SeriesMetric.PROFIT: "profit",
    SeriesMetric.ITEMS_SOLD: "items_sold",
    SeriesMetric.EXPENSES: "expenses",
    SeriesMetric.PAYMENTS: "payments",
}


def bucket_start(day: date, granularity: Granularity) -> date:
    if granularity == Granularity.WEEK:
        return day - timedelta(days=(day.weekday() - WEEK_START) % 7)
    if granularity == Granularity.MONTH:
        return day.replace(day=1)
    return day


def next_bucket_start(start: date, granularity: Granularity) -> date:
    if granularity == Granularity.WEEK:
        return start + timedelta(days=7)
    if granularity == Granularity.MONTH:
        if start.month == 12:
            return date(start.year + 1, 1, 1)
        return date(start.year, start.month + 1, 1)
    return start + timedelta(days=1)


def period_buckets(window: DateWindow, granularity: Granularity) -> list[tuple[date, DateWindow]]:
    """Ordered ``(bucket key, clipped window)`` pairs covering *window*."""
    buckets: list[tuple[date, DateWindow]] = []
    key = bucket_start(window.start, granularity)
    while key <= window.end:
        following = next_bucket_start(key, granularity)
        clipped = DateWindow(
            max(key, window.start),
            min(following - timedelta(days=1), window.end),
        )
        buckets.append((key, clipped))
        key = following
    return buckets


def _group_by_bucket(
    records: Iterable[PaymentRecord] | Iterable[ExpenseRecord],
    granularity: Granularity,
) -> dict[date, list]:
    grouped: dict[date, list] = defaultdict(list)
    for r in records:
        moment = r.paid_at if isinstance(r, PaymentRecord) else r.incurred_at
        grouped[bucket_start(moment.date(), granularity)].append(r)
    return grouped


def build_time_series(
    db: Session,
    start_date: date | None,
    end_date: date | None,
    granularity: str | Granularity | None = None,
    metrics: Iterable[str] | None = None,
    filters: ReportFilters | None = None,
    profit_bound: str | ProfitBound | None = None,
) -> dict[str, object]:
    """One point per bucket with the requested metrics.

    ``profit`` is the bucket's profit range reduced to one number with
    *profit_bound* (midpoint unless the caller asks for ``min``/``max``);
    the full range is returned alongside as ``profit_range``.
    """
    window = make_window(start_date, end_date)
    gran = parse_granularity(granularity)
    requested = parse_metrics(metrics)
    bound = parse_profit_bound(profit_bound)
    filters = filters or ReportFilters()
    reader = TransactionReader(db)

    needs_items = SeriesMetric.PROFIT in requested or SeriesMetric.ITEMS_SOLD in requested
    items_by_id = load_items(reader, filters) if needs_items else {}
    payments = _group_by_bucket(reader.read_payments(window, filters), gran)
    expenses = _group_by_bucket(reader.read_expenses(window, filters), gran)

    points: list[dict[str, object]] = []
    for key, bucket in period_buckets(window, gran):
        bucket_payments = payments.get(key, [])
        bucket_expenses = expenses.get(key, [])
        if bucket_payments or bucket_expenses:
            totals = period_totals(bucket_payments, bucket_expenses, items_by_id)
        else:
            totals = EMPTY_TOTALS

        point: dict[str, object] = {
            "period": key.isoformat(),
            "period_start": bucket.start.isoformat(),
            "period_end": bucket.end.isoformat(),
        }
        for metric in requested:
            name = _OUTPUT_KEYS[metric]
            if metric == SeriesMetric.REVENUE:
                point[name] = money(totals.revenue)
            elif metric == SeriesMetric.EXPENSES:
                point[name] = money(totals.expenses)
            elif metric == SeriesMetric.ITEMS_SOLD:
                point[name] = totals.items_sold
            elif metric == SeriesMetric.PAYMENTS:
                point[name] = totals.payment_count
            else:
                point[name] = money(totals.profit.resolve(bound))
                point["profit_range"] = totals.profit.to_dict()
        points.append(point)

    return {
        **window.to_dict(),
        "granularity": gran.value,
        "metrics": [m.value for m in requested],
        "profit_bound": bound.value,
        "points": points,
    }
