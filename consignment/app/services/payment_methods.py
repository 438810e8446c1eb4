from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from consignment.app.services.filters import ReportFilters, make_window
from consignment.app.services.ranges import (
    ZERO,
    money,
    percentage,
    percentage_change,
    safe_divide,
)
from consignment.app.services.transactions import PaymentRecord, TransactionReader


def _totals_by_method(payments: list[PaymentRecord]) -> dict[str, tuple[int, Decimal]]:
    counts: dict[str, int] = defaultdict(int)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for p in payments:
        counts[p.method] += 1
        totals[p.method] += p.amount
    return {method: (counts[method], totals[method]) for method in counts}


def get_payment_method_breakdown(
    db: Session,
    start_date: date | None,
    end_date: date | None,
    filters: ReportFilters | None = None,
) -> dict[str, object]:
    """Payment volume per method, with share of window volume and trend."""
    window = make_window(start_date, end_date)
    filters = filters or ReportFilters()
    reader = TransactionReader(db)

    current = _totals_by_method(reader.read_payments(window, filters))
    previous = _totals_by_method(reader.read_payments(window.previous(), filters))
    volume = sum((total for _, total in current.values()), ZERO)

    methods = [
        {
            "payment_method": method,
            "transaction_count": count,
            "total_amount": money(total),
            "average_amount": money(safe_divide(total, count)),
            "percentage": money(percentage(total, volume)),
            "change": money(
                percentage_change(total, previous.get(method, (0, ZERO))[1])
            ),
        }
        for method, (count, total) in sorted(
            current.items(), key=lambda kv: (-kv[1][1], kv[0])
        )
    ]

    return {
        **window.to_dict(),
        "total_amount": money(volume),
        "transaction_count": sum(count for count, _ in current.values()),
        "methods": methods,
    }
