from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from consignment.app.models import HELD_STATUSES, InstallmentStatus, ItemStatus
from consignment.app.services.filters import ReportFilters
from consignment.app.services.ranges import (
    ZERO,
    MoneyRange,
    money,
    profit_range,
    sum_ranges,
)
from consignment.app.services.transactions import TransactionReader


def get_dashboard_metrics(
    db: Session, filters: ReportFilters | None = None,
) -> dict[str, object]:
    """All-time snapshot for the dashboard header cards."""
    filters = filters or ReportFilters()
    reader = TransactionReader(db)

    items = reader.read_items(filters)
    payments = reader.read_payments(None, filters)
    expenses = reader.read_expenses(None, filters)
    installments = reader.read_installments(None, filters)

    paid_to_vendor: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for payout in reader.read_payouts(None, filters):
        paid_to_vendor[payout.item_id] += payout.amount

    sold = [i for i in items if i.status == ItemStatus.SOLD]
    held = [i for i in items if i.status in HELD_STATUSES]

    # What is still owed to vendors for sold items, never below zero per item
    owed = [
        i.cost.subtract(MoneyRange.point(paid_to_vendor[i.id])).clamp_non_negative()
        for i in sold
    ]

    total_revenue = sum((p.amount for p in payments), ZERO)
    total_expenses = sum((e.amount for e in expenses), ZERO)
    net_profit = profit_range(total_revenue, sum_ranges(i.cost for i in sold), total_expenses)

    # items without any recorded cost bound are left out
    costed = [i for i in items if i.cost_recorded]
    if costed:
        cost_range = MoneyRange(
            min(i.cost.min for i in costed), max(i.cost.max for i in costed),
        )
    else:
        cost_range = MoneyRange.zero()

    incoming = sum(
        (i.remaining for i in installments if i.status == InstallmentStatus.PENDING),
        ZERO,
    )

    return {
        "total_revenue": money(total_revenue),
        "active_items": len(held),
        "pending_payouts": sum_ranges(owed).to_dict(),
        "upcoming_payouts": sum(1 for r in owed if r.max > ZERO),
        "net_profit": net_profit.to_dict(),
        "incoming_payments": money(incoming),
        "cost_range": cost_range.to_dict(),
        "inventory_value_range": sum_ranges(i.cost for i in held).to_dict(),
    }
