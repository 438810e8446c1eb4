"""Building blocks shared by every report.

The sale date of an item is the timestamp of its first recorded payment; the
item's cost is charged to whichever period contains that payment. Later
installments add revenue to their own periods but no further cost.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from consignment.app.services.filters import DateWindow, ReportFilters
from consignment.app.services.ranges import (
    ZERO,
    MoneyRange,
    profit_range,
    sum_ranges,
)
from consignment.app.services.transactions import (
    ExpenseRecord,
    ItemRecord,
    PaymentRecord,
    TransactionReader,
)

UNASSIGNED_NAME = "Unassigned"


@dataclass(frozen=True)
class PeriodTotals:
    revenue: Decimal
    expenses: Decimal
    cost_of_goods: MoneyRange
    payment_count: int
    items_paid: int
    items_sold: int

    @property
    def profit(self) -> MoneyRange:
        return profit_range(self.revenue, self.cost_of_goods, self.expenses)


EMPTY_TOTALS = PeriodTotals(
    revenue=ZERO,
    expenses=ZERO,
    cost_of_goods=MoneyRange.zero(),
    payment_count=0,
    items_paid=0,
    items_sold=0,
)


def is_first_payment(payment: PaymentRecord, items_by_id: dict[UUID, ItemRecord]) -> bool:
    item = items_by_id.get(payment.item_id)
    return item is not None and item.first_payment_id == payment.id


def sold_item_ids(
    payments: Iterable[PaymentRecord],
    items_by_id: dict[UUID, ItemRecord],
) -> list[UUID]:
    """Items whose first-ever payment is one of *payments*.

    Filtering payments (by client, say) never moves an item's sale: if the
    first payment was filtered out, the item is not sold here.
    """
    return [p.item_id for p in payments if is_first_payment(p, items_by_id)]


def period_totals(
    payments: Sequence[PaymentRecord],
    expenses: Sequence[ExpenseRecord],
    items_by_id: dict[UUID, ItemRecord],
) -> PeriodTotals:
    """Totals for records that already lie inside one period."""
    sold = sold_item_ids(payments, items_by_id)
    return PeriodTotals(
        revenue=sum((p.amount for p in payments), ZERO),
        expenses=sum((e.amount for e in expenses), ZERO),
        cost_of_goods=sum_ranges(items_by_id[i].cost for i in sold),
        payment_count=len(payments),
        items_paid=len({p.item_id for p in payments}),
        items_sold=len(sold),
    )


def load_items(reader: TransactionReader, filters: ReportFilters) -> dict[UUID, ItemRecord]:
    return {item.id: item for item in reader.read_items(filters)}


def load_period_totals(
    reader: TransactionReader,
    window: DateWindow,
    filters: ReportFilters,
    items_by_id: dict[UUID, ItemRecord],
) -> PeriodTotals:
    return period_totals(
        reader.read_payments(window, filters),
        reader.read_expenses(window, filters),
        items_by_id,
    )


def rank_key(revenue: Decimal, ref_name: str, ref_id: UUID | None) -> tuple:
    """Revenue descending, then name, then id."""
    return (-revenue, ref_name, str(ref_id) if ref_id is not None else "")
