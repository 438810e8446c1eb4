from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from consignment.app.core.config import settings
from consignment.app.models import HELD_STATUSES, ItemStatus
from consignment.app.services.aggregates import UNASSIGNED_NAME
from consignment.app.services.filters import ReportFilters
from consignment.app.services.ranges import (
    HUNDRED,
    ZERO,
    MoneyRange,
    money,
    percentage,
    quantize,
    safe_divide,
    sum_ranges,
)
from consignment.app.services.transactions import ItemRecord, TransactionReader

AGING_BUCKETS = ("0-30", "31-60", "61-90", "90+")


def bucket(age_days: int) -> str:
    """Assign an aging bucket based on days held."""
    if age_days <= 30:
        return "0-30"
    elif age_days <= 60:
        return "31-60"
    elif age_days <= 90:
        return "61-90"
    else:
        return "90+"


def empty_buckets() -> dict[str, list[ItemRecord]]:
    return {name: [] for name in AGING_BUCKETS}


def age_in_days(item: ItemRecord, today: date) -> int:
    acquired = item.acquired_on
    if acquired is None:
        return 0
    return max(0, (today - acquired).days)


def bucket_percentages(counts: dict[str, int]) -> dict[str, Decimal]:
    """Share of held items per bucket, summing to exactly 100.00.

    Rounding drift lands on the last non-empty bucket. Every share is zero
    when nothing is held.
    """
    total = sum(counts.values())
    shares = {name: ZERO for name in counts}
    if total == 0:
        return shares
    non_empty = [name for name, n in counts.items() if n > 0]
    for name in non_empty[:-1]:
        shares[name] = quantize(percentage(Decimal(counts[name]), Decimal(total)))
    shares[non_empty[-1]] = HUNDRED - sum(shares.values(), ZERO)
    return shares


def _average_age(items: list[ItemRecord], today: date) -> Decimal:
    return safe_divide(Decimal(sum(age_in_days(i, today) for i in items)), len(items))


def get_inventory_health(
    db: Session,
    filters: ReportFilters | None = None,
    today: date | None = None,
) -> dict[str, object]:
    """Stock snapshot as of *today*: status mix, valuation and aging."""
    filters = filters or ReportFilters()
    today = today or date.today()
    items = TransactionReader(db).read_items(filters)
    held = [i for i in items if i.status in HELD_STATUSES]

    items_by_status = {status.value: 0 for status in ItemStatus}
    for item in items:
        items_by_status[item.status.value] += 1

    # ── Aging ────────────────────────────────────────────────────────────
    aged = empty_buckets()
    for item in held:
        aged[bucket(age_in_days(item, today))].append(item)
    shares = bucket_percentages({name: len(members) for name, members in aged.items()})
    aging = [
        {
            "bucket": name,
            "count": len(members),
            "valuation_range": sum_ranges(i.sales_price for i in members).to_dict(),
            "percentage": money(shares[name]),
        }
        for name, members in aged.items()
    ]

    # ── Categories ───────────────────────────────────────────────────────
    by_category: dict[UUID | None, list[ItemRecord]] = defaultdict(list)
    names: dict[UUID | None, str] = {None: UNASSIGNED_NAME}
    for item in held:
        key = item.category.id if item.category else None
        by_category[key].append(item)
        if item.category:
            names[key] = item.category.name
    categories = [
        {
            "category_id": str(key) if key else None,
            "category_name": names[key],
            "count": len(members),
            "valuation_range": sum_ranges(i.sales_price for i in members).to_dict(),
            "average_age_days": money(_average_age(members, today)),
        }
        for key, members in sorted(
            by_category.items(), key=lambda kv: (names[kv[0]], str(kv[0] or ""))
        )
    ]

    slow_moving = sum(1 for i in held if age_in_days(i, today) > settings.SLOW_MOVING_DAYS)
    fast_moving = sum(
        1 for i in items
        if i.status == ItemStatus.SOLD and i.acquired_on is not None
        and age_in_days(i, today) < settings.FAST_MOVING_DAYS
    )
    valuation: MoneyRange = sum_ranges(i.sales_price for i in held)

    return {
        "as_of": today.isoformat(),
        "total_items": len(items),
        "held_items": len(held),
        "items_by_status": items_by_status,
        "valuation_range": valuation.to_dict(),
        "cost_range": sum_ranges(i.cost for i in held).to_dict(),
        "average_age_days": money(_average_age(held, today)),
        "slow_moving_items": slow_moving,
        "fast_moving_items": fast_moving,
        "aging": aging,
        "categories": categories,
    }
