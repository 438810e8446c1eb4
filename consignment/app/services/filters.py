"""Report request configuration and the query conditions derived from it."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from sqlalchemy import ColumnElement

from consignment.app.core.errors import (
    InvalidGranularityError,
    InvalidGroupByError,
    InvalidMetricError,
    InvalidRangeError,
)
from consignment.app.models import (
    ClientPayment,
    InstallmentPlan,
    Item,
    ItemExpense,
    VendorPayout,
)
from consignment.app.services.ranges import ProfitBound


class Granularity(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class GroupBy(str, enum.Enum):
    VENDOR = "vendor"
    BRAND = "brand"
    CATEGORY = "category"
    CLIENT = "client"


class SeriesMetric(str, enum.Enum):
    REVENUE = "revenue"
    PROFIT = "profit"
    ITEMS_SOLD = "itemsSold"
    EXPENSES = "expenses"
    PAYMENTS = "payments"


ALL_SERIES_METRICS: tuple[SeriesMetric, ...] = tuple(SeriesMetric)


class ReportFilters(BaseModel):
    """Entity filters shared by every report.

    Each set defaults to empty, which means "no restriction" (not "match
    nothing"). Vendor, brand and category ids filter through the item;
    client ids filter payments and installments.
    """

    model_config = ConfigDict(frozen=True)

    vendor_ids: frozenset[UUID] = frozenset()
    client_ids: frozenset[UUID] = frozenset()
    brand_ids: frozenset[UUID] = frozenset()
    category_ids: frozenset[UUID] = frozenset()

    @property
    def has_item_filters(self) -> bool:
        return bool(self.vendor_ids or self.brand_ids or self.category_ids)


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date window ``[start, end]``."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def start_dt(self) -> datetime:
        return to_dt(self.start)

    @property
    def end_dt(self) -> datetime:
        """Exclusive upper bound: midnight after ``end``."""
        return to_dt(self.end + timedelta(days=1))

    def previous(self) -> DateWindow:
        """The immediately preceding window of equal length."""
        prev_end = self.start - timedelta(days=1)
        return DateWindow(prev_end - timedelta(days=self.days - 1), prev_end)

    def contains(self, moment: datetime | date | None) -> bool:
        if moment is None:
            return False
        if isinstance(moment, datetime):
            return self.start_dt <= as_utc(moment) < self.end_dt
        return self.start <= moment <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start_date": self.start.isoformat(), "end_date": self.end.isoformat()}


# ── Normalisation ────────────────────────────────────────────────────────────


def to_dt(d: date) -> datetime:
    """Convert a date to start-of-day UTC datetime."""
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps (SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def make_window(start: date | None, end: date | None) -> DateWindow:
    if start is None or end is None:
        raise InvalidRangeError("Both start_date and end_date are required")
    if start > end:
        raise InvalidRangeError(
            f"start_date {start.isoformat()} is after end_date {end.isoformat()}"
        )
    return DateWindow(start, end)


def make_filters(
    vendor_ids: Iterable[UUID] | None = None,
    client_ids: Iterable[UUID] | None = None,
    brand_ids: Iterable[UUID] | None = None,
    category_ids: Iterable[UUID] | None = None,
) -> ReportFilters:
    return ReportFilters(
        vendor_ids=frozenset(vendor_ids or ()),
        client_ids=frozenset(client_ids or ()),
        brand_ids=frozenset(brand_ids or ()),
        category_ids=frozenset(category_ids or ()),
    )


def parse_granularity(value: str | Granularity | None) -> Granularity:
    if value is None:
        return Granularity.DAY
    try:
        return Granularity(value)
    except ValueError:
        raise InvalidGranularityError(
            f"Unknown granularity {value!r}; expected day, week or month"
        )


def parse_group_by(value: str | GroupBy) -> GroupBy:
    try:
        return GroupBy(value)
    except ValueError:
        raise InvalidGroupByError(
            f"Unknown group_by {value!r}; expected vendor, brand, category or client"
        )


def parse_metrics(values: Iterable[str] | None) -> tuple[SeriesMetric, ...]:
    if not values:
        return ALL_SERIES_METRICS
    parsed: list[SeriesMetric] = []
    for v in values:
        try:
            metric = SeriesMetric(v)
        except ValueError:
            raise InvalidMetricError(f"Unknown metric {v!r}")
        if metric not in parsed:
            parsed.append(metric)
    # fixed output order regardless of request order
    return tuple(m for m in ALL_SERIES_METRICS if m in parsed)


def parse_profit_bound(value: str | ProfitBound | None) -> ProfitBound:
    if value is None:
        return ProfitBound.MID
    try:
        return ProfitBound(value)
    except ValueError:
        raise InvalidMetricError(f"Unknown profit bound {value!r}; expected min, mid or max")


# ── Query conditions ─────────────────────────────────────────────────────────


def item_conditions(filters: ReportFilters) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if filters.vendor_ids:
        conditions.append(Item.vendor_id.in_(sorted(filters.vendor_ids)))
    if filters.brand_ids:
        conditions.append(Item.brand_id.in_(sorted(filters.brand_ids)))
    if filters.category_ids:
        conditions.append(Item.category_id.in_(sorted(filters.category_ids)))
    return conditions


def payment_conditions(
    window: DateWindow | None, filters: ReportFilters,
) -> list[ColumnElement[bool]]:
    conditions = item_conditions(filters)
    if filters.client_ids:
        conditions.append(ClientPayment.client_id.in_(sorted(filters.client_ids)))
    if window is not None:
        conditions.append(ClientPayment.paid_at >= window.start_dt)
        conditions.append(ClientPayment.paid_at < window.end_dt)
    return conditions


def payout_conditions(
    window: DateWindow | None, filters: ReportFilters,
) -> list[ColumnElement[bool]]:
    conditions = item_conditions(filters)
    if window is not None:
        conditions.append(VendorPayout.paid_at >= window.start_dt)
        conditions.append(VendorPayout.paid_at < window.end_dt)
    return conditions


def expense_conditions(
    window: DateWindow | None, filters: ReportFilters,
) -> list[ColumnElement[bool]]:
    conditions = item_conditions(filters)
    if window is not None:
        conditions.append(ItemExpense.incurred_at >= window.start_dt)
        conditions.append(ItemExpense.incurred_at < window.end_dt)
    return conditions


def installment_conditions(
    window: DateWindow | None, filters: ReportFilters,
) -> list[ColumnElement[bool]]:
    conditions = item_conditions(filters)
    if filters.client_ids:
        conditions.append(InstallmentPlan.client_id.in_(sorted(filters.client_ids)))
    if window is not None:
        conditions.append(InstallmentPlan.due_date >= window.start)
        conditions.append(InstallmentPlan.due_date <= window.end)
    return conditions
