"""Pydantic response schemas for the reporting endpoints.

Money and percentages are two-decimal strings; ranges are ``{min, max}``.
"""
from __future__ import annotations

from pydantic import BaseModel


class MoneyRangeOut(BaseModel):
    min: str
    max: str


class WindowOut(BaseModel):
    start_date: str
    end_date: str


# ── KPIs ─────────────────────────────────────────────────────────────────────


class ReportKpisResponse(WindowOut):
    total_revenue: str
    total_expenses: str
    cost_of_goods: MoneyRangeOut
    total_profit_range: MoneyRangeOut
    items_sold: int
    payment_count: int
    unique_clients: int
    average_order_value: str
    gross_margin: str
    net_margin: str
    average_days_to_sell: str
    items_by_status: dict[str, int]
    pending_payments: int
    overdue_payments: int
    revenue_change: str
    profit_change: str
    top_performing_brand: str | None
    top_performing_vendor: str | None


# ── Time series ──────────────────────────────────────────────────────────────


class TimeSeriesPoint(BaseModel):
    period: str
    period_start: str
    period_end: str
    revenue: str | None = None
    profit: str | None = None
    profit_range: MoneyRangeOut | None = None
    items_sold: int | None = None
    expenses: str | None = None
    payments: int | None = None


class TimeSeriesResponse(WindowOut):
    granularity: str
    metrics: list[str]
    profit_bound: str
    points: list[TimeSeriesPoint]


# ── Grouped performance ──────────────────────────────────────────────────────


class GroupRow(BaseModel):
    group_id: str | None
    group_name: str
    revenue: str
    profit_range: MoneyRangeOut
    profit: str
    margin: str
    item_count: int
    payment_count: int
    average_order_value: str
    change: str


class GroupedPerformanceResponse(WindowOut):
    group_by: str
    profit_bound: str
    groups: list[GroupRow]


# ── Inventory health ─────────────────────────────────────────────────────────


class AgingBucketOut(BaseModel):
    bucket: str
    count: int
    valuation_range: MoneyRangeOut
    percentage: str


class CategoryHealthOut(BaseModel):
    category_id: str | None
    category_name: str
    count: int
    valuation_range: MoneyRangeOut
    average_age_days: str


class InventoryHealthResponse(BaseModel):
    as_of: str
    total_items: int
    held_items: int
    items_by_status: dict[str, int]
    valuation_range: MoneyRangeOut
    cost_range: MoneyRangeOut
    average_age_days: str
    slow_moving_items: int
    fast_moving_items: int
    aging: list[AgingBucketOut]
    categories: list[CategoryHealthOut]


# ── Payment methods ──────────────────────────────────────────────────────────


class PaymentMethodRow(BaseModel):
    payment_method: str
    transaction_count: int
    total_amount: str
    average_amount: str
    percentage: str
    change: str


class PaymentMethodBreakdownResponse(WindowOut):
    total_amount: str
    transaction_count: int
    methods: list[PaymentMethodRow]


# ── Item profitability ───────────────────────────────────────────────────────


class ItemProfitRow(BaseModel):
    item_id: str
    title: str
    vendor_name: str
    brand_name: str | None
    status: str
    revenue: str
    cost_range: MoneyRangeOut
    expenses: str
    profit_range: MoneyRangeOut
    profit: str
    margin: str
    sold_date: str
    days_to_sell: int | None


class ItemProfitabilityResponse(WindowOut):
    profit_bound: str
    total_count: int
    limit: int
    offset: int
    has_more: bool
    items: list[ItemProfitRow]


# ── Dashboard ────────────────────────────────────────────────────────────────


class DashboardMetricsResponse(BaseModel):
    total_revenue: str
    active_items: int
    pending_payouts: MoneyRangeOut
    upcoming_payouts: int
    net_profit: MoneyRangeOut
    incoming_payments: str
    cost_range: MoneyRangeOut
    inventory_value_range: MoneyRangeOut


class PaymentMetricsResponse(BaseModel):
    as_of: str
    total_payments_received: int
    total_payments_amount: str
    average_payment_amount: str
    overdue_payments: int
    upcoming_payments: int
    monthly_payment_trend: str


class HealthFactors(BaseModel):
    payment_timeliness: int
    cash_flow: int
    inventory_turnover: int
    profit_margin: int
    client_retention: int


class FinancialHealthResponse(BaseModel):
    score: int
    grade: str
    factors: HealthFactors
    recommendations: list[str]
