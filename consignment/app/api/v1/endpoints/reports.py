from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from consignment.app.api.deps import bad_request, get_report_filters
from consignment.app.core.database import get_db
from consignment.app.core.errors import ReportError
from consignment.app.schemas.reports import (
    GroupedPerformanceResponse,
    InventoryHealthResponse,
    ItemProfitabilityResponse,
    PaymentMethodBreakdownResponse,
    ReportKpisResponse,
    TimeSeriesResponse,
)
from consignment.app.services.filters import ReportFilters
from consignment.app.services.grouped import get_grouped_performance
from consignment.app.services.inventory_health import get_inventory_health
from consignment.app.services.metrics import get_report_kpis
from consignment.app.services.payment_methods import get_payment_method_breakdown
from consignment.app.services.profitability import get_item_profitability
from consignment.app.services.timeseries import build_time_series

router = APIRouter()


def _split_metrics(metrics: list[str] | None) -> list[str] | None:
    """Accept both ``?metrics=a&metrics=b`` and ``?metrics=a,b``."""
    if not metrics:
        return None
    return [m.strip() for value in metrics for m in value.split(",") if m.strip()]


# ── KPIs ────────────────────────────────────────────────────────────────────


@router.get("/kpis", response_model=ReportKpisResponse)
def report_kpis(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return get_report_kpis(db, start_date, end_date, filters)
    except ReportError as e:
        raise bad_request(e)


# ── Time series ─────────────────────────────────────────────────────────────


@router.get(
    "/timeseries",
    response_model=TimeSeriesResponse,
    response_model_exclude_none=True,
)
def report_timeseries(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    granularity: str | None = Query(None),
    metrics: list[str] | None = Query(None),
    profit_bound: str | None = Query(None),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return build_time_series(
            db,
            start_date,
            end_date,
            granularity=granularity,
            metrics=_split_metrics(metrics),
            filters=filters,
            profit_bound=profit_bound,
        )
    except ReportError as e:
        raise bad_request(e)


# ── Grouped performance ─────────────────────────────────────────────────────


@router.get("/grouped", response_model=GroupedPerformanceResponse)
def report_grouped(
    group_by: str = Query(...),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    profit_bound: str | None = Query(None),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return get_grouped_performance(
            db, start_date, end_date, group_by, filters=filters, profit_bound=profit_bound,
        )
    except ReportError as e:
        raise bad_request(e)


# ── Inventory health ────────────────────────────────────────────────────────


@router.get("/inventory", response_model=InventoryHealthResponse)
def report_inventory(
    as_of_date: date | None = Query(None),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    return get_inventory_health(db, filters, today=as_of_date)


# ── Payment methods ─────────────────────────────────────────────────────────


@router.get("/payment-methods", response_model=PaymentMethodBreakdownResponse)
def report_payment_methods(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return get_payment_method_breakdown(db, start_date, end_date, filters)
    except ReportError as e:
        raise bad_request(e)


# ── Item profitability ──────────────────────────────────────────────────────


@router.get("/items", response_model=ItemProfitabilityResponse)
def report_items(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    profit_bound: str | None = Query(None),
    limit: int | None = Query(None),
    offset: int = Query(0),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return get_item_profitability(
            db,
            start_date,
            end_date,
            filters=filters,
            profit_bound=profit_bound,
            limit=limit,
            offset=offset,
        )
    except ReportError as e:
        raise bad_request(e)
