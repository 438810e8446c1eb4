from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from consignment.app.api.deps import bad_request, get_report_filters
from consignment.app.core.database import get_db
from consignment.app.core.errors import ReportError
from consignment.app.schemas.reports import (
    DashboardMetricsResponse,
    FinancialHealthResponse,
    PaymentMetricsResponse,
)
from consignment.app.services.dashboard import get_dashboard_metrics
from consignment.app.services.filters import ReportFilters
from consignment.app.services.financial_health import get_financial_health
from consignment.app.services.payment_metrics import get_payment_metrics

router = APIRouter()


@router.get("/metrics", response_model=DashboardMetricsResponse)
def dashboard_metrics(
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    return get_dashboard_metrics(db, filters)


@router.get("/financial-health", response_model=FinancialHealthResponse)
def financial_health(
    profit_bound: str | None = Query(None),
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return get_financial_health(db, filters, profit_bound=profit_bound)
    except ReportError as e:
        raise bad_request(e)


@router.get("/payment-metrics", response_model=PaymentMetricsResponse)
def payment_metrics(
    filters: ReportFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    return get_payment_metrics(db, filters)
