"""Composite 0-100 financial health score with plain-language advice."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from consignment.app.models import HELD_STATUSES, InstallmentStatus, ItemStatus
from consignment.app.services.filters import DateWindow, ReportFilters, parse_profit_bound
from consignment.app.services.ranges import (
    ZERO,
    ProfitBound,
    profit_range,
    safe_divide,
    sum_ranges,
)
from consignment.app.services.transactions import TransactionReader

logger = logging.getLogger(__name__)

CASH_FLOW_DAYS = 30

# Factor weights (maximum points)
TIMELINESS_POINTS = Decimal("25")
CASH_FLOW_POINTS = Decimal("25")
TURNOVER_POINTS = Decimal("20")
MARGIN_POINTS = Decimal("20")
RETENTION_POINTS = Decimal("10")

OVERDUE_ADVICE = (
    "High number of overdue payments. Consider implementing automated payment reminders."
)
CASH_FLOW_ADVICE = (
    "Negative cash flow detected. Review payment terms and collection processes."
)
TURNOVER_ADVICE = (
    "Low inventory turnover. Consider promotions or adjusting pricing strategy."
)
MARGIN_ADVICE = "Low profit margins. Review pricing strategy and cost management."
RETENTION_ADVICE = (
    "Low client retention rate. Consider loyalty programs or improved customer service."
)
EXCELLENT_ADVICE = "Excellent financial health! Continue current practices."
CRITICAL_ADVICE = "Immediate attention required to improve financial health."


def _clamp(value: Decimal, ceiling: Decimal) -> Decimal:
    return min(ceiling, max(ZERO, value))


def _round(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def grade_for(score: int) -> str:
    if score >= 90:
        return "A+"
    elif score >= 80:
        return "A"
    elif score >= 70:
        return "B"
    elif score >= 60:
        return "C"
    elif score >= 50:
        return "D"
    else:
        return "F"


def get_financial_health(
    db: Session,
    filters: ReportFilters | None = None,
    today: date | None = None,
    profit_bound: str | ProfitBound | None = None,
) -> dict[str, object]:
    bound = parse_profit_bound(profit_bound)
    filters = filters or ReportFilters()
    today = today or date.today()
    reader = TransactionReader(db)
    recommendations: list[str] = []

    # ── Payment timeliness ───────────────────────────────────────────────
    pending = [
        i for i in reader.read_installments(None, filters)
        if i.status == InstallmentStatus.PENDING
    ]
    overdue_rate = safe_divide(
        Decimal(sum(1 for i in pending if i.due_date <= today)), len(pending),
    )
    timeliness = _clamp(TIMELINESS_POINTS * (1 - overdue_rate), TIMELINESS_POINTS)
    if overdue_rate > Decimal("0.2"):
        recommendations.append(OVERDUE_ADVICE)

    # ── Cash flow over the trailing window ───────────────────────────────
    recent = DateWindow(today - timedelta(days=CASH_FLOW_DAYS), today)
    inflow = sum((p.amount for p in reader.read_payments(recent, filters)), ZERO)
    outflow = sum((p.amount for p in reader.read_payouts(recent, filters)), ZERO)
    ratio = safe_divide(inflow, outflow, fallback=Decimal("2"))
    cash_flow = _clamp(ratio * Decimal("12.5"), CASH_FLOW_POINTS)
    if inflow < outflow:
        recommendations.append(CASH_FLOW_ADVICE)

    # ── Inventory turnover ───────────────────────────────────────────────
    items = reader.read_items(filters)
    sold = [i for i in items if i.status == ItemStatus.SOLD]
    held_count = sum(1 for i in items if i.status in HELD_STATUSES)
    turnover_rate = safe_divide(Decimal(len(sold)), len(sold) + held_count)
    turnover = _clamp(turnover_rate * TURNOVER_POINTS, TURNOVER_POINTS)
    if turnover_rate < Decimal("0.3"):
        recommendations.append(TURNOVER_ADVICE)

    # ── Profit margin (all time) ─────────────────────────────────────────
    payments = reader.read_payments(None, filters)
    revenue = sum((p.amount for p in payments), ZERO)
    margin_rate = safe_divide(
        profit_range(revenue, sum_ranges(i.cost for i in sold)).resolve(bound), revenue,
    )
    margin = _clamp(margin_rate * 40, MARGIN_POINTS)
    if margin_rate < Decimal("0.2"):
        recommendations.append(MARGIN_ADVICE)

    # ── Client retention ─────────────────────────────────────────────────
    items_per_client: dict[UUID, set[UUID]] = defaultdict(set)
    for p in payments:
        items_per_client[p.client.id].add(p.item_id)
    repeat_clients = sum(1 for bought in items_per_client.values() if len(bought) > 1)
    retention_rate = safe_divide(Decimal(repeat_clients), len(items_per_client))
    retention = _clamp(retention_rate * 20, RETENTION_POINTS)
    if retention_rate < Decimal("0.3"):
        recommendations.append(RETENTION_ADVICE)

    score = _round(timeliness + cash_flow + turnover + margin + retention)
    grade = grade_for(score)
    if grade == "A+" and not recommendations:
        recommendations.append(EXCELLENT_ADVICE)
    elif grade == "F":
        recommendations.append(CRITICAL_ADVICE)
    logger.info("financial health score %d (%s)", score, grade)

    return {
        "score": score,
        "grade": grade,
        "factors": {
            "payment_timeliness": _round(timeliness),
            "cash_flow": _round(cash_flow),
            "inventory_turnover": _round(turnover),
            "profit_margin": _round(margin),
            "client_retention": _round(retention),
        },
        "recommendations": recommendations,
    }
