"""Client payment collection metrics for the dashboard."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from consignment.app.models import InstallmentStatus
from consignment.app.services.filters import DateWindow, ReportFilters
from consignment.app.services.ranges import ZERO, money, percentage_change, safe_divide
from consignment.app.services.transactions import TransactionReader

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 30
TREND_DAYS = 30


def get_payment_metrics(
    db: Session,
    filters: ReportFilters | None = None,
    today: date | None = None,
) -> dict[str, object]:
    """All-time payment totals plus installment and 30-day trend figures.

    Overdue installments are pending ones due on or before *today*; upcoming
    ones are due within the next 30 days after it. The trend compares the 30
    days ending *today* with the 30 days before them.
    """
    filters = filters or ReportFilters()
    today = today or date.today()
    reader = TransactionReader(db)

    payments = reader.read_payments(None, filters)
    total_amount = sum((p.amount for p in payments), ZERO)

    horizon = today + timedelta(days=UPCOMING_DAYS)
    pending = [
        i for i in reader.read_installments(None, filters)
        if i.status == InstallmentStatus.PENDING
    ]
    overdue = sum(1 for i in pending if i.due_date <= today)
    upcoming = sum(1 for i in pending if today < i.due_date <= horizon)

    recent = DateWindow(today - timedelta(days=TREND_DAYS - 1), today)
    current: Decimal = sum((p.amount for p in payments if recent.contains(p.paid_at)), ZERO)
    prior = recent.previous()
    previous: Decimal = sum((p.amount for p in payments if prior.contains(p.paid_at)), ZERO)
    logger.debug(
        "payment metrics: %d payments, trend %s vs %s", len(payments), current, previous,
    )

    return {
        "as_of": today.isoformat(),
        "total_payments_received": len(payments),
        "total_payments_amount": money(total_amount),
        "average_payment_amount": money(safe_divide(total_amount, len(payments))),
        "overdue_payments": overdue,
        "upcoming_payments": upcoming,
        "monthly_payment_trend": money(percentage_change(current, previous)),
    }
