"""Tests for the KPI snapshot."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from consignment.app.core.errors import InvalidRangeError
from consignment.app.models import InstallmentStatus, ItemStatus
from consignment.app.services.filters import make_filters
from consignment.app.services.metrics import get_report_kpis
from consignment.app.services.timeseries import build_time_series
from consignment.tests.conftest import Factory, at

START = date(2024, 1, 1)
END = date(2024, 1, 31)


class TestReportKpis:
    def test_single_sale_profit_range(self, db: Session, factory: Factory) -> None:
        v = factory.vendor()
        c = factory.client()
        item = factory.item(v, status=ItemStatus.SOLD, cost=("100", "150"))
        factory.payment(item, c, "500", at(date(2024, 1, 10)))
        factory.expense("20", at(date(2024, 1, 12)))

        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        assert result["total_revenue"] == "500.00"
        assert result["total_expenses"] == "20.00"
        assert result["cost_of_goods"] == {"min": "100.00", "max": "150.00"}
        assert result["total_profit_range"] == {"min": "330.00", "max": "380.00"}
        assert result["items_sold"] == 1
        assert result["payment_count"] == 1
        assert result["average_order_value"] == "500.00"

    def test_empty_window_is_all_zero(self, db: Session) -> None:
        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        assert result["total_revenue"] == "0.00"
        assert result["total_profit_range"] == {"min": "0.00", "max": "0.00"}
        assert result["items_sold"] == 0
        assert result["average_order_value"] == "0.00"
        assert result["gross_margin"] == "0.00"
        assert result["revenue_change"] == "0.00"
        assert result["top_performing_brand"] is None
        assert result["top_performing_vendor"] is None

    def test_start_after_end_rejected(self, db: Session) -> None:
        with pytest.raises(InvalidRangeError):
            get_report_kpis(db, END, START)

    def test_cost_charged_once_at_first_payment(
        self, db: Session, factory: Factory,
    ) -> None:
        v = factory.vendor()
        c = factory.client()
        item = factory.item(v, status=ItemStatus.SOLD, cost=("100", "100"))
        factory.payment(item, c, "200", at(date(2023, 12, 20)))
        factory.payment(item, c, "300", at(date(2024, 1, 10)))

        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        # second installment: revenue only, cost already charged in December
        assert result["total_revenue"] == "300.00"
        assert result["cost_of_goods"] == {"min": "0.00", "max": "0.00"}
        assert result["total_profit_range"] == {"min": "300.00", "max": "300.00"}

    def test_revenue_change_against_previous_period(
        self, db: Session, factory: Factory,
    ) -> None:
        v = factory.vendor()
        c = factory.client()
        a = factory.item(v)
        b = factory.item(v)
        factory.payment(a, c, "100", at(date(2023, 12, 15)))
        factory.payment(b, c, "150", at(date(2024, 1, 15)))

        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        assert result["revenue_change"] == "50.00"

    def test_top_performers_and_unique_clients(
        self, db: Session, factory: Factory,
    ) -> None:
        v1 = factory.vendor("Maison")
        v2 = factory.vendor("Atelier")
        gucci = factory.brand("Gucci")
        prada = factory.brand("Prada")
        c1 = factory.client("Alice")
        c2 = factory.client("Bob")
        a = factory.item(v1, brand=gucci)
        b = factory.item(v2, brand=prada)
        factory.payment(a, c1, "100", at(date(2024, 1, 5)))
        factory.payment(b, c2, "400", at(date(2024, 1, 6)))
        factory.payment(b, c2, "50", at(date(2024, 1, 7)))

        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        assert result["top_performing_brand"] == "Prada"
        assert result["top_performing_vendor"] == "Atelier"
        assert result["unique_clients"] == 2
        assert result["payment_count"] == 3

    def test_top_performer_tie_goes_to_earliest_created(
        self, db: Session, factory: Factory,
    ) -> None:
        v = factory.vendor()
        c = factory.client()
        older = factory.brand("Zegna", created_at=at(date(2020, 1, 1)))
        newer = factory.brand("Armani", created_at=at(date(2022, 1, 1)))
        factory.payment(factory.item(v, brand=newer), c, "100", at(date(2024, 1, 5)))
        factory.payment(factory.item(v, brand=older), c, "100", at(date(2024, 1, 6)))

        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        assert result["top_performing_brand"] == "Zegna"

    def test_pending_and_overdue_installments(
        self, db: Session, factory: Factory,
    ) -> None:
        v = factory.vendor()
        c = factory.client()
        item = factory.item(v)
        factory.installment(item, c, "100", date(2024, 1, 10))
        factory.installment(item, c, "100", date(2024, 1, 15))
        factory.installment(item, c, "100", date(2024, 1, 25))
        factory.installment(
            item, c, "100", date(2024, 1, 5), status=InstallmentStatus.PAID,
        )

        result = get_report_kpis(db, START, END, today=date(2024, 1, 15))
        assert result["overdue_payments"] == 2
        assert result["pending_payments"] == 1

    def test_vendor_filter(self, db: Session, factory: Factory) -> None:
        a = factory.vendor("A")
        b = factory.vendor("B")
        c = factory.client()
        factory.payment(factory.item(a), c, "100", at(date(2024, 1, 5)))
        factory.payment(factory.item(b), c, "250", at(date(2024, 1, 6)))

        result = get_report_kpis(
            db, START, END, filters=make_filters(vendor_ids=[b.id]), today=date(2024, 2, 1),
        )
        assert result["total_revenue"] == "250.00"
        assert result["items_by_status"]["in-store"] == 1

    def test_days_to_sell_and_margins(self, db: Session, factory: Factory) -> None:
        v = factory.vendor()
        c = factory.client()
        item = factory.item(
            v,
            status=ItemStatus.SOLD,
            cost=("40", "60"),
            acquisition_date=date(2023, 12, 22),
        )
        factory.payment(item, c, "100", at(date(2024, 1, 1)))

        result = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        assert result["average_days_to_sell"] == "10.00"
        assert result["gross_margin"] == "50.00"
        assert result["net_margin"] == "50.00"

    def test_client_filter_does_not_move_the_sale(
        self, db: Session, factory: Factory,
    ) -> None:
        v = factory.vendor()
        alice = factory.client("Alice")
        bob = factory.client("Bob")
        item = factory.item(v, status=ItemStatus.SOLD, cost=("100", "100"))
        factory.payment(item, alice, "300", at(date(2024, 1, 5)))
        factory.payment(item, bob, "200", at(date(2024, 1, 20)))

        filters = make_filters(client_ids=[bob.id])
        result = get_report_kpis(db, START, END, filters=filters, today=date(2024, 2, 1))
        # Alice's payment made the sale, so Bob's revenue carries no cost
        assert result["cost_of_goods"] == {"min": "0.00", "max": "0.00"}
        assert result["total_profit_range"] == {"min": "200.00", "max": "200.00"}

        series = build_time_series(db, START, END, filters=filters)
        total = sum(Decimal(p["profit"]) for p in series["points"])
        assert total == Decimal("200.00")
