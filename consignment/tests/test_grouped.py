"""Tests for grouped performance."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from consignment.app.core.errors import InvalidGroupByError, InvalidRangeError
from consignment.app.services.filters import make_filters
from consignment.app.services.grouped import get_grouped_performance
from consignment.app.services.metrics import get_report_kpis
from consignment.app.services.timeseries import build_time_series
from consignment.tests.conftest import Factory, at

START = date(2024, 1, 1)
END = date(2024, 1, 31)


@pytest.fixture()
def catalogue(factory: Factory) -> dict:
    chanel = factory.brand("Chanel")
    hermes = factory.brand("Hermes")
    bags = factory.category("Bags")
    v1 = factory.vendor("Maison")
    v2 = factory.vendor("Atelier")
    alice = factory.client("Alice")
    bob = factory.client("Bob")
    a = factory.item(v1, title="Flap", brand=chanel, category=bags, cost=("100", "200"))
    b = factory.item(v2, title="Kelly", brand=hermes, category=bags, cost=("300", "300"))
    c = factory.item(v2, title="Scarf", cost=("10", "10"))
    factory.payment(a, alice, "400", at(date(2024, 1, 5)))
    factory.payment(b, bob, "900", at(date(2024, 1, 6)))
    factory.payment(c, alice, "50", at(date(2024, 1, 7)))
    factory.expense("30", at(date(2024, 1, 8)), item=b)
    return {"v1": v1, "v2": v2, "alice": alice, "bob": bob, "items": (a, b, c)}


class TestGroupedPerformance:
    def test_by_brand_with_unassigned(self, db: Session, catalogue: dict) -> None:
        result = get_grouped_performance(db, START, END, "brand")
        names = [g["group_name"] for g in result["groups"]]
        assert names == ["Hermes", "Chanel", "Unassigned"]
        unassigned = result["groups"][2]
        assert unassigned["group_id"] is None
        assert unassigned["revenue"] == "50.00"

        hermes = result["groups"][0]
        assert hermes["profit_range"] == {"min": "570.00", "max": "570.00"}
        assert hermes["item_count"] == 1
        assert hermes["payment_count"] == 1

    def test_group_revenue_sums_to_total(self, db: Session, catalogue: dict) -> None:
        kpis = get_report_kpis(db, START, END, today=date(2024, 2, 1))
        for dimension in ("vendor", "brand", "category", "client"):
            result = get_grouped_performance(db, START, END, dimension)
            total = sum(Decimal(g["revenue"]) for g in result["groups"])
            assert total == Decimal(kpis["total_revenue"]), dimension

    def test_by_vendor_margin_uses_midpoint(self, db: Session, catalogue: dict) -> None:
        result = get_grouped_performance(db, START, END, "vendor")
        maison = next(g for g in result["groups"] if g["group_name"] == "Maison")
        # 400 - (100..200) -> 200..300, midpoint 250
        assert maison["profit"] == "250.00"
        assert maison["margin"] == "62.50"

    def test_by_client_charges_item_expense_to_buyer(
        self, db: Session, catalogue: dict,
    ) -> None:
        result = get_grouped_performance(db, START, END, "client")
        bob = next(g for g in result["groups"] if g["group_name"] == "Bob")
        assert bob["profit_range"] == {"min": "570.00", "max": "570.00"}
        alice = next(g for g in result["groups"] if g["group_name"] == "Alice")
        assert alice["revenue"] == "450.00"
        assert alice["item_count"] == 2
        assert alice["average_order_value"] == "225.00"

    def test_ties_sorted_by_name(self, db: Session, factory: Factory) -> None:
        c = factory.client()
        zed = factory.vendor("Zed")
        abe = factory.vendor("Abe")
        factory.payment(factory.item(zed), c, "100", at(date(2024, 1, 5)))
        factory.payment(factory.item(abe), c, "100", at(date(2024, 1, 5)))
        result = get_grouped_performance(db, START, END, "vendor")
        assert [g["group_name"] for g in result["groups"]] == ["Abe", "Zed"]

    def test_change_against_previous_period(self, db: Session, factory: Factory) -> None:
        c = factory.client()
        v = factory.vendor("Solo")
        factory.payment(factory.item(v), c, "100", at(date(2023, 12, 10)))
        factory.payment(factory.item(v), c, "300", at(date(2024, 1, 10)))
        [group] = get_grouped_performance(db, START, END, "vendor")["groups"]
        assert group["change"] == "200.00"

    def test_groups_without_payments_omitted(self, db: Session, factory: Factory) -> None:
        factory.item(factory.vendor("Idle"))
        assert get_grouped_performance(db, START, END, "vendor")["groups"] == []

    def test_unknown_dimension(self, db: Session) -> None:
        with pytest.raises(InvalidGroupByError):
            get_grouped_performance(db, START, END, "season")

    def test_inverted_window(self, db: Session) -> None:
        with pytest.raises(InvalidRangeError):
            get_grouped_performance(db, END, START, "vendor")

    def test_inverted_window_reported_before_bad_dimension(self, db: Session) -> None:
        with pytest.raises(InvalidRangeError):
            get_grouped_performance(db, END, START, "season")

    def test_repeated_calls_are_identical(self, db: Session, catalogue: dict) -> None:
        first = get_grouped_performance(db, START, END, "client")
        second = get_grouped_performance(db, START, END, "client")
        assert first == second

    def test_client_group_unchanged_by_client_filter(
        self, db: Session, factory: Factory,
    ) -> None:
        v = factory.vendor()
        alice = factory.client("Alice")
        bob = factory.client("Bob")
        item = factory.item(v, cost=("100", "100"))
        factory.payment(item, alice, "300", at(date(2024, 1, 5)))
        factory.payment(item, bob, "200", at(date(2024, 1, 20)))

        unfiltered = get_grouped_performance(db, START, END, "client")
        by_name = {g["group_name"]: g for g in unfiltered["groups"]}
        assert by_name["Alice"]["profit"] == "200.00"
        assert by_name["Bob"]["profit"] == "200.00"

        filtered = get_grouped_performance(
            db, START, END, "client", filters=make_filters(client_ids=[bob.id]),
        )
        [row] = filtered["groups"]
        assert row == by_name["Bob"]

    def test_entity_filters_agree_with_kpis_and_series(
        self, db: Session, catalogue: dict,
    ) -> None:
        cases = [
            make_filters(vendor_ids=[catalogue["v2"].id]),
            make_filters(client_ids=[catalogue["alice"].id]),
            make_filters(client_ids=[catalogue["bob"].id], vendor_ids=[catalogue["v2"].id]),
        ]
        for filters in cases:
            kpis = get_report_kpis(db, START, END, filters=filters, today=date(2024, 2, 1))
            series = build_time_series(db, START, END, filters=filters)
            grouped = get_grouped_performance(db, START, END, "vendor", filters=filters)

            revenue = Decimal(kpis["total_revenue"])
            assert sum(Decimal(p["revenue"]) for p in series["points"]) == revenue
            assert sum(Decimal(g["revenue"]) for g in grouped["groups"]) == revenue

            profit = kpis["total_profit_range"]
            assert sum(
                Decimal(g["profit_range"]["min"]) for g in grouped["groups"]
            ) == Decimal(profit["min"])
            assert sum(
                Decimal(g["profit_range"]["max"]) for g in grouped["groups"]
            ) == Decimal(profit["max"])
