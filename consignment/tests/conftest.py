"""Shared test fixtures.

Tests run against an in-memory SQLite database. Each test runs inside a
transaction that is rolled back afterwards, so tests never see each
other's rows.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from consignment.app.core.database import Base, get_db
from consignment.app.main import app
from consignment.app.models import (
    Brand,
    Category,
    Client,
    ClientPayment,
    InstallmentPlan,
    InstallmentStatus,
    Item,
    ItemExpense,
    ItemStatus,
    Vendor,
    VendorPayout,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(engine)


def at(day: date, hour: int = 12) -> datetime:
    """UTC timestamp on *day*."""
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


# ─── DB session that rolls back after every test ──────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, autoflush=False)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the transactional test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Row builders ────────────────────────────────────────────────────────────


class Factory:
    """Insert rows with sensible defaults; every call flushes."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self._seq = 0

    def _created(self, created_at: datetime | None) -> datetime:
        # Deterministic creation order for tie-breaking tests
        self._seq += 1
        return created_at or datetime(2023, 1, 1, 0, self._seq, tzinfo=timezone.utc)

    def _add(self, row):
        self.db.add(row)
        self.db.flush()
        return row

    def vendor(self, name: str = "Vendor", created_at: datetime | None = None) -> Vendor:
        return self._add(Vendor(name=name, created_at=self._created(created_at)))

    def client(self, name: str = "Client", created_at: datetime | None = None) -> Client:
        return self._add(Client(name=name, created_at=self._created(created_at)))

    def brand(self, name: str, created_at: datetime | None = None) -> Brand:
        return self._add(Brand(name=name, created_at=self._created(created_at)))

    def category(self, name: str, created_at: datetime | None = None) -> Category:
        return self._add(Category(name=name, created_at=self._created(created_at)))

    def item(
        self,
        vendor: Vendor,
        title: str = "Item",
        status: ItemStatus = ItemStatus.IN_STORE,
        cost: tuple[str | None, str | None] = ("0", "0"),
        price: tuple[str | None, str | None] = ("0", "0"),
        brand: Brand | None = None,
        category: Category | None = None,
        acquisition_date: date | None = None,
        created_at: datetime | None = None,
    ) -> Item:
        return self._add(Item(
            vendor_id=vendor.id,
            brand_id=brand.id if brand else None,
            category_id=category.id if category else None,
            title=title,
            status=status,
            min_cost=Decimal(cost[0]) if cost[0] is not None else None,
            max_cost=Decimal(cost[1]) if cost[1] is not None else None,
            min_sales_price=Decimal(price[0]) if price[0] is not None else None,
            max_sales_price=Decimal(price[1]) if price[1] is not None else None,
            acquisition_date=acquisition_date,
            created_at=self._created(created_at),
        ))

    def payment(
        self,
        item: Item,
        client: Client,
        amount: str,
        paid_at: datetime,
        method: str = "cash",
    ) -> ClientPayment:
        return self._add(ClientPayment(
            item_id=item.id,
            client_id=client.id,
            payment_method=method,
            amount=Decimal(amount),
            paid_at=paid_at,
        ))

    def payout(self, item: Item, amount: str, paid_at: datetime) -> VendorPayout:
        return self._add(VendorPayout(
            item_id=item.id,
            vendor_id=item.vendor_id,
            amount=Decimal(amount),
            paid_at=paid_at,
        ))

    def expense(
        self,
        amount: str,
        incurred_at: datetime,
        item: Item | None = None,
        expense_type: str = "shipping",
    ) -> ItemExpense:
        return self._add(ItemExpense(
            item_id=item.id if item else None,
            expense_type=expense_type,
            amount=Decimal(amount),
            incurred_at=incurred_at,
        ))

    def installment(
        self,
        item: Item,
        client: Client,
        amount: str,
        due_date: date,
        paid_amount: str = "0",
        status: InstallmentStatus = InstallmentStatus.PENDING,
    ) -> InstallmentPlan:
        return self._add(InstallmentPlan(
            item_id=item.id,
            client_id=client.id,
            amount=Decimal(amount),
            paid_amount=Decimal(paid_amount),
            status=status,
            due_date=due_date,
            created_at=self._created(None),
        ))


@pytest.fixture()
def factory(db: Session) -> Factory:
    return Factory(db)
