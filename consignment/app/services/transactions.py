"""Read-only access to the transactional facts the reports are built from.

Every read returns immutable in-memory records, so the aggregation code
never touches ORM objects or the session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

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
from consignment.app.services.filters import (
    DateWindow,
    ReportFilters,
    as_utc,
    expense_conditions,
    installment_conditions,
    item_conditions,
    payment_conditions,
    payout_conditions,
)
from consignment.app.services.ranges import ZERO, MoneyRange

logger = logging.getLogger(__name__)


# ── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DimensionRef:
    """A vendor, brand, category or client as seen by a report."""

    id: UUID
    name: str
    created_at: datetime | None


@dataclass(frozen=True)
class ItemRecord:
    id: UUID
    title: str
    status: ItemStatus
    vendor: DimensionRef
    brand: DimensionRef | None
    category: DimensionRef | None
    cost: MoneyRange
    sales_price: MoneyRange
    acquisition_date: date | None
    created_at: datetime | None
    first_paid_at: datetime | None
    first_payment_id: UUID | None
    first_client_id: UUID | None
    cost_recorded: bool

    @property
    def acquired_on(self) -> date | None:
        if self.acquisition_date is not None:
            return self.acquisition_date
        if self.created_at is not None:
            return self.created_at.date()
        return None


@dataclass(frozen=True)
class PaymentRecord:
    id: UUID
    item_id: UUID
    client: DimensionRef
    method: str
    amount: Decimal
    paid_at: datetime


@dataclass(frozen=True)
class PayoutRecord:
    id: UUID
    item_id: UUID
    vendor_id: UUID
    amount: Decimal
    paid_at: datetime


@dataclass(frozen=True)
class ExpenseRecord:
    id: UUID
    item_id: UUID | None
    expense_type: str
    amount: Decimal
    incurred_at: datetime


@dataclass(frozen=True)
class InstallmentRecord:
    id: UUID
    item_id: UUID
    client_id: UUID
    amount: Decimal
    paid_amount: Decimal
    status: InstallmentStatus
    due_date: date

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.amount - self.paid_amount)


def _dec(value: object) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def _utc_or_none(moment: datetime | None) -> datetime | None:
    return as_utc(moment) if moment is not None else None


def _ref(entity: Vendor | Brand | Category | Client | None) -> DimensionRef | None:
    if entity is None:
        return None
    return DimensionRef(
        id=entity.id,
        name=entity.name or "",
        created_at=_utc_or_none(entity.created_at),
    )


# ── Reader ───────────────────────────────────────────────────────────────────


class TransactionReader:
    """Filtered reads over the store.

    ``window=None`` on the transaction reads means "all time". Storage
    errors propagate unchanged.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def read_items(
        self,
        filters: ReportFilters,
        statuses: tuple[ItemStatus, ...] | None = None,
    ) -> list[ItemRecord]:
        # Earliest payment per item, ordered the same way read_payments
        # orders, so ties on paid_at resolve to the same row.
        ranked = (
            self.db.query(
                ClientPayment.item_id.label("item_id"),
                ClientPayment.id.label("payment_id"),
                ClientPayment.client_id.label("client_id"),
                ClientPayment.paid_at.label("paid_at"),
                func.row_number()
                .over(
                    partition_by=ClientPayment.item_id,
                    order_by=(ClientPayment.paid_at, ClientPayment.id),
                )
                .label("position"),
            )
            .subquery()
        )
        first_paid = (
            self.db.query(
                ranked.c.item_id,
                ranked.c.payment_id,
                ranked.c.client_id,
                ranked.c.paid_at,
            )
            .filter(ranked.c.position == 1)
            .subquery()
        )
        query = (
            self.db.query(
                Item,
                Vendor,
                Brand,
                Category,
                first_paid.c.paid_at,
                first_paid.c.payment_id,
                first_paid.c.client_id,
            )
            .join(Vendor, Item.vendor_id == Vendor.id)
            .outerjoin(Brand, Item.brand_id == Brand.id)
            .outerjoin(Category, Item.category_id == Category.id)
            .outerjoin(first_paid, first_paid.c.item_id == Item.id)
            .filter(*item_conditions(filters))
        )
        if statuses:
            query = query.filter(Item.status.in_(statuses))

        records = [
            ItemRecord(
                id=item.id,
                title=item.title or "",
                status=ItemStatus(item.status),
                vendor=_ref(vendor),  # type: ignore[arg-type]
                brand=_ref(brand),
                category=_ref(category),
                cost=MoneyRange.from_bounds(item.min_cost, item.max_cost),
                sales_price=MoneyRange.from_bounds(
                    item.min_sales_price, item.max_sales_price
                ),
                acquisition_date=item.acquisition_date,
                created_at=_utc_or_none(item.created_at),
                first_paid_at=_utc_or_none(first_paid_at),
                first_payment_id=first_payment_id,
                first_client_id=first_client_id,
                cost_recorded=item.min_cost is not None or item.max_cost is not None,
            )
            for (
                item, vendor, brand, category, first_paid_at, first_payment_id, first_client_id,
            ) in query.order_by(
                Item.created_at, Item.id
            ).all()
        ]
        logger.debug("read_items: %d rows", len(records))
        return records

    def read_payments(
        self, window: DateWindow | None, filters: ReportFilters,
    ) -> list[PaymentRecord]:
        rows = (
            self.db.query(ClientPayment, Client)
            .join(Item, ClientPayment.item_id == Item.id)
            .join(Client, ClientPayment.client_id == Client.id)
            .filter(*payment_conditions(window, filters))
            .order_by(ClientPayment.paid_at, ClientPayment.id)
            .all()
        )
        records = [
            PaymentRecord(
                id=p.id,
                item_id=p.item_id,
                client=_ref(c),  # type: ignore[arg-type]
                method=p.payment_method,
                amount=_dec(p.amount),
                paid_at=as_utc(p.paid_at),
            )
            for p, c in rows
        ]
        logger.debug("read_payments: %d rows", len(records))
        return records

    def read_payouts(
        self, window: DateWindow | None, filters: ReportFilters,
    ) -> list[PayoutRecord]:
        rows = (
            self.db.query(VendorPayout)
            .join(Item, VendorPayout.item_id == Item.id)
            .filter(*payout_conditions(window, filters))
            .order_by(VendorPayout.paid_at, VendorPayout.id)
            .all()
        )
        records = [
            PayoutRecord(
                id=p.id,
                item_id=p.item_id,
                vendor_id=p.vendor_id,
                amount=_dec(p.amount),
                paid_at=as_utc(p.paid_at),
            )
            for p in rows
        ]
        logger.debug("read_payouts: %d rows", len(records))
        return records

    def read_expenses(
        self, window: DateWindow | None, filters: ReportFilters,
    ) -> list[ExpenseRecord]:
        # Outer join: general expenses have no item and drop out as soon as
        # an item filter is applied.
        rows = (
            self.db.query(ItemExpense)
            .outerjoin(Item, ItemExpense.item_id == Item.id)
            .filter(*expense_conditions(window, filters))
            .order_by(ItemExpense.incurred_at, ItemExpense.id)
            .all()
        )
        records = [
            ExpenseRecord(
                id=e.id,
                item_id=e.item_id,
                expense_type=e.expense_type,
                amount=_dec(e.amount),
                incurred_at=as_utc(e.incurred_at),
            )
            for e in rows
        ]
        logger.debug("read_expenses: %d rows", len(records))
        return records

    def read_installments(
        self, window: DateWindow | None, filters: ReportFilters,
    ) -> list[InstallmentRecord]:
        rows = (
            self.db.query(InstallmentPlan)
            .join(Item, InstallmentPlan.item_id == Item.id)
            .filter(*installment_conditions(window, filters))
            .order_by(InstallmentPlan.due_date, InstallmentPlan.id)
            .all()
        )
        records = [
            InstallmentRecord(
                id=i.id,
                item_id=i.item_id,
                client_id=i.client_id,
                amount=_dec(i.amount),
                paid_amount=_dec(i.paid_amount),
                status=InstallmentStatus(i.status),
                due_date=i.due_date,
            )
            for i in rows
        ]
        logger.debug("read_installments: %d rows", len(records))
        return records
