from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consignment.app.core.database import Base
from consignment.app.models.catalog import Client, Vendor
from consignment.app.models.item import Item


class InstallmentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class ClientPayment(Base):
    """Money received from a client towards an item. Always an exact amount."""

    __tablename__ = "client_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("clients.id"), nullable=False
    )
    payment_method: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    item: Mapped[Item] = relationship()
    client: Mapped[Client] = relationship()

    __table_args__ = (
        Index("ix_client_payments_item", "item_id"),
        Index("ix_client_payments_paid_at", "paid_at"),
    )


class VendorPayout(Base):
    __tablename__ = "vendor_payouts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("vendors.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    item: Mapped[Item] = relationship()
    vendor: Mapped[Vendor] = relationship()

    __table_args__ = (
        Index("ix_vendor_payouts_item", "item_id"),
        Index("ix_vendor_payouts_paid_at", "paid_at"),
    )


class ItemExpense(Base):
    """An expense, optionally tied to an item (NULL item = general expense)."""

    __tablename__ = "item_expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("items.id"), nullable=True
    )
    expense_type: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    incurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_item_expenses_item", "item_id"),
        Index("ix_item_expenses_incurred_at", "incurred_at"),
    )


class InstallmentPlan(Base):
    """One scheduled installment of a client financing plan."""

    __tablename__ = "installment_plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("clients.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0")
    )
    status: Mapped[InstallmentStatus] = mapped_column(
        Enum(
            InstallmentStatus,
            name="installment_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=InstallmentStatus.PENDING,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("paid_amount >= 0", name="ck_installment_paid_non_negative"),
        Index("ix_installment_plans_due_date", "due_date"),
        Index("ix_installment_plans_status", "status"),
    )
