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
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consignment.app.core.database import Base
from consignment.app.models.catalog import Brand, Category, Vendor


class ItemStatus(str, enum.Enum):
    IN_STORE = "in-store"
    RESERVED = "reserved"
    SOLD = "sold"
    RETURNED = "returned"


HELD_STATUSES = (ItemStatus.IN_STORE, ItemStatus.RESERVED)


class Item(Base):
    """A consigned item.

    Cost (what the vendor is owed) and sales price are ranges because the
    final figures are often negotiated after the item is taken in. A single
    known value is stored with ``min == max``.
    """

    __tablename__ = "items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("vendors.id"), nullable=False
    )
    brand_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("brands.id"), nullable=True
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[ItemStatus] = mapped_column(
        Enum(
            ItemStatus,
            name="item_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ItemStatus.IN_STORE,
    )
    min_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    max_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    min_sales_price: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    max_sales_price: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    acquisition_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    vendor: Mapped[Vendor] = relationship()
    brand: Mapped[Brand | None] = relationship()
    category: Mapped[Category | None] = relationship()

    __table_args__ = (
        CheckConstraint("min_cost <= max_cost", name="ck_item_cost_range"),
        CheckConstraint(
            "min_sales_price <= max_sales_price", name="ck_item_sales_price_range"
        ),
        Index("ix_items_vendor", "vendor_id"),
        Index("ix_items_brand", "brand_id"),
        Index("ix_items_category", "category_id"),
        Index("ix_items_status", "status"),
    )
