from consignment.app.models.catalog import Brand, Category, Client, Vendor
from consignment.app.models.item import HELD_STATUSES, Item, ItemStatus
from consignment.app.models.transactions import (
    ClientPayment,
    InstallmentPlan,
    InstallmentStatus,
    ItemExpense,
    VendorPayout,
)

__all__ = [
    "Brand",
    "Category",
    "Client",
    "Vendor",
    "HELD_STATUSES",
    "Item",
    "ItemStatus",
    "ClientPayment",
    "InstallmentPlan",
    "InstallmentStatus",
    "ItemExpense",
    "VendorPayout",
]
