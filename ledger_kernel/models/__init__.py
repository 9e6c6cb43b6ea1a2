"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.catalog import Category, Item, Unit
from ledger_kernel.models.movement import Movement

__all__ = [
    "Account",
    "Category",
    "Item",
    "Movement",
    "Unit",
]
