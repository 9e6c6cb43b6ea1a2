"""Read-only selectors over accounts, movements and reference catalogs."""

from ledger_kernel.selectors.account_selector import (
    AccountBalanceRow,
    AccountSelector,
    BalanceDiscrepancy,
)
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.catalog_selector import (
    CatalogSelector,
    CategoryInfo,
    ItemInfo,
)
from ledger_kernel.selectors.movement_selector import (
    CategoryTotal,
    MovementSelector,
    MovementSummary,
    MovementView,
)

__all__ = [
    "AccountBalanceRow",
    "AccountSelector",
    "BalanceDiscrepancy",
    "BaseSelector",
    "CatalogSelector",
    "CategoryInfo",
    "CategoryTotal",
    "ItemInfo",
    "MovementSelector",
    "MovementSummary",
    "MovementView",
]
