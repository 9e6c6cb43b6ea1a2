"""
Value enums shared by the pure domain layer and the ORM models.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Models import these enums so that
    the effect calculator never has to import SQLAlchemy.
"""

from enum import Enum


class MovementType(str, Enum):
    """Kind of money movement."""

    EXPENSE = "Expense"
    INCOME = "Income"
    TRANSFER = "Transfer"


class Settlement(str, Enum):
    """Settlement state of a movement.

    Only expenses can be PENDING_CREDIT; incomes and transfers are always
    SETTLED.
    """

    SETTLED = "settled"
    PENDING_CREDIT = "pending_credit"


class AccountType(str, Enum):
    """Kind of account holding a balance."""

    CASH = "cash"
    BANK = "bank"
