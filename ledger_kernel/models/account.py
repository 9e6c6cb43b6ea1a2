"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for owner accounts (cash wallets, bank
    accounts) and their running balance.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - balance == opening_balance + sum of the effects of every settled
      movement referencing this account.  Only the movement lifecycle
      service (via AccountStore.adjust_balance) changes ``balance``; a
      manual correction moves ``opening_balance`` by the same delta.
    - No negative-balance constraint at this layer.  Sufficiency is a
      lifecycle pre-check, and paying a credit may legitimately overdraw.

Failure modes:
    - AccountNotFoundError when a call references an id outside the
      caller's owner scope (raised by AccountStore, not this model).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import AccountType


class Account(TrackedBase):
    """
    A balance-holding account belonging to exactly one owner.

    Guarantees:
        - owner_id is non-null; every lookup is owner-scoped.
        - account_type is one of CASH or BANK.
        - bank_name / account_number are descriptive only.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_account_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    bank_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    account_number: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    # Balance the account was opened with (plus any manual corrections)
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    # Current balance, maintained by the lifecycle service
    balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<Account {self.name}: {self.balance}>"

    @property
    def is_bank(self) -> bool:
        return self.account_type == AccountType.BANK
