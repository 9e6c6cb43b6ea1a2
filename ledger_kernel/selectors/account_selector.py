"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only account balance listings and balance
    reconciliation.
Architecture position: Kernel > Selectors.  Uses the pure effect calculator
    from domain/ so reconciliation applies exactly the same arithmetic as the
    lifecycle service.

Invariants enforced:
    - verify_balances() recomputes opening_balance + sum(settled effects)
      for every account from the movements on record and reports each
      account whose stored balance differs.  An empty result means the
      ledger is consistent.

Failure modes:
    - Movements referencing deleted accounts contribute to no account; they
      are not reported as discrepancies.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.effects import effect
from ledger_kernel.domain.values import AccountType
from ledger_kernel.models.account import Account
from ledger_kernel.models.movement import Movement
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountBalanceRow:
    account_id: UUID
    name: str
    account_type: AccountType
    opening_balance: Decimal
    balance: Decimal


@dataclass(frozen=True)
class BalanceDiscrepancy:
    """An account whose stored balance disagrees with its movements."""

    account_id: UUID
    name: str
    stored_balance: Decimal
    expected_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.expected_balance


class AccountSelector(BaseSelector[Account]):
    """Selector for account balances."""

    def _accounts(self, owner_id: UUID) -> list[Account]:
        return list(
            self.session.execute(
                select(Account)
                .where(Account.owner_id == owner_id)
                .order_by(Account.name, Account.id)
            ).scalars()
        )

    def balances(self, owner_id: UUID) -> list[AccountBalanceRow]:
        """Current balance of every account the owner holds, by name."""
        return [
            AccountBalanceRow(
                account_id=a.id,
                name=a.name,
                account_type=AccountType(a.account_type),
                opening_balance=Decimal(a.opening_balance),
                balance=Decimal(a.balance),
            )
            for a in self._accounts(owner_id)
        ]

    def total_balance(self, owner_id: UUID) -> Decimal:
        return sum((row.balance for row in self.balances(owner_id)), ZERO)

    def expected_balances(self, owner_id: UUID) -> dict[UUID, Decimal]:
        """opening_balance + sum of settled effects, per account."""
        expected = {a.id: Decimal(a.opening_balance) for a in self._accounts(owner_id)}
        movements = self.session.execute(
            select(Movement).where(Movement.owner_id == owner_id)
        ).scalars()
        for movement in movements:
            for leg in effect(movement.to_state()):
                if leg.account_id in expected:
                    expected[leg.account_id] += leg.delta
        return expected

    def verify_balances(self, owner_id: UUID) -> list[BalanceDiscrepancy]:
        """
        Reconcile stored balances against the movements on record.

        Returns:
            One BalanceDiscrepancy per inconsistent account (empty when
            every balance reconciles).
        """
        expected = self.expected_balances(owner_id)
        return [
            BalanceDiscrepancy(
                account_id=a.id,
                name=a.name,
                stored_balance=Decimal(a.balance),
                expected_balance=expected[a.id],
            )
            for a in self._accounts(owner_id)
            if Decimal(a.balance) != expected[a.id]
        ]
