"""
Balance Effect Calculator -- the signed deltas a movement applies to accounts.

Responsibility:
    Given the balance-relevant state of one movement, compute the list of
    (account, signed delta) pairs that the movement contributes to account
    balances while it is on record.  Every mutation path in the kernel is
    expressed as "old effect out, new effect in" over these pairs.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  No SQLAlchemy, no
    session, no clock.  Services build a ``MovementState`` from an ORM row
    and hand it here.

Invariants enforced:
    - Settled expense  -> [(account, -total)]
    - Settled income   -> [(account, +total)]
    - Pending expense  -> []
    - Transfer         -> [(from, -amount), (to, +amount)]
    - MovementState consistency: pending implies no account; settled
      expense/income has exactly one account; a transfer has two distinct
      accounts and is always settled; only expenses may be pending.

Failure modes:
    - ValueError from MovementState.__post_init__ when the state is
      internally inconsistent.  Services validate caller input with typed
      errors first, so reaching this is a programming error.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.values import MovementType, Settlement

ZERO = Decimal("0")


@dataclass(frozen=True)
class MovementState:
    """
    The balance-relevant projection of a movement.

    Everything else on a movement (remark, items, category, code) has no
    bearing on balances and is absent here.
    """

    movement_type: MovementType
    settlement: Settlement
    total: Decimal
    account_id: UUID | None = None
    from_account_id: UUID | None = None
    to_account_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.total < ZERO:
            raise ValueError(f"Movement total must be non-negative: {self.total}")

        if self.movement_type == MovementType.TRANSFER:
            if self.settlement != Settlement.SETTLED:
                raise ValueError("Transfers are always settled")
            if self.from_account_id is None or self.to_account_id is None:
                raise ValueError("Transfer requires source and destination accounts")
            if self.from_account_id == self.to_account_id:
                raise ValueError("Transfer accounts must be distinct")
            if self.account_id is not None:
                raise ValueError("Transfer must not reference a single account")
            return

        if self.from_account_id is not None or self.to_account_id is not None:
            raise ValueError(f"{self.movement_type.value} must not carry transfer legs")

        if self.settlement == Settlement.PENDING_CREDIT:
            if self.movement_type != MovementType.EXPENSE:
                raise ValueError("Only expenses may be pending credit")
            if self.account_id is not None:
                raise ValueError("Pending credit must not reference an account")
        elif self.account_id is None:
            raise ValueError("Settled movement requires an account")

    @property
    def is_pending(self) -> bool:
        return self.settlement == Settlement.PENDING_CREDIT


@dataclass(frozen=True)
class BalanceEffect:
    """A signed delta applied to one account's balance."""

    account_id: UUID
    delta: Decimal


def effect(state: MovementState) -> tuple[BalanceEffect, ...]:
    """Compute the effect a movement contributes while in ``state``."""
    if state.movement_type == MovementType.TRANSFER:
        return (
            BalanceEffect(state.from_account_id, -state.total),
            BalanceEffect(state.to_account_id, state.total),
        )

    if state.is_pending:
        return ()

    if state.movement_type == MovementType.INCOME:
        return (BalanceEffect(state.account_id, state.total),)
    return (BalanceEffect(state.account_id, -state.total),)


def reverse(effects: Iterable[BalanceEffect]) -> tuple[BalanceEffect, ...]:
    """Negate every delta."""
    return tuple(BalanceEffect(e.account_id, -e.delta) for e in effects)


def effect_on(effects: Iterable[BalanceEffect], account_id: UUID) -> Decimal:
    """Sum of the deltas that ``effects`` apply to one account."""
    return sum(
        (e.delta for e in effects if e.account_id == account_id),
        ZERO,
    )


def net_adjustments(
    old: Iterable[BalanceEffect],
    new: Iterable[BalanceEffect],
) -> tuple[BalanceEffect, ...]:
    """
    Merge "remove ``old``, apply ``new``" into the minimal set of updates.

    Deltas are summed per account; accounts whose net change is zero are
    dropped.  Order is first appearance (old legs before new legs), which
    keeps the output deterministic.
    """
    totals: dict[UUID, Decimal] = {}
    for e in (*reverse(old), *new):
        totals[e.account_id] = totals.get(e.account_id, ZERO) + e.delta
    return tuple(
        BalanceEffect(account_id, delta)
        for account_id, delta in totals.items()
        if delta != ZERO
    )
