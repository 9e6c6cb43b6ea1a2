"""
Transition planner -- turns a lifecycle request into checks and adjustments.

Responsibility:
    For every lifecycle operation (create, edit, pay, delete, transfer edit)
    compute, without touching storage:
      1. the sufficiency checks that must pass against current balances, and
      2. the minimal balance adjustments that reconcile the old effect with
         the new one.
    The movement service executes a ``BalancePlan`` by running all checks
    first and only then applying the adjustments.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Edit branching is decided ONCE, as an ``EditTransition`` tag computed
      from (was pending?, will be pending?, account changed?).  Each tag has
      its own planning branch so "reverse old, apply new" is auditable per
      case.
    - For every plan, ``adjustments == net_adjustments(effect(old), effect(new))``.
    - Checks never depend on adjustments having been applied.

Failure modes:
    - ValueError when asked to plan a transition the caller should have
      rejected (settling without an account, deferring an income).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.effects import (
    ZERO,
    BalanceEffect,
    MovementState,
    effect,
    effect_on,
    net_adjustments,
)
from ledger_kernel.domain.values import MovementType, Settlement


class EditTransition(str, Enum):
    """The five ways a non-transfer edit can move a movement."""

    SETTLE = "settle"                            # pending -> settled
    DEFER = "defer"                              # settled -> pending
    ADJUST_SAME_ACCOUNT = "adjust_same_account"  # settled -> settled, same account
    MOVE_ACCOUNT = "move_account"                # settled -> settled, new account
    PENDING_ONLY = "pending_only"                # pending -> pending


@dataclass(frozen=True)
class SufficiencyCheck:
    """
    Balance precondition on one account.

    Passes iff ``balance + credit_back >= requested``.  ``credit_back`` is the
    amount the account would regain if the movement's prior effect on it were
    reversed first (transfer edits keeping the same source).
    """

    account_id: UUID
    requested: Decimal
    credit_back: Decimal = ZERO

    def available(self, balance: Decimal) -> Decimal:
        return balance + self.credit_back

    def passes(self, balance: Decimal) -> bool:
        return self.available(balance) >= self.requested


@dataclass(frozen=True)
class BalancePlan:
    """Checks to run and adjustments to apply for one lifecycle call."""

    old: MovementState | None
    new: MovementState | None
    checks: tuple[SufficiencyCheck, ...] = ()
    adjustments: tuple[BalanceEffect, ...] = ()
    transition: EditTransition | None = field(default=None)

    @property
    def touched_accounts(self) -> tuple[UUID, ...]:
        """Every account the plan reads or writes, in lock order."""
        ids = {c.account_id for c in self.checks}
        ids.update(a.account_id for a in self.adjustments)
        return tuple(sorted(ids, key=str))


def _expense_check(state: MovementState) -> tuple[SufficiencyCheck, ...]:
    if state.movement_type == MovementType.EXPENSE and not state.is_pending:
        return (SufficiencyCheck(state.account_id, state.total),)
    return ()


def plan_create(new: MovementState) -> BalancePlan:
    """Plan the insertion of a movement in state ``new``."""
    if new.movement_type == MovementType.TRANSFER:
        checks = (SufficiencyCheck(new.from_account_id, new.total),)
    else:
        checks = _expense_check(new)
    return BalancePlan(
        old=None,
        new=new,
        checks=checks,
        adjustments=net_adjustments((), effect(new)),
    )


def plan_delete(old: MovementState) -> BalancePlan:
    """Plan the removal of a movement: reverse whatever it contributes."""
    return BalancePlan(old=old, new=None, adjustments=net_adjustments(effect(old), ()))


def plan_pay(old: MovementState, account_id: UUID) -> BalancePlan:
    """
    Plan settling a pending movement against ``account_id``.

    No sufficiency check: paying a credit is allowed to overdraw.
    """
    if not old.is_pending:
        raise ValueError("Only pending movements can be paid")
    new = MovementState(
        movement_type=old.movement_type,
        settlement=Settlement.SETTLED,
        total=old.total,
        account_id=account_id,
    )
    return BalancePlan(old=old, new=new, adjustments=net_adjustments(effect(old), effect(new)))


def classify_edit(
    old: MovementState,
    will_be_credit: bool,
    new_account_id: UUID | None,
) -> EditTransition:
    """Decide which of the five edit transitions applies."""
    if old.is_pending and not will_be_credit:
        return EditTransition.SETTLE
    if not old.is_pending and will_be_credit:
        return EditTransition.DEFER
    if old.is_pending:
        return EditTransition.PENDING_ONLY
    if new_account_id is None or new_account_id == old.account_id:
        return EditTransition.ADJUST_SAME_ACCOUNT
    return EditTransition.MOVE_ACCOUNT


def plan_edit(
    old: MovementState,
    new_total: Decimal,
    will_be_credit: bool,
    new_account_id: UUID | None,
) -> BalancePlan:
    """Plan an in-place edit of a non-transfer movement."""
    if old.movement_type == MovementType.TRANSFER:
        raise ValueError("Transfers are planned with plan_transfer_edit")

    transition = classify_edit(old, will_be_credit, new_account_id)
    kind = old.movement_type

    if transition == EditTransition.SETTLE:
        if new_account_id is None:
            raise ValueError("Settling a pending movement requires an account")
        new = MovementState(kind, Settlement.SETTLED, new_total, account_id=new_account_id)
        checks = _expense_check(new)

    elif transition == EditTransition.DEFER:
        new = MovementState(kind, Settlement.PENDING_CREDIT, new_total)
        checks = ()

    elif transition == EditTransition.PENDING_ONLY:
        new = MovementState(kind, Settlement.PENDING_CREDIT, new_total)
        checks = ()

    elif transition == EditTransition.ADJUST_SAME_ACCOUNT:
        new = MovementState(kind, Settlement.SETTLED, new_total, account_id=old.account_id)
        delta = effect_on(effect(new), old.account_id) - effect_on(effect(old), old.account_id)
        if kind == MovementType.EXPENSE and delta < ZERO:
            checks = (SufficiencyCheck(old.account_id, -delta),)
        else:
            checks = ()

    else:  # MOVE_ACCOUNT
        new = MovementState(kind, Settlement.SETTLED, new_total, account_id=new_account_id)
        checks = _expense_check(new)

    return BalancePlan(
        old=old,
        new=new,
        checks=checks,
        adjustments=net_adjustments(effect(old), effect(new)),
        transition=transition,
    )


def plan_transfer_edit(
    old: MovementState,
    from_account_id: UUID,
    to_account_id: UUID,
    amount: Decimal,
) -> BalancePlan:
    """
    Plan re-pointing and/or re-sizing a transfer.

    The source account must cover ``amount`` after hypothetically reversing
    every leg of the old transfer that touched it, so shrinking or growing a
    transfer on the same source is judged on the difference, not the total.
    """
    if old.movement_type != MovementType.TRANSFER:
        raise ValueError("plan_transfer_edit requires a transfer")

    new = MovementState(
        movement_type=MovementType.TRANSFER,
        settlement=Settlement.SETTLED,
        total=amount,
        from_account_id=from_account_id,
        to_account_id=to_account_id,
    )
    old_effects = effect(old)
    check = SufficiencyCheck(
        from_account_id,
        amount,
        credit_back=-effect_on(old_effects, from_account_id),
    )
    return BalancePlan(
        old=old,
        new=new,
        checks=(check,),
        adjustments=net_adjustments(old_effects, effect(new)),
    )
