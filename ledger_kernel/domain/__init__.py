"""Pure domain layer: value enums, balance effects, transition planning, clock."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.effects import (
    BalanceEffect,
    MovementState,
    effect,
    effect_on,
    net_adjustments,
    reverse,
)
from ledger_kernel.domain.transitions import (
    BalancePlan,
    EditTransition,
    SufficiencyCheck,
    classify_edit,
    plan_create,
    plan_delete,
    plan_edit,
    plan_pay,
    plan_transfer_edit,
)
from ledger_kernel.domain.values import AccountType, MovementType, Settlement

__all__ = [
    "AccountType",
    "BalanceEffect",
    "BalancePlan",
    "Clock",
    "DeterministicClock",
    "EditTransition",
    "MovementState",
    "MovementType",
    "Settlement",
    "SufficiencyCheck",
    "SystemClock",
    "classify_edit",
    "effect",
    "effect_on",
    "net_adjustments",
    "plan_create",
    "plan_delete",
    "plan_edit",
    "plan_pay",
    "plan_transfer_edit",
    "reverse",
]
