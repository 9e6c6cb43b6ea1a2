"""
Transition planner tests.

Each edit transition is planned purely into sufficiency checks and
adjustments; the adjustments always equal "reverse old, apply new".
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.effects import BalanceEffect, MovementState, effect, net_adjustments
from ledger_kernel.domain.transitions import (
    EditTransition,
    SufficiencyCheck,
    classify_edit,
    plan_create,
    plan_delete,
    plan_edit,
    plan_pay,
    plan_transfer_edit,
)
from ledger_kernel.domain.values import MovementType, Settlement

A = uuid4()
B = uuid4()
C = uuid4()


def expense(total: str, account=A) -> MovementState:
    return MovementState(MovementType.EXPENSE, Settlement.SETTLED, Decimal(total), account_id=account)


def income(total: str, account=A) -> MovementState:
    return MovementState(MovementType.INCOME, Settlement.SETTLED, Decimal(total), account_id=account)


def pending(total: str) -> MovementState:
    return MovementState(MovementType.EXPENSE, Settlement.PENDING_CREDIT, Decimal(total))


def transfer(total: str, source=A, destination=B) -> MovementState:
    return MovementState(
        MovementType.TRANSFER,
        Settlement.SETTLED,
        Decimal(total),
        from_account_id=source,
        to_account_id=destination,
    )


class TestSufficiencyCheck:

    def test_passes_when_balance_covers_request(self):
        assert SufficiencyCheck(A, Decimal("100")).passes(Decimal("100"))

    def test_fails_when_balance_short(self):
        assert not SufficiencyCheck(A, Decimal("150")).passes(Decimal("100"))

    def test_credit_back_counts_towards_available(self):
        check = SufficiencyCheck(A, Decimal("150"), credit_back=Decimal("100"))
        assert check.available(Decimal("60")) == Decimal("160")
        assert check.passes(Decimal("60"))


class TestClassifyEdit:

    @pytest.mark.parametrize(
        "old, will_be_credit, new_account, expected",
        [
            (pending("10"), False, A, EditTransition.SETTLE),
            (expense("10"), True, None, EditTransition.DEFER),
            (expense("10"), False, A, EditTransition.ADJUST_SAME_ACCOUNT),
            (expense("10"), False, None, EditTransition.ADJUST_SAME_ACCOUNT),
            (expense("10"), False, B, EditTransition.MOVE_ACCOUNT),
            (pending("10"), True, None, EditTransition.PENDING_ONLY),
        ],
    )
    def test_transition_tag(self, old, will_be_credit, new_account, expected):
        assert classify_edit(old, will_be_credit, new_account) == expected


class TestPlanCreate:

    def test_settled_expense_checks_full_total(self):
        plan = plan_create(expense("200"))
        assert plan.checks == (SufficiencyCheck(A, Decimal("200")),)
        assert plan.adjustments == (BalanceEffect(A, Decimal("-200")),)

    def test_income_has_no_check(self):
        plan = plan_create(income("50"))
        assert plan.checks == ()
        assert plan.adjustments == (BalanceEffect(A, Decimal("50")),)

    def test_pending_expense_touches_nothing(self):
        plan = plan_create(pending("250"))
        assert plan.checks == ()
        assert plan.adjustments == ()
        assert plan.touched_accounts == ()

    def test_transfer_checks_source(self):
        plan = plan_create(transfer("100"))
        assert plan.checks == (SufficiencyCheck(A, Decimal("100")),)
        assert set(plan.touched_accounts) == {A, B}


class TestPlanEdit:

    def test_settle_checks_new_account_for_new_total(self):
        plan = plan_edit(pending("250"), Decimal("250"), False, B)
        assert plan.transition == EditTransition.SETTLE
        assert plan.checks == (SufficiencyCheck(B, Decimal("250")),)
        assert plan.adjustments == (BalanceEffect(B, Decimal("-250")),)
        assert plan.new.settlement == Settlement.SETTLED
        assert plan.new.account_id == B

    def test_settle_without_account_is_a_programming_error(self):
        with pytest.raises(ValueError):
            plan_edit(pending("250"), Decimal("250"), False, None)

    def test_defer_reverses_old_effect_without_check(self):
        plan = plan_edit(expense("250"), Decimal("250"), True, None)
        assert plan.transition == EditTransition.DEFER
        assert plan.checks == ()
        assert plan.adjustments == (BalanceEffect(A, Decimal("250")),)
        assert plan.new.account_id is None
        assert plan.new.is_pending

    def test_same_account_increase_checks_only_delta(self):
        plan = plan_edit(expense("200"), Decimal("250"), False, A)
        assert plan.transition == EditTransition.ADJUST_SAME_ACCOUNT
        assert plan.checks == (SufficiencyCheck(A, Decimal("50")),)
        assert plan.adjustments == (BalanceEffect(A, Decimal("-50")),)

    def test_same_account_decrease_has_no_check(self):
        plan = plan_edit(expense("200"), Decimal("120"), False, A)
        assert plan.checks == ()
        assert plan.adjustments == (BalanceEffect(A, Decimal("80")),)

    def test_same_account_income_never_checked(self):
        plan = plan_edit(income("200"), Decimal("50"), False, A)
        assert plan.checks == ()
        assert plan.adjustments == (BalanceEffect(A, Decimal("-150")),)

    def test_move_account_checks_full_total_on_new_account(self):
        plan = plan_edit(expense("200"), Decimal("220"), False, B)
        assert plan.transition == EditTransition.MOVE_ACCOUNT
        assert plan.checks == (SufficiencyCheck(B, Decimal("220")),)
        assert plan.adjustments == (
            BalanceEffect(A, Decimal("200")),
            BalanceEffect(B, Decimal("-220")),
        )

    def test_pending_only_changes_nothing(self):
        plan = plan_edit(pending("10"), Decimal("99"), True, None)
        assert plan.transition == EditTransition.PENDING_ONLY
        assert plan.checks == ()
        assert plan.adjustments == ()
        assert plan.new.total == Decimal("99")

    def test_transfers_are_rejected(self):
        with pytest.raises(ValueError):
            plan_edit(transfer("10"), Decimal("5"), False, A)

    @pytest.mark.parametrize(
        "old, total, credit, account",
        [
            (pending("10"), "12", False, B),
            (expense("10"), "10", True, None),
            (expense("10"), "30", False, A),
            (expense("10"), "30", False, C),
            (pending("10"), "5", True, None),
        ],
    )
    def test_adjustments_equal_old_out_new_in(self, old, total, credit, account):
        plan = plan_edit(old, Decimal(total), credit, account)
        assert plan.adjustments == net_adjustments(effect(plan.old), effect(plan.new))


class TestPlanPayAndDelete:

    def test_pay_applies_effect_without_check(self):
        plan = plan_pay(pending("250"), B)
        assert plan.checks == ()
        assert plan.adjustments == (BalanceEffect(B, Decimal("-250")),)

    def test_pay_on_settled_is_a_programming_error(self):
        with pytest.raises(ValueError):
            plan_pay(expense("10"), B)

    def test_delete_reverses_both_transfer_legs(self):
        plan = plan_delete(transfer("100"))
        assert plan.adjustments == (
            BalanceEffect(A, Decimal("100")),
            BalanceEffect(B, Decimal("-100")),
        )

    def test_delete_pending_reverses_nothing(self):
        assert plan_delete(pending("40")).adjustments == ()


class TestPlanTransferEdit:

    def test_same_source_credits_back_old_amount(self):
        plan = plan_transfer_edit(transfer("100"), A, B, Decimal("150"))
        (check,) = plan.checks
        assert check.account_id == A
        assert check.credit_back == Decimal("100")
        assert plan.adjustments == (
            BalanceEffect(A, Decimal("-50")),
            BalanceEffect(B, Decimal("50")),
        )

    def test_new_source_gets_no_credit_back(self):
        plan = plan_transfer_edit(transfer("100"), C, B, Decimal("100"))
        (check,) = plan.checks
        assert check.account_id == C
        assert check.credit_back == Decimal("0")
        assert plan.adjustments == (
            BalanceEffect(A, Decimal("100")),
            BalanceEffect(C, Decimal("-100")),
        )

    def test_swapped_direction_credit_back_is_negative(self):
        """Old destination becoming the source must first give back what it received."""
        plan = plan_transfer_edit(transfer("100"), B, A, Decimal("100"))
        (check,) = plan.checks
        assert check.account_id == B
        assert check.credit_back == Decimal("-100")
        assert plan.adjustments == (
            BalanceEffect(A, Decimal("200")),
            BalanceEffect(B, Decimal("-200")),
        )

    def test_requires_a_transfer(self):
        with pytest.raises(ValueError):
            plan_transfer_edit(expense("10"), A, B, Decimal("10"))
