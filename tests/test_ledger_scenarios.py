"""
End-to-end ledger scenarios.

Each scenario drives the public orchestrator API through a realistic
sequence and checks every balance along the way, plus the global
invariant: stored balance == opening balance + settled effects.
"""

from decimal import Decimal

import pytest

from ledger_kernel.exceptions import InsufficientBalanceError


class TestExpenseLifecycleScenario:
    """Expense created, edited, deferred to credit, then paid elsewhere."""

    def test_walkthrough(self, make_account, expense, orchestrator, owner_id, balance_of):
        a = make_account("Cash", "500")
        b = make_account("Bank", "1000", account_type="bank")

        result = expense(a.id, "200")
        assert balance_of(a.id) == Decimal("300")

        orchestrator.edit_movement(owner_id, result.movement_id, "250", "1", None, False)
        assert balance_of(a.id) == Decimal("250")

        orchestrator.edit_movement(owner_id, result.movement_id, "250", "1", None, True)
        assert balance_of(a.id) == Decimal("500")
        assert [v.id for v in orchestrator.pending_credits(owner_id)] == [result.movement_id]

        orchestrator.pay_credit(owner_id, result.movement_id, b.id)
        assert balance_of(a.id) == Decimal("500")
        assert balance_of(b.id) == Decimal("750")

        assert orchestrator.verify_balances(owner_id) == []


class TestTransferScenario:

    def test_transfer_then_shrink(self, make_account, orchestrator, owner_id, balance_of):
        a = make_account("A", "300")
        b = make_account("B", "750")

        result = orchestrator.create_transfer(owner_id, a.id, b.id, "100")
        assert (balance_of(a.id), balance_of(b.id)) == (Decimal("200"), Decimal("850"))

        orchestrator.edit_transfer(owner_id, result.movement_id, a.id, b.id, "50")
        assert (balance_of(a.id), balance_of(b.id)) == (Decimal("250"), Decimal("800"))

        assert orchestrator.verify_balances(owner_id) == []

    def test_transfer_preserves_total_holdings(self, make_account, orchestrator, owner_id):
        a = make_account("A", "300")
        b = make_account("B", "750")

        before = sum(r.balance for r in orchestrator.balances(owner_id))
        orchestrator.create_transfer(owner_id, a.id, b.id, "123.45")
        after = sum(r.balance for r in orchestrator.balances(owner_id))

        assert before == after


class TestInvariants:

    def test_sufficiency_gate(self, make_account, expense, balance_of):
        wallet = make_account("Wallet", "100")
        with pytest.raises(InsufficientBalanceError):
            expense(wallet.id, "150")
        assert balance_of(wallet.id) == Decimal("100")

    def test_pending_credit_is_neutral(self, make_account, expense, orchestrator, owner_id):
        make_account("A", "40")
        before = orchestrator.balances(owner_id)
        expense(None, "999", is_credit=True)
        assert orchestrator.balances(owner_id) == before

    def test_create_then_delete_is_identity(self, make_account, expense, income, orchestrator, owner_id):
        a = make_account("A", "400")
        b = make_account("B", "60")
        before = orchestrator.balances(owner_id)

        created = [
            expense(a.id, "120"),
            income(b.id, "15"),
            orchestrator.create_transfer(owner_id, a.id, b.id, "80"),
            expense(None, "33", is_credit=True),
        ]
        for result in reversed(created):
            orchestrator.delete_movement(owner_id, result.movement_id)

        assert orchestrator.balances(owner_id) == before

    def test_mixed_history_reconciles(self, make_account, expense, income, orchestrator, owner_id):
        a = make_account("A", "400")
        b = make_account("B", "300")
        c = make_account("C", "0")

        first = expense(a.id, "120")
        income(b.id, "15")
        transfer = orchestrator.create_transfer(owner_id, a.id, c.id, "80")
        credit = expense(None, "33", is_credit=True)

        orchestrator.edit_movement(owner_id, first.movement_id, "90", "2", None, False, account_id=b.id)
        orchestrator.edit_transfer(owner_id, transfer.movement_id, b.id, c.id, "10")
        orchestrator.pay_credit(owner_id, credit.movement_id, c.id)

        assert orchestrator.verify_balances(owner_id) == []
