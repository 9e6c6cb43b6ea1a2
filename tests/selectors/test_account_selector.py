"""
Tests for AccountSelector: balance listings and reconciliation.
"""

from decimal import Decimal

from sqlalchemy import select

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.values import AccountType
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.account_selector import AccountSelector


class TestBalances:

    def test_rows_sorted_by_name(self, make_account, orchestrator, owner_id):
        make_account("Wallet", "5")
        make_account("Checking", "100", account_type=AccountType.BANK)

        rows = orchestrator.balances(owner_id)

        assert [(r.name, r.account_type, r.balance) for r in rows] == [
            ("Checking", AccountType.BANK, Decimal("100")),
            ("Wallet", AccountType.CASH, Decimal("5")),
        ]

    def test_total_balance(self, make_account, session, owner_id):
        make_account("Wallet", "5")
        make_account("Checking", "100.25")
        assert AccountSelector(session).total_balance(owner_id) == Decimal("105.25")


class TestVerifyBalances:

    def test_consistent_ledger_reports_nothing(self, make_account, expense, income, orchestrator, owner_id):
        a = make_account("A", "500")
        b = make_account("B", "20")
        expense(a.id, "120")
        income(b.id, "30")
        orchestrator.create_transfer(owner_id, a.id, b.id, "50")
        expense(None, "99", is_credit=True)

        assert orchestrator.verify_balances(owner_id) == []

    def test_expected_balances(self, make_account, expense, session, owner_id):
        a = make_account("A", "500")
        expense(a.id, "120")
        assert AccountSelector(session).expected_balances(owner_id) == {a.id: Decimal("380")}

    def test_tampered_balance_is_reported(self, make_account, expense, orchestrator, session_factory, owner_id):
        a = make_account("A", "500")
        expense(a.id, "120")
        with session_scope(session_factory) as s:
            row = s.execute(select(Account).where(Account.id == a.id)).scalar_one()
            row.balance = Decimal("1000")

        (discrepancy,) = orchestrator.verify_balances(owner_id)

        assert discrepancy.account_id == a.id
        assert discrepancy.stored_balance == Decimal("1000")
        assert discrepancy.expected_balance == Decimal("380")
        assert discrepancy.difference == Decimal("620")

    def test_manual_correction_stays_consistent(self, make_account, expense, orchestrator, owner_id):
        a = make_account("A", "500")
        expense(a.id, "120")
        orchestrator.update_account(owner_id, a.id, balance="400")
        assert orchestrator.verify_balances(owner_id) == []
