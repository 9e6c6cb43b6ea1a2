"""
SQLite transaction mode tests.

Writing scopes begin with BEGIN IMMEDIATE; read-only scopes and the
orchestrator's lock-key resolution begin deferred and never take the
database write lock.
"""

import pytest
from sqlalchemy import event, select

from ledger_kernel.db.engine import session_scope
from ledger_kernel.models.account import Account


@pytest.fixture
def begins(engine):
    """Record the BEGIN statements issued on the engine."""
    if engine.dialect.name != "sqlite":
        pytest.skip("SQLite transaction mode only")
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("BEGIN"):
            statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine, "before_cursor_execute", _record)


class TestSessionScopeBegin:

    def test_writing_scope_begins_immediate(self, begins, session_factory):
        with session_scope(session_factory) as session:
            session.execute(select(Account)).all()
        assert begins == ["BEGIN IMMEDIATE"]

    def test_read_only_scope_begins_deferred(self, begins, session_factory):
        with session_scope(session_factory, read_only=True) as session:
            session.execute(select(Account)).all()
        assert begins == ["BEGIN"]


class TestOrchestratorBegin:

    def test_reads_never_take_write_lock(self, make_account, begins, orchestrator, owner_id):
        wallet = make_account("Wallet", "10")
        begins.clear()

        orchestrator.get_account(owner_id, wallet.id)
        orchestrator.list_movements(owner_id)

        assert "BEGIN IMMEDIATE" not in begins

    def test_key_resolution_is_read_only(self, make_account, expense, begins, orchestrator, owner_id):
        wallet = make_account("Wallet", "100")
        result = expense(wallet.id, "10")
        begins.clear()

        orchestrator.delete_movement(owner_id, result.movement_id)

        # one deferred begin per probe, one immediate begin for the write
        assert begins == ["BEGIN", "BEGIN IMMEDIATE"]
