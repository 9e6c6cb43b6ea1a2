"""
LedgerOrchestrator -- the atomic, serialized entry point for ledger calls.

Responsibility:
    Owns the transaction boundary and the per-account mutual exclusion for
    every balance-affecting call, and exposes read helpers over the
    selectors.  Callers never see a Session.

Architecture position:
    Kernel > Services -- top of the imperative shell.  Delegates lifecycle
    work to MovementLifecycleService, account maintenance to AccountStore,
    and reads to the selectors.

Call flow (balance-affecting operations):
    1. Resolve lock keys in a short read-only probe session: the accounts
       named by the caller plus, for an existing movement, the movement id
       and the accounts it currently references.
    2. Acquire those keys from the AccountLockManager in global order.
    3. Open the real transaction and resolve the keys again.  If the set
       grew (another call re-pointed the movement in between), leave the
       transaction without writing and start over.
    4. Run the operation; commit on success, roll back on any exception.

Invariants enforced:
    - Atomicity: all balance adjustments and the movement write of one call
      commit together or not at all.
    - Serializable per-account mutation: two calls touching the same
      account or movement never interleave their read-modify-write.
    - No retry of store failures: only the lock-scope resolution above is
      repeated, and it repeats before anything is written.

Failure modes:
    - Every LedgerKernelError raised by the services propagates unchanged
      after rollback.
    - LockTimeoutError if a key is not acquired within the configured time.
    - LockScopeError if the involved accounts keep changing.

Audit relevance:
    Each call runs under a LogContext carrying a fresh correlation_id, the
    owner id and the operation name, so every balance_adjusted line of one
    call can be grouped.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import AccountType, MovementType, Settlement
from ledger_kernel.exceptions import LedgerKernelError, LockScopeError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.account_selector import (
    AccountBalanceRow,
    AccountSelector,
    BalanceDiscrepancy,
)
from ledger_kernel.selectors.movement_selector import (
    CategoryTotal,
    MovementSelector,
    MovementSummary,
    MovementView,
)
from ledger_kernel.services.account_store import AccountInfo, AccountStore
from ledger_kernel.services.code_service import DEFAULT_COUNTER_WIDTH, MovementCodeService
from ledger_kernel.services.lock_manager import AccountLockManager
from ledger_kernel.services.movement_service import MovementInfo, MovementLifecycleService

logger = get_logger("services.ledger_orchestrator")

T = TypeVar("T")


@dataclass(frozen=True)
class MovementResult:
    """Identity of a newly created movement."""

    movement_id: UUID
    code: str


class LedgerOrchestrator:
    """
    Public API of the ledger kernel.

    Usage:
        orchestrator = LedgerOrchestrator(get_session_factory())
        result = orchestrator.create_movement(owner_id, MovementType.EXPENSE, ...)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        lock_manager: AccountLockManager | None = None,
        clock: Clock | None = None,
        max_lock_rounds: int = 3,
        code_counter_width: int = DEFAULT_COUNTER_WIDTH,
    ):
        self._session_factory = session_factory
        self._locks = lock_manager or AccountLockManager()
        self._clock = clock or SystemClock()
        self._max_lock_rounds = max_lock_rounds
        self._code_counter_width = code_counter_width

    def _lifecycle(self, session: Session) -> MovementLifecycleService:
        return MovementLifecycleService(
            session,
            self._clock,
            MovementCodeService(session, self._code_counter_width),
        )

    def _resolve_keys(
        self,
        session: Session,
        owner_id: UUID,
        movement_id: UUID | None,
        account_ids: Iterable[UUID | None],
    ) -> frozenset[str]:
        keys = {str(a) for a in account_ids if a is not None}
        if movement_id is not None:
            keys.add(str(movement_id))
            involved = self._lifecycle(session).involved_accounts(movement_id, owner_id)
            keys.update(str(a) for a in involved)
        return frozenset(keys)

    def _run(
        self,
        operation: str,
        owner_id: UUID,
        work: Callable[[Session], T],
        movement_id: UUID | None = None,
        account_ids: Sequence[UUID | None] = (),
    ) -> T:
        """Execute ``work`` atomically while holding every involved key."""
        with LogContext.bind(
            correlation_id=str(uuid4()),
            owner_id=owner_id,
            operation=operation,
            movement_id=movement_id,
        ):
            started = time.monotonic()
            for attempt in range(1, self._max_lock_rounds + 1):
                with session_scope(self._session_factory, read_only=True) as probe:
                    keys = self._resolve_keys(probe, owner_id, movement_id, account_ids)

                with self._locks.acquire(keys):
                    with session_scope(self._session_factory) as session:
                        current = self._resolve_keys(session, owner_id, movement_id, account_ids)
                        if current <= keys:
                            try:
                                result = work(session)
                            except LedgerKernelError:
                                logger.warning("ledger_call_rejected", exc_info=True)
                                raise
                            logger.info(
                                "ledger_call_completed",
                                extra={
                                    "attempt": attempt,
                                    "lock_keys": len(keys),
                                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                                },
                            )
                            return result

                logger.info(
                    "lock_scope_changed",
                    extra={"attempt": attempt, "lock_keys": len(keys)},
                )

            raise LockScopeError(operation, self._max_lock_rounds)

    def _read(self, work: Callable[[Session], T]) -> T:
        with session_scope(self._session_factory, read_only=True) as session:
            return work(session)

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def create_movement(
        self,
        owner_id: UUID,
        movement_type: MovementType | str,
        item_ids: Sequence[UUID],
        price: Decimal | int | str,
        quantity: Decimal | int | str = Decimal("1"),
        remark: str | None = None,
        account_id: UUID | None = None,
        category_id: UUID | None = None,
        occurred_at: datetime | None = None,
        is_multi_item: bool = False,
        is_credit: bool = False,
    ) -> MovementResult:
        """Record an expense or income.  See MovementLifecycleService.create_movement."""
        info = self._run(
            "create_movement",
            owner_id,
            lambda session: self._lifecycle(session).create_movement(
                owner_id,
                movement_type,
                item_ids,
                price,
                quantity=quantity,
                remark=remark,
                account_id=account_id,
                category_id=category_id,
                occurred_at=occurred_at,
                is_multi_item=is_multi_item,
                is_credit=is_credit,
            ),
            account_ids=(None if is_credit else account_id,),
        )
        return MovementResult(movement_id=info.id, code=info.code)

    def edit_movement(
        self,
        owner_id: UUID,
        movement_id: UUID,
        price: Decimal | int | str,
        quantity: Decimal | int | str,
        remark: str | None,
        is_credit: bool,
        account_id: UUID | None = None,
    ) -> MovementInfo:
        return self._run(
            "edit_movement",
            owner_id,
            lambda session: self._lifecycle(session).edit_movement(
                owner_id, movement_id, price, quantity, remark, is_credit, account_id,
            ),
            movement_id=movement_id,
            account_ids=(account_id,),
        )

    def pay_credit(self, owner_id: UUID, movement_id: UUID, account_id: UUID) -> MovementInfo:
        return self._run(
            "pay_credit",
            owner_id,
            lambda session: self._lifecycle(session).pay_credit(owner_id, movement_id, account_id),
            movement_id=movement_id,
            account_ids=(account_id,),
        )

    def delete_movement(self, owner_id: UUID, movement_id: UUID) -> MovementInfo:
        return self._run(
            "delete_movement",
            owner_id,
            lambda session: self._lifecycle(session).delete_movement(owner_id, movement_id),
            movement_id=movement_id,
        )

    def create_transfer(
        self,
        owner_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Decimal | int | str,
        remark: str | None = None,
        occurred_at: datetime | None = None,
    ) -> MovementResult:
        info = self._run(
            "create_transfer",
            owner_id,
            lambda session: self._lifecycle(session).create_transfer(
                owner_id, from_account_id, to_account_id, amount,
                remark=remark, occurred_at=occurred_at,
            ),
            account_ids=(from_account_id, to_account_id),
        )
        return MovementResult(movement_id=info.id, code=info.code)

    def edit_transfer(
        self,
        owner_id: UUID,
        movement_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Decimal | int | str,
        remark: str | None = None,
    ) -> MovementInfo:
        return self._run(
            "edit_transfer",
            owner_id,
            lambda session: self._lifecycle(session).edit_transfer(
                owner_id, movement_id, from_account_id, to_account_id, amount, remark=remark,
            ),
            movement_id=movement_id,
            account_ids=(from_account_id, to_account_id),
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def open_account(
        self,
        owner_id: UUID,
        account_type: AccountType | str,
        name: str,
        opening_balance: Decimal | int | str = Decimal("0"),
        bank_name: str | None = None,
        account_number: str | None = None,
    ) -> AccountInfo:
        return self._run(
            "open_account",
            owner_id,
            lambda session: AccountStore(session).create_account(
                owner_id, account_type, name, opening_balance, bank_name, account_number,
            ),
        )

    def update_account(
        self,
        owner_id: UUID,
        account_id: UUID,
        name: str | None = None,
        account_type: AccountType | str | None = None,
        bank_name: str | None = None,
        account_number: str | None = None,
        balance: Decimal | int | str | None = None,
    ) -> AccountInfo:
        return self._run(
            "update_account",
            owner_id,
            lambda session: AccountStore(session).update_account(
                account_id, owner_id,
                name=name,
                account_type=account_type,
                bank_name=bank_name,
                account_number=account_number,
                balance=balance,
            ),
            account_ids=(account_id,),
        )

    def delete_account(self, owner_id: UUID, account_id: UUID) -> None:
        self._run(
            "delete_account",
            owner_id,
            lambda session: AccountStore(session).delete_account(account_id, owner_id),
            account_ids=(account_id,),
        )

    def get_account(self, owner_id: UUID, account_id: UUID) -> AccountInfo:
        return self._read(lambda session: AccountStore(session).get(account_id, owner_id))

    def list_accounts(self, owner_id: UUID) -> list[AccountInfo]:
        return self._read(lambda session: AccountStore(session).list_accounts(owner_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_movement(self, owner_id: UUID, movement_id: UUID) -> MovementView:
        return self._read(lambda session: MovementSelector(session).get_movement(owner_id, movement_id))

    def list_movements(
        self,
        owner_id: UUID,
        movement_type: MovementType | None = None,
        settlement: Settlement | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        account_id: UUID | None = None,
    ) -> list[MovementView]:
        return self._read(
            lambda session: MovementSelector(session).list_movements(
                owner_id,
                movement_type=movement_type,
                settlement=settlement,
                start=start,
                end=end,
                account_id=account_id,
            )
        )

    def pending_credits(self, owner_id: UUID) -> list[MovementView]:
        return self._read(lambda session: MovementSelector(session).pending_credits(owner_id))

    def summarize(
        self,
        owner_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MovementSummary:
        return self._read(lambda session: MovementSelector(session).summarize(owner_id, start, end))

    def category_totals(
        self,
        owner_id: UUID,
        movement_type: MovementType,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[CategoryTotal]:
        return self._read(
            lambda session: MovementSelector(session).category_totals(
                owner_id, movement_type, start, end,
            )
        )

    def balances(self, owner_id: UUID) -> list[AccountBalanceRow]:
        return self._read(lambda session: AccountSelector(session).balances(owner_id))

    def verify_balances(self, owner_id: UUID) -> list[BalanceDiscrepancy]:
        return self._read(lambda session: AccountSelector(session).verify_balances(owner_id))
