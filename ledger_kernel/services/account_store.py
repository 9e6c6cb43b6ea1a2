"""
AccountStore -- owner-scoped account records and atomic balance deltas.

Responsibility:
    Holds account rows and their current balance.  Exposes owner-scoped
    reads, row locking, and the single sanctioned balance mutation
    ``adjust_balance``.  Also handles account maintenance (open, update,
    delete) for the owner.

Architecture position:
    Kernel > Services -- imperative shell.  Used by MovementLifecycleService
    and LedgerOrchestrator.

Invariants enforced:
    - Owner scoping: an account that exists under another owner is reported
      exactly like one that does not exist (AccountNotFoundError).
    - Lock ordering: ``lock()`` takes row locks in ascending id order so two
      calls touching the same pair of accounts cannot deadlock.
    - No negative-balance enforcement here.  Sufficiency is decided by the
      lifecycle service before any adjustment is issued.
    - A manual balance correction in ``update_account`` shifts
      ``opening_balance`` by the same delta, keeping
      balance == opening_balance + sum(settled effects).

Failure modes:
    - AccountNotFoundError for ids outside the owner's scope.
    - InvalidInputError for blank names or unknown account types.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import to_money
from ledger_kernel.domain.values import AccountType
from ledger_kernel.exceptions import AccountNotFoundError, InvalidInputError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_store")


@dataclass(frozen=True)
class AccountInfo:
    """Immutable DTO for account data."""

    id: UUID
    owner_id: UUID
    account_type: AccountType
    name: str
    bank_name: str | None
    account_number: str | None
    opening_balance: Decimal
    balance: Decimal


def _coerce_account_type(value: AccountType | str) -> AccountType:
    try:
        return AccountType(value)
    except ValueError as exc:
        raise InvalidInputError("account_type", f"unknown account type {value!r}") from exc


def _coerce_amount(field: str, value) -> Decimal:
    try:
        return to_money(value)
    except ValueError as exc:
        raise InvalidInputError(field, str(exc)) from exc


class AccountStore(BaseService[Account]):
    """
    Service for account rows and balances.

    All public reads return AccountInfo DTOs; the lifecycle service works
    with the locked ORM rows returned by ``lock()``.
    """

    def _to_dto(self, account: Account) -> AccountInfo:
        return AccountInfo(
            id=account.id,
            owner_id=account.owner_id,
            account_type=AccountType(account.account_type),
            name=account.name,
            bank_name=account.bank_name,
            account_number=account.account_number,
            opening_balance=Decimal(account.opening_balance),
            balance=Decimal(account.balance),
        )

    def _find_row(self, account_id: UUID, owner_id: UUID) -> Account | None:
        account = self.session.get(Account, account_id)
        if account is None or account.owner_id != owner_id:
            return None
        return account

    def _get_row(self, account_id: UUID, owner_id: UUID) -> Account:
        account = self._find_row(account_id, owner_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def exists(self, account_id: UUID, owner_id: UUID) -> bool:
        return self._find_row(account_id, owner_id) is not None

    def get(self, account_id: UUID, owner_id: UUID) -> AccountInfo:
        """
        Get an account by id within the owner's scope.

        Raises:
            AccountNotFoundError: If the account doesn't exist for this owner.
        """
        return self._to_dto(self._get_row(account_id, owner_id))

    def list_accounts(self, owner_id: UUID) -> list[AccountInfo]:
        """All of the owner's accounts, ordered by name."""
        accounts = self.session.execute(
            select(Account)
            .where(Account.owner_id == owner_id)
            .order_by(Account.name, Account.id)
        ).scalars().all()
        return [self._to_dto(a) for a in accounts]

    def lock(
        self,
        account_ids: Iterable[UUID],
        owner_id: UUID,
        missing_ok: bool = False,
    ) -> dict[UUID, Account]:
        """
        Lock account rows for update in ascending id order.

        Rows are re-read (populate_existing) so the returned balances are the
        committed values at lock time, not stale identity-map copies.

        Args:
            account_ids: Accounts to lock; duplicates are ignored.
            owner_id: Owner scope.
            missing_ok: If True, absent accounts are left out of the result
                instead of raising.

        Returns:
            Mapping of account id to locked Account row.

        Raises:
            AccountNotFoundError: If an account is absent and missing_ok is False.
        """
        locked: dict[UUID, Account] = {}
        for account_id in sorted(set(account_ids), key=str):
            account = self.session.execute(
                select(Account)
                .where(Account.id == account_id, Account.owner_id == owner_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if account is None:
                if missing_ok:
                    continue
                raise AccountNotFoundError(str(account_id))
            locked[account_id] = account
        return locked

    def adjust_balance(self, account_id: UUID, owner_id: UUID, delta: Decimal) -> Decimal:
        """
        Add ``delta`` to the account's balance.

        Callers must hold the account's lock (see LedgerOrchestrator) so that
        this read-modify-write cannot interleave with another one.

        Returns:
            The new balance.

        Raises:
            AccountNotFoundError: If the account doesn't exist for this owner.
        """
        account = self._get_row(account_id, owner_id)
        before = Decimal(account.balance)
        account.balance = before + delta
        account.updated_by_id = owner_id
        self.session.flush()
        logger.info(
            "balance_adjusted",
            extra={
                "account_id": str(account_id),
                "delta": str(delta),
                "balance_before": str(before),
                "balance_after": str(account.balance),
            },
        )
        return Decimal(account.balance)

    def create_account(
        self,
        owner_id: UUID,
        account_type: AccountType | str,
        name: str,
        opening_balance: Decimal | int | str = Decimal("0"),
        bank_name: str | None = None,
        account_number: str | None = None,
    ) -> AccountInfo:
        """
        Open a new account for the owner.

        Args:
            owner_id: Owning identity.
            account_type: CASH or BANK.
            name: Display name (required).
            opening_balance: Starting balance.
            bank_name: Optional bank name.
            account_number: Optional account number.

        Returns:
            Created AccountInfo DTO.
        """
        if not name or not name.strip():
            raise InvalidInputError("name", "account name is required")
        opening = _coerce_amount("opening_balance", opening_balance)

        account = Account(
            owner_id=owner_id,
            account_type=_coerce_account_type(account_type).value,
            name=name.strip(),
            bank_name=bank_name or None,
            account_number=account_number or None,
            opening_balance=opening,
            balance=opening,
            created_by_id=owner_id,
        )
        self.session.add(account)
        self.session.flush()
        logger.info(
            "account_opened",
            extra={"account_id": str(account.id), "opening_balance": str(opening)},
        )
        return self._to_dto(account)

    def update_account(
        self,
        account_id: UUID,
        owner_id: UUID,
        name: str | None = None,
        account_type: AccountType | str | None = None,
        bank_name: str | None = None,
        account_number: str | None = None,
        balance: Decimal | int | str | None = None,
    ) -> AccountInfo:
        """
        Update account details.

        A new ``balance`` is treated as a manual correction: the difference is
        folded into ``opening_balance`` so movement effects stay reconcilable.

        Returns:
            Updated AccountInfo DTO.
        """
        account = self._get_row(account_id, owner_id)

        if name is not None:
            if not name.strip():
                raise InvalidInputError("name", "account name is required")
            account.name = name.strip()
        if account_type is not None:
            account.account_type = _coerce_account_type(account_type).value
        if bank_name is not None:
            account.bank_name = bank_name or None
        if account_number is not None:
            account.account_number = account_number or None
        if balance is not None:
            target = _coerce_amount("balance", balance)
            correction = target - Decimal(account.balance)
            account.opening_balance = Decimal(account.opening_balance) + correction
            account.balance = target
            logger.warning(
                "account_balance_corrected",
                extra={"account_id": str(account_id), "correction": str(correction)},
            )

        account.updated_by_id = owner_id
        self.session.flush()
        return self._to_dto(account)

    def delete_account(self, account_id: UUID, owner_id: UUID) -> None:
        """
        Delete an account.

        Movements referencing it are left untouched; later reversals against
        it are skipped by the lifecycle service.
        """
        account = self._get_row(account_id, owner_id)
        self.session.delete(account)
        self.session.flush()
        logger.info("account_deleted", extra={"account_id": str(account_id)})
