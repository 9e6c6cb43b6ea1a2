"""
MovementLifecycleService -- create, edit, pay, delete and transfer movements.

Responsibility:
    Validates caller input, builds the old/new ``MovementState`` for each
    lifecycle call, asks the pure planner for a ``BalancePlan``, and then
    executes it: lock the touched account rows, run every sufficiency check,
    and only then apply the balance adjustments and write the movement row.

Architecture position:
    Kernel > Services -- imperative shell.  Pure logic lives in
    ``ledger_kernel.domain.effects`` and ``ledger_kernel.domain.transitions``.
    Transaction boundaries and per-account mutual exclusion are owned by
    ``LedgerOrchestrator``; this service only flushes.

Invariants enforced:
    - Checks before writes: every InsufficientBalanceError, InvalidInputError,
      InvalidStateError and NotFoundError is raised before the first balance
      adjustment or movement write of the call.
    - Minimal updates: only the net per-account adjustments of
      "reverse old effect, apply new effect" are written.
    - Pay never checks sufficiency; paying a credit may overdraw.
    - Totals are rounded to two decimal places and must stay positive
      after rounding.  Multi-item price is stored rounded (price == total);
      single-item unit price keeps its entered precision and total is
      round(price x quantity).

Failure modes:
    - InsufficientBalanceError with the account name, available balance and
      requested amount.
    - InvalidInputError / NonPositiveAmountError / SameAccountTransferError
      for missing or contradictory fields.
    - InvalidStateError subclasses for wrong-path or wrong-state calls.
    - NotFoundError subclasses for ids outside the owner's scope.

Audit relevance:
    A reversal whose account was deleted in the meantime is skipped and
    logged as ``balance_adjustment_skipped`` (account deletion does not
    cascade to movements).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, round_money, to_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.effects import MovementState
from ledger_kernel.domain.transitions import (
    BalancePlan,
    EditTransition,
    classify_edit,
    plan_create,
    plan_delete,
    plan_edit,
    plan_pay,
    plan_transfer_edit,
)
from ledger_kernel.domain.values import MovementType, Settlement
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    CreditNotAllowedError,
    InsufficientBalanceError,
    InvalidInputError,
    MovementNotFoundError,
    MovementNotPendingError,
    MultiItemEditError,
    NonPositiveAmountError,
    SameAccountTransferError,
    TransferEditPathError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.movement import Movement
from ledger_kernel.selectors.catalog_selector import CatalogSelector
from ledger_kernel.services.account_store import AccountInfo, AccountStore
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.code_service import MovementCodeService

logger = get_logger("services.movement")

ONE = Decimal("1")


@dataclass(frozen=True)
class MovementInfo:
    """Immutable DTO for movement data."""

    id: UUID
    owner_id: UUID
    code: str
    movement_type: MovementType
    settlement: Settlement
    category_id: UUID | None
    item_ids: tuple[UUID, ...]
    price: Decimal
    quantity: Decimal
    total: Decimal
    remark: str | None
    account_id: UUID | None
    from_account_id: UUID | None
    to_account_id: UUID | None
    occurred_at: datetime
    is_multi_item: bool
    is_credit: bool

    @property
    def is_pending(self) -> bool:
        return self.settlement == Settlement.PENDING_CREDIT


def _positive(field: str, value) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise InvalidInputError(field, str(exc)) from exc
    if amount <= ZERO:
        raise NonPositiveAmountError(field, amount)
    return amount


def _booked_total(unit_price: Decimal, quantity: Decimal) -> Decimal:
    """Round price * quantity to cents; a total that rounds to zero is rejected."""
    total = round_money(unit_price * quantity)
    if total <= ZERO:
        raise NonPositiveAmountError("price", total)
    return total


def _coerce_movement_type(value: MovementType | str) -> MovementType:
    try:
        return MovementType(value)
    except ValueError as exc:
        raise InvalidInputError("movement_type", f"unknown movement type {value!r}") from exc


def _transfer_remark(source: AccountInfo, destination: AccountInfo) -> str:
    return f"{source.name} → {destination.name}"


class MovementLifecycleService(BaseService[Movement]):
    """
    Executes movement lifecycle operations inside the caller's transaction.

    Contract:
        Each public method validates, plans, checks, then writes.  It calls
        ``session.flush()`` but never commits; the caller commits or rolls
        back the whole call as one unit.

    Usage:
        service = MovementLifecycleService(session, clock)
        info = service.create_movement(owner_id, MovementType.EXPENSE, ...)
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        code_service: MovementCodeService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._codes = code_service or MovementCodeService(session)
        self._accounts = AccountStore(session)
        self._catalog = CatalogSelector(session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_dto(self, movement: Movement) -> MovementInfo:
        return MovementInfo(
            id=movement.id,
            owner_id=movement.owner_id,
            code=movement.code,
            movement_type=MovementType(movement.movement_type),
            settlement=Settlement(movement.settlement),
            category_id=movement.category_id,
            item_ids=tuple(movement.item_uuid_list),
            price=Decimal(movement.price),
            quantity=Decimal(movement.quantity),
            total=Decimal(movement.total),
            remark=movement.remark,
            account_id=movement.account_id,
            from_account_id=movement.from_account_id,
            to_account_id=movement.to_account_id,
            occurred_at=movement.occurred_at,
            is_multi_item=movement.is_multi_item,
            is_credit=movement.is_credit,
        )

    def _get_row(self, movement_id: UUID, owner_id: UUID, for_update: bool = False) -> Movement:
        query = select(Movement).where(
            Movement.id == movement_id,
            Movement.owner_id == owner_id,
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        movement = self.session.execute(query).scalar_one_or_none()
        if movement is None:
            raise MovementNotFoundError(str(movement_id))
        return movement

    def get(self, movement_id: UUID, owner_id: UUID) -> MovementInfo:
        """
        Raises:
            MovementNotFoundError: If the movement doesn't exist for this owner.
        """
        return self._to_dto(self._get_row(movement_id, owner_id))

    def involved_accounts(self, movement_id: UUID, owner_id: UUID) -> tuple[UUID, ...]:
        """
        Accounts the stored movement currently references.

        Used to resolve lock keys before the real transaction starts.  An
        unknown movement yields an empty tuple; the lifecycle call itself
        reports MovementNotFoundError.
        """
        movement = self.session.get(Movement, movement_id)
        if movement is None or movement.owner_id != owner_id:
            return ()
        refs = (movement.account_id, movement.from_account_id, movement.to_account_id)
        return tuple(ref for ref in refs if ref is not None)

    def _execute_plan(self, plan: BalancePlan, owner_id: UUID) -> None:
        """
        Lock touched accounts, run every check, then apply adjustments.

        An adjustment whose account no longer exists is skipped and logged;
        a check against a missing account raises AccountNotFoundError.
        """
        locked = self._accounts.lock(plan.touched_accounts, owner_id, missing_ok=True)

        for check in plan.checks:
            account = locked.get(check.account_id)
            if account is None:
                raise AccountNotFoundError(str(check.account_id))
            balance = Decimal(account.balance)
            if not check.passes(balance):
                logger.warning(
                    "insufficient_balance_rejected",
                    extra={
                        "account_id": str(check.account_id),
                        "balance": str(balance),
                        "credit_back": str(check.credit_back),
                        "available": str(check.available(balance)),
                        "requested": str(check.requested),
                    },
                )
                raise InsufficientBalanceError(
                    account_id=str(check.account_id),
                    account_name=account.name,
                    available=check.available(balance),
                    requested=check.requested,
                )

        for adjustment in plan.adjustments:
            if adjustment.account_id not in locked:
                logger.warning(
                    "balance_adjustment_skipped",
                    extra={
                        "account_id": str(adjustment.account_id),
                        "delta": str(adjustment.delta),
                        "reason": "account_missing",
                    },
                )
                continue
            self._accounts.adjust_balance(adjustment.account_id, owner_id, adjustment.delta)

    def _validate_catalog(
        self,
        owner_id: UUID,
        category_id: UUID | None,
        item_ids: Sequence[UUID],
    ) -> None:
        if category_id is not None:
            self._catalog.get_category(category_id, owner_id)
        for item_id in item_ids:
            self._catalog.get_item(item_id, owner_id)

    def _validate_transfer_accounts(
        self,
        owner_id: UUID,
        from_account_id: UUID | None,
        to_account_id: UUID | None,
        amount,
    ) -> tuple[AccountInfo, AccountInfo, Decimal]:
        if from_account_id is None:
            raise InvalidInputError("from_account_id", "source account is required")
        if to_account_id is None:
            raise InvalidInputError("to_account_id", "destination account is required")
        if from_account_id == to_account_id:
            raise SameAccountTransferError(str(from_account_id))
        value = round_money(_positive("amount", amount))
        if value <= ZERO:
            raise NonPositiveAmountError("amount", value)
        source = self._accounts.get(from_account_id, owner_id)
        destination = self._accounts.get(to_account_id, owner_id)
        return source, destination, value

    # ------------------------------------------------------------------
    # Expense / income
    # ------------------------------------------------------------------

    def create_movement(
        self,
        owner_id: UUID,
        movement_type: MovementType | str,
        item_ids: Sequence[UUID],
        price: Decimal | int | str,
        quantity: Decimal | int | str = ONE,
        remark: str | None = None,
        account_id: UUID | None = None,
        category_id: UUID | None = None,
        occurred_at: datetime | None = None,
        is_multi_item: bool = False,
        is_credit: bool = False,
    ) -> MovementInfo:
        """
        Record a new expense or income.

        Args:
            owner_id: Owning identity.
            movement_type: EXPENSE or INCOME (transfers use create_transfer).
            item_ids: One item, or several when ``is_multi_item``.
            price: Unit price, or the whole amount in multi-item mode.
            quantity: Quantity (ignored in multi-item mode).
            remark: Free text.
            account_id: Account to settle against; ignored when on credit.
            category_id: Optional category reference.
            occurred_at: Occurrence time; defaults to now.
            is_multi_item: Several items booked as one monetary event.
            is_credit: Defer the expense as pending credit.

        Returns:
            MovementInfo for the inserted movement, including its code.
        """
        kind = _coerce_movement_type(movement_type)
        if kind == MovementType.TRANSFER:
            raise InvalidInputError("movement_type", "transfers are created with create_transfer")

        items = list(item_ids or ())
        if not items:
            raise InvalidInputError("item_ids", "at least one item is required")

        unit_price = _positive("price", price)
        if is_multi_item:
            if kind != MovementType.EXPENSE:
                raise InvalidInputError("is_multi_item", "only expenses may reference several items")
            qty = ONE
            total = _booked_total(unit_price, ONE)
            unit_price = total
        else:
            if len(items) != 1:
                raise InvalidInputError("item_ids", "a single-item movement takes exactly one item")
            qty = _positive("quantity", quantity)
            total = _booked_total(unit_price, qty)

        if is_credit:
            if kind != MovementType.EXPENSE:
                raise InvalidInputError("is_credit", "only expenses may be put on credit")
            settlement = Settlement.PENDING_CREDIT
            account_id = None
        else:
            if account_id is None:
                raise InvalidInputError("account_id", "a settled movement requires an account")
            settlement = Settlement.SETTLED

        self._validate_catalog(owner_id, category_id, items)
        if account_id is not None:
            self._accounts.get(account_id, owner_id)

        state = MovementState(kind, settlement, total, account_id=account_id)
        self._execute_plan(plan_create(state), owner_id)

        now = self._clock.now()
        movement = Movement(
            owner_id=owner_id,
            code=self._codes.next_code(owner_id, now),
            movement_type=kind.value,
            category_id=category_id,
            item_id=None if is_multi_item else items[0],
            item_ids=[str(i) for i in items] if is_multi_item else None,
            price=unit_price,
            quantity=qty,
            total=total,
            remark=remark or None,
            occurred_at=occurred_at or now,
            is_multi_item=is_multi_item,
            created_by_id=owner_id,
        )
        movement.apply_state(state)
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "movement_created",
            extra={
                "movement_id": str(movement.id),
                "code": movement.code,
                "movement_type": kind.value,
                "settlement": settlement.value,
                "total": str(total),
            },
        )
        return self._to_dto(movement)

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
        """
        Correct a single-item expense or income in place.

        The settlement transition is classified once (see EditTransition)
        and planned purely; all checks run before any balance moves.

        Raises:
            TransferEditPathError: If the movement is a transfer.
            MultiItemEditError: If the movement is multi-item.
            CreditNotAllowedError: If an income would be put on credit.
            InvalidInputError: If settling without an account.
        """
        movement = self._get_row(movement_id, owner_id, for_update=True)
        if movement.is_transfer:
            raise TransferEditPathError(str(movement_id))
        if movement.is_multi_item:
            raise MultiItemEditError(str(movement_id))

        unit_price = _positive("price", price)
        qty = _positive("quantity", quantity)
        new_total = _booked_total(unit_price, qty)

        old = movement.to_state()
        if is_credit and old.movement_type != MovementType.EXPENSE:
            raise CreditNotAllowedError(str(movement_id), old.movement_type.value)

        transition = classify_edit(old, is_credit, account_id)
        if transition == EditTransition.SETTLE and account_id is None:
            raise InvalidInputError("account_id", "settling a pending movement requires an account")
        if transition in (EditTransition.SETTLE, EditTransition.MOVE_ACCOUNT):
            self._accounts.get(account_id, owner_id)

        plan = plan_edit(old, new_total, is_credit, account_id)
        self._execute_plan(plan, owner_id)

        movement.price = unit_price
        movement.quantity = qty
        movement.remark = remark or None
        movement.apply_state(plan.new)
        movement.updated_by_id = owner_id
        self.session.flush()

        logger.info(
            "movement_edited",
            extra={
                "movement_id": str(movement_id),
                "transition": transition.value,
                "old_total": str(old.total),
                "new_total": str(new_total),
            },
        )
        return self._to_dto(movement)

    def pay_credit(self, owner_id: UUID, movement_id: UUID, account_id: UUID) -> MovementInfo:
        """
        Settle a pending-credit expense against ``account_id``.

        No sufficiency check is made: paying may overdraw the account.

        Raises:
            MovementNotPendingError: If the movement is already settled.
            AccountNotFoundError: If the account is outside the owner's scope.
        """
        movement = self._get_row(movement_id, owner_id, for_update=True)
        if not movement.is_pending:
            raise MovementNotPendingError(str(movement_id), movement.settlement)
        if account_id is None:
            raise InvalidInputError("account_id", "paying a credit requires an account")
        self._accounts.get(account_id, owner_id)

        plan = plan_pay(movement.to_state(), account_id)
        self._execute_plan(plan, owner_id)

        movement.apply_state(plan.new)
        movement.updated_by_id = owner_id
        self.session.flush()

        logger.info(
            "credit_paid",
            extra={
                "movement_id": str(movement_id),
                "account_id": str(account_id),
                "total": str(plan.new.total),
            },
        )
        return self._to_dto(movement)

    def delete_movement(self, owner_id: UUID, movement_id: UUID) -> MovementInfo:
        """
        Reverse whatever the movement contributes, then remove it.

        Returns:
            MovementInfo snapshot of the removed movement.
        """
        movement = self._get_row(movement_id, owner_id, for_update=True)
        snapshot = self._to_dto(movement)

        self._execute_plan(plan_delete(movement.to_state()), owner_id)

        self.session.delete(movement)
        self.session.flush()

        logger.info(
            "movement_deleted",
            extra={
                "movement_id": str(movement_id),
                "movement_type": snapshot.movement_type.value,
                "settlement": snapshot.settlement.value,
                "total": str(snapshot.total),
            },
        )
        return snapshot

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def create_transfer(
        self,
        owner_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Decimal | int | str,
        remark: str | None = None,
        occurred_at: datetime | None = None,
    ) -> MovementInfo:
        """
        Move ``amount`` from one of the owner's accounts to another.

        The default remark is ``"<source name> -> <destination name>"``
        (with a unicode arrow).

        Raises:
            SameAccountTransferError: If source and destination coincide.
            NonPositiveAmountError: If amount <= 0.
            AccountNotFoundError: If either account is outside the owner's scope.
            InsufficientBalanceError: If the source cannot cover ``amount``.
        """
        source, destination, value = self._validate_transfer_accounts(
            owner_id, from_account_id, to_account_id, amount,
        )

        state = MovementState(
            MovementType.TRANSFER,
            Settlement.SETTLED,
            value,
            from_account_id=source.id,
            to_account_id=destination.id,
        )
        self._execute_plan(plan_create(state), owner_id)

        now = self._clock.now()
        movement = Movement(
            owner_id=owner_id,
            code=self._codes.next_code(owner_id, now),
            movement_type=MovementType.TRANSFER.value,
            price=value,
            quantity=ONE,
            total=value,
            remark=remark or _transfer_remark(source, destination),
            occurred_at=occurred_at or now,
            is_multi_item=False,
            created_by_id=owner_id,
        )
        movement.apply_state(state)
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "transfer_created",
            extra={
                "movement_id": str(movement.id),
                "code": movement.code,
                "from_account_id": str(source.id),
                "to_account_id": str(destination.id),
                "amount": str(value),
            },
        )
        return self._to_dto(movement)

    def edit_transfer(
        self,
        owner_id: UUID,
        movement_id: UUID,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Decimal | int | str,
        remark: str | None = None,
    ) -> MovementInfo:
        """
        Re-point and/or re-size an existing transfer.

        Sufficiency is judged on the new source after hypothetically
        reversing every leg of the old transfer on it, so shrinking a
        transfer never trips the check.

        Raises:
            MovementNotFoundError: If the id is unknown or not a transfer.
            SameAccountTransferError / NonPositiveAmountError: Bad input.
            InsufficientBalanceError: If the new source cannot cover it.
        """
        movement = self._get_row(movement_id, owner_id, for_update=True)
        if not movement.is_transfer:
            raise MovementNotFoundError(str(movement_id))

        source, destination, value = self._validate_transfer_accounts(
            owner_id, from_account_id, to_account_id, amount,
        )

        old = movement.to_state()
        plan = plan_transfer_edit(old, source.id, destination.id, value)
        self._execute_plan(plan, owner_id)

        movement.price = value
        movement.remark = remark or _transfer_remark(source, destination)
        movement.apply_state(plan.new)
        movement.updated_by_id = owner_id
        self.session.flush()

        logger.info(
            "transfer_edited",
            extra={
                "movement_id": str(movement_id),
                "old_amount": str(old.total),
                "new_amount": str(value),
                "adjusted_accounts": len(plan.adjustments),
            },
        )
        return self._to_dto(movement)

