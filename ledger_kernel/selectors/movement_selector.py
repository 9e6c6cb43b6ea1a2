"""
Module: ledger_kernel.selectors.movement_selector
Responsibility: Read-only movement listings and aggregations for display --
    joined transaction lists, pending credits, period summaries and
    per-category totals.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/.

Invariants enforced:
    - Same effective state as the lifecycle service: "settled" and "pending"
      are read from the stored settlement column, never re-derived.
    - Owner scoping on movements and on every joined account; catalog joins
      use the catalog visibility rule.
    - Date filters are half-open: ``start <= occurred_at < end``.

Failure modes:
    - MovementNotFoundError from get_movement() for ids outside the owner's
      scope.  Listings return empty results rather than raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, aliased

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.values import MovementType, Settlement
from ledger_kernel.exceptions import MovementNotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.models.catalog import Category, Item, Unit
from ledger_kernel.models.movement import Movement
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.catalog_selector import CatalogSelector, visible_to


@dataclass(frozen=True)
class MovementView:
    """One movement with the names a listing needs."""

    id: UUID
    code: str
    movement_type: MovementType
    settlement: Settlement
    occurred_at: datetime
    category_id: UUID | None
    category_name: str | None
    item_ids: tuple[UUID, ...]
    item_names: tuple[str, ...]
    unit_name: str | None
    price: Decimal
    quantity: Decimal
    total: Decimal
    remark: str | None
    account_id: UUID | None
    account_name: str | None
    from_account_id: UUID | None
    from_account_name: str | None
    to_account_id: UUID | None
    to_account_name: str | None
    is_multi_item: bool
    is_credit: bool

    @property
    def is_pending(self) -> bool:
        return self.settlement == Settlement.PENDING_CREDIT


@dataclass(frozen=True)
class MovementSummary:
    """Totals over a period."""

    settled_income: Decimal
    settled_expense: Decimal
    transfer_volume: Decimal
    pending_credit_total: Decimal
    movement_count: int
    pending_count: int

    @property
    def net(self) -> Decimal:
        """Settled income minus settled expense."""
        return self.settled_income - self.settled_expense


@dataclass(frozen=True)
class CategoryTotal:
    category_id: UUID | None
    category_name: str | None
    total: Decimal
    count: int


class MovementSelector(BaseSelector[Movement]):
    """
    Selector for movement listings and reports.

    Guarantees:
        - Listings are ordered newest first (occurred_at, then code).
        - All amounts are Decimal.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._catalog = CatalogSelector(session)

    def _period(self, query, start: datetime | None, end: datetime | None):
        if start is not None:
            query = query.where(Movement.occurred_at >= start)
        if end is not None:
            query = query.where(Movement.occurred_at < end)
        return query

    def _joined_query(self, owner_id: UUID):
        account = aliased(Account)
        from_account = aliased(Account)
        to_account = aliased(Account)
        return (
            select(
                Movement,
                Category.name,
                Item.name,
                Unit.name,
                account.name,
                from_account.name,
                to_account.name,
            )
            .outerjoin(
                Category,
                and_(Category.id == Movement.category_id, visible_to(Category, owner_id)),
            )
            .outerjoin(
                Item,
                and_(Item.id == Movement.item_id, visible_to(Item, owner_id)),
            )
            .outerjoin(Unit, Unit.id == Item.unit_id)
            .outerjoin(
                account,
                and_(account.id == Movement.account_id, account.owner_id == owner_id),
            )
            .outerjoin(
                from_account,
                and_(from_account.id == Movement.from_account_id, from_account.owner_id == owner_id),
            )
            .outerjoin(
                to_account,
                and_(to_account.id == Movement.to_account_id, to_account.owner_id == owner_id),
            )
            .where(Movement.owner_id == owner_id)
        )

    def _to_views(self, rows, owner_id: UUID) -> list[MovementView]:
        multi_ids = {
            item_id
            for movement, *_ in rows
            if movement.is_multi_item
            for item_id in movement.item_uuid_list
        }
        multi_names = self._catalog.item_names(sorted(multi_ids, key=str), owner_id)

        views = []
        for movement, category_name, item_name, unit_name, acc_name, from_name, to_name in rows:
            item_ids = tuple(movement.item_uuid_list)
            if movement.is_multi_item:
                item_names = tuple(multi_names[i] for i in item_ids if i in multi_names)
            else:
                item_names = (item_name,) if item_name is not None else ()
            views.append(
                MovementView(
                    id=movement.id,
                    code=movement.code,
                    movement_type=MovementType(movement.movement_type),
                    settlement=Settlement(movement.settlement),
                    occurred_at=movement.occurred_at,
                    category_id=movement.category_id,
                    category_name=category_name,
                    item_ids=item_ids,
                    item_names=item_names,
                    unit_name=unit_name,
                    price=Decimal(movement.price),
                    quantity=Decimal(movement.quantity),
                    total=Decimal(movement.total),
                    remark=movement.remark,
                    account_id=movement.account_id,
                    account_name=acc_name,
                    from_account_id=movement.from_account_id,
                    from_account_name=from_name,
                    to_account_id=movement.to_account_id,
                    to_account_name=to_name,
                    is_multi_item=movement.is_multi_item,
                    is_credit=movement.is_credit,
                )
            )
        return views

    def list_movements(
        self,
        owner_id: UUID,
        movement_type: MovementType | None = None,
        settlement: Settlement | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        account_id: UUID | None = None,
    ) -> list[MovementView]:
        """
        List the owner's movements, newest first.

        Args:
            owner_id: Owner scope.
            movement_type: Restrict to one type.
            settlement: Restrict to settled or pending movements.
            start: Inclusive lower bound on occurred_at.
            end: Exclusive upper bound on occurred_at.
            account_id: Movements referencing this account on any leg.
        """
        query = self._joined_query(owner_id)
        if movement_type is not None:
            query = query.where(Movement.movement_type == MovementType(movement_type).value)
        if settlement is not None:
            query = query.where(Movement.settlement == Settlement(settlement).value)
        if account_id is not None:
            query = query.where(
                or_(
                    Movement.account_id == account_id,
                    Movement.from_account_id == account_id,
                    Movement.to_account_id == account_id,
                )
            )
        query = self._period(query, start, end).order_by(
            Movement.occurred_at.desc(),
            Movement.code.desc(),
        )
        return self._to_views(self.session.execute(query).all(), owner_id)

    def get_movement(self, owner_id: UUID, movement_id: UUID) -> MovementView:
        """
        Raises:
            MovementNotFoundError: If the movement is outside the owner's scope.
        """
        rows = self.session.execute(
            self._joined_query(owner_id).where(Movement.id == movement_id)
        ).all()
        if not rows:
            raise MovementNotFoundError(str(movement_id))
        return self._to_views(rows, owner_id)[0]

    def pending_credits(self, owner_id: UUID) -> list[MovementView]:
        """Expenses awaiting payment, newest first."""
        return self.list_movements(owner_id, settlement=Settlement.PENDING_CREDIT)

    def summarize(
        self,
        owner_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MovementSummary:
        """Settled income/expense, transfer volume and pending credit over a period."""
        query = self._period(
            select(Movement.movement_type, Movement.settlement, Movement.total).where(
                Movement.owner_id == owner_id
            ),
            start,
            end,
        )

        income = expense = transfers = pending = ZERO
        count = pending_count = 0
        for movement_type, settlement, total in self.session.execute(query):
            amount = Decimal(total)
            count += 1
            if settlement == Settlement.PENDING_CREDIT.value:
                pending += amount
                pending_count += 1
            elif movement_type == MovementType.INCOME.value:
                income += amount
            elif movement_type == MovementType.EXPENSE.value:
                expense += amount
            else:
                transfers += amount

        return MovementSummary(
            settled_income=income,
            settled_expense=expense,
            transfer_volume=transfers,
            pending_credit_total=pending,
            movement_count=count,
            pending_count=pending_count,
        )

    def category_totals(
        self,
        owner_id: UUID,
        movement_type: MovementType,
        start: datetime | None = None,
        end: datetime | None = None,
        include_pending: bool = False,
    ) -> list[CategoryTotal]:
        """
        Per-category totals for one movement type, largest first.

        Movements without a category are grouped under ``category_id=None``.
        """
        query = (
            select(
                Movement.category_id,
                Category.name,
                func.sum(Movement.total),
                func.count(Movement.id),
            )
            .outerjoin(
                Category,
                and_(Category.id == Movement.category_id, visible_to(Category, owner_id)),
            )
            .where(
                Movement.owner_id == owner_id,
                Movement.movement_type == MovementType(movement_type).value,
            )
            .group_by(Movement.category_id, Category.name)
        )
        if not include_pending:
            query = query.where(Movement.settlement == Settlement.SETTLED.value)
        query = self._period(query, start, end)

        totals = [
            CategoryTotal(
                category_id=category_id,
                category_name=name,
                total=Decimal(total) if total is not None else ZERO,
                count=count,
            )
            for category_id, name, total, count in self.session.execute(query)
        ]
        return sorted(totals, key=lambda t: (-t.total, t.category_name or ""))
