"""
Module: ledger_kernel.models.movement
Responsibility: ORM persistence for money movements -- expenses, incomes
    and transfers -- including their settlement state and account linkage.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Linkage consistency (checked through ``to_state()``, which builds a
      domain MovementState that rejects inconsistent combinations):
        pending credit        -> account_id, from/to are NULL
        settled expense/income -> account_id set, from/to NULL
        transfer              -> from/to set and distinct, account_id NULL
    - is_credit mirrors settlement == PENDING_CREDIT.
    - Multi-item movements store item_ids (JSON list) and total == price;
      single-item movements store item_id and total == round(price * quantity);
      transfers store neither and total == price == amount.
    - Precision: total is always rounded to two decimal places.  price is
      rounded too, except the single-item unit price, which keeps the
      entered precision (0.333 per kg is a valid unit price).
    - occurred_at is stored and returned in UTC.

Failure modes:
    - ValueError from to_state() if a row was written inconsistently.

Audit relevance:
    ``code`` is the human-readable, time-ordered display code assigned at
    creation.  It has no bearing on balances.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UTCDateTime, UUIDString
from ledger_kernel.domain.effects import MovementState
from ledger_kernel.domain.values import MovementType, Settlement


class Movement(TrackedBase):
    """
    One recorded financial event.

    Account references are plain UUID columns, not foreign keys: deleting an
    account does not cascade to the movements that reference it.
    """

    __tablename__ = "movements"

    __table_args__ = (
        Index("idx_movement_owner_occurred", "owner_id", "occurred_at"),
        Index("idx_movement_owner_settlement", "owner_id", "settlement"),
        Index("idx_movement_code", "code"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    movement_type: Mapped[MovementType] = mapped_column(
        String(20),
        nullable=False,
    )

    category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # Single-item mode
    item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # Multi-item mode: list of item id strings
    item_ids: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    remark: Mapped[str | None] = mapped_column(
        String(4000),
        nullable=True,
    )

    account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    from_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    to_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    is_multi_item: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    is_credit: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    settlement: Mapped[Settlement] = mapped_column(
        String(20),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Movement {self.code} {self.movement_type} {self.total}>"

    @property
    def is_transfer(self) -> bool:
        return self.movement_type == MovementType.TRANSFER

    @property
    def is_pending(self) -> bool:
        return self.settlement == Settlement.PENDING_CREDIT

    @property
    def item_uuid_list(self) -> list[UUID]:
        """Item references regardless of single/multi mode."""
        if self.is_multi_item:
            return [UUID(i) for i in (self.item_ids or [])]
        return [self.item_id] if self.item_id is not None else []

    def to_state(self) -> MovementState:
        """Project the balance-relevant fields into a domain MovementState."""
        return MovementState(
            movement_type=MovementType(self.movement_type),
            settlement=Settlement(self.settlement),
            total=Decimal(self.total),
            account_id=self.account_id,
            from_account_id=self.from_account_id,
            to_account_id=self.to_account_id,
        )

    def apply_state(self, state: MovementState) -> None:
        """Write a planned MovementState back onto the row."""
        self.settlement = state.settlement.value
        self.is_credit = state.is_pending
        self.total = state.total
        self.account_id = state.account_id
        self.from_account_id = state.from_account_id
        self.to_account_id = state.to_account_id
