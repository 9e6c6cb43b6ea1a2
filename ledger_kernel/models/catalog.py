"""
Module: ledger_kernel.models.catalog
Responsibility: Reference data the ledger consults read-only -- categories,
    units and items.  Maintenance of these catalogs lives outside the kernel;
    the lifecycle service only checks that referenced rows exist and are
    visible to the owner, and the reporting selectors join their names.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A row with owner_id NULL is system data, visible to every owner.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString


class Category(Base):
    """Expense or income category."""

    __tablename__ = "categories"

    owner_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # "Expense" or "Income"
    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Category {self.kind}:{self.name}>"


class Unit(Base):
    """Unit of measure for item quantities."""

    __tablename__ = "units"

    owner_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Item(Base):
    """A purchasable or earnable item within a category."""

    __tablename__ = "items"

    owner_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("categories.id"),
        nullable=False,
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    unit_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("units.id"),
        nullable=True,
    )

    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Item {self.name}>"
