"""
Module: ledger_kernel.selectors.catalog_selector
Responsibility: Existence and visibility lookups over the reference catalogs
    (categories, items, units).  The lifecycle service uses these to reject
    movements that reference catalog rows the owner cannot see; the movement
    selector reuses the visibility rule when joining names.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Visibility: a catalog row is visible to an owner iff its owner_id is
      that owner or NULL (system data).
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import or_, select

from ledger_kernel.exceptions import CategoryNotFoundError, ItemNotFoundError
from ledger_kernel.models.catalog import Category, Item, Unit
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class CategoryInfo:
    id: UUID
    kind: str
    name: str
    code: str | None
    is_enabled: bool


@dataclass(frozen=True)
class ItemInfo:
    id: UUID
    category_id: UUID
    kind: str
    name: str
    unit_id: UUID | None
    unit_name: str | None
    is_enabled: bool


def visible_to(model, owner_id: UUID):
    """SQL clause restricting ``model`` rows to those the owner may see."""
    return or_(model.owner_id == owner_id, model.owner_id.is_(None))


class CatalogSelector(BaseSelector[Category]):
    """Read-only lookups over categories, items and units."""

    def get_category(self, category_id: UUID, owner_id: UUID) -> CategoryInfo:
        """
        Raises:
            CategoryNotFoundError: If the category is absent or not visible.
        """
        category = self.session.execute(
            select(Category).where(
                Category.id == category_id,
                visible_to(Category, owner_id),
            )
        ).scalar_one_or_none()
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return CategoryInfo(
            id=category.id,
            kind=category.kind,
            name=category.name,
            code=category.code,
            is_enabled=category.is_enabled,
        )

    def get_item(self, item_id: UUID, owner_id: UUID) -> ItemInfo:
        """
        Raises:
            ItemNotFoundError: If the item is absent or not visible.
        """
        row = self.session.execute(
            select(Item, Unit.name)
            .outerjoin(Unit, Unit.id == Item.unit_id)
            .where(Item.id == item_id, visible_to(Item, owner_id))
        ).one_or_none()
        if row is None:
            raise ItemNotFoundError(str(item_id))
        item, unit_name = row
        return ItemInfo(
            id=item.id,
            category_id=item.category_id,
            kind=item.kind,
            name=item.name,
            unit_id=item.unit_id,
            unit_name=unit_name,
            is_enabled=item.is_enabled,
        )

    def item_names(self, item_ids: list[UUID], owner_id: UUID) -> dict[UUID, str]:
        """Names of the visible items among ``item_ids``; unknown ids are omitted."""
        if not item_ids:
            return {}
        rows = self.session.execute(
            select(Item.id, Item.name).where(
                Item.id.in_(item_ids),
                visible_to(Item, owner_id),
            )
        ).all()
        return {item_id: name for item_id, name in rows}
