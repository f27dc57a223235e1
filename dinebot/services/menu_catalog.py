from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from dinebot.fsm.cart import AddonChoice, VariantChoice
from dinebot.fsm.catalog import CategoryView, ItemDetails, ItemView
from dinebot.fsm.replies import MAX_LIST_ROWS
from dinebot.models.menu_category import MenuCategory
from dinebot.models.menu_item import MenuItem
from dinebot.models.menu_item_addon import MenuItemAddon
from dinebot.models.menu_item_variant import MenuItemVariant
from dinebot.services.menu_search import rank_by_name

logger = logging.getLogger(__name__)


def _item_view(item: MenuItem) -> ItemView:
    return ItemView(
        id=item.id,
        name=item.name,
        price_cents=int(item.price_cents or 0),
        description=item.description,
    )


def _allergens(raw) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        raw = raw.split(",")
    return tuple(str(value).strip() for value in raw if str(value).strip())


class MenuCatalog:
    """Read-only menu lookups for one restaurant, limited to bot-visible rows."""

    def __init__(self, db: Session, restaurant_id: int) -> None:
        self.db = db
        self.restaurant_id = restaurant_id

    def _visible_category_ids(self):
        return (
            self.db.query(MenuCategory.id)
            .filter(
                MenuCategory.restaurant_id == self.restaurant_id,
                MenuCategory.active.is_(True),
                MenuCategory.show_in_whatsapp.is_(True),
            )
        )

    def _visible_items_query(self):
        return self.db.query(MenuItem).filter(
            MenuItem.restaurant_id == self.restaurant_id,
            MenuItem.active.is_(True),
            MenuItem.show_in_whatsapp.is_(True),
            or_(
                MenuItem.category_id.is_(None),
                MenuItem.category_id.in_(self._visible_category_ids()),
            ),
        )

    def list_visible_categories(self) -> list[CategoryView]:
        rows = (
            self.db.query(MenuCategory)
            .filter(
                MenuCategory.restaurant_id == self.restaurant_id,
                MenuCategory.active.is_(True),
                MenuCategory.show_in_whatsapp.is_(True),
            )
            .order_by(MenuCategory.sort_order.asc(), MenuCategory.id.asc())
            .limit(MAX_LIST_ROWS)
            .all()
        )
        return [CategoryView(id=row.id, name=row.name, description=row.description) for row in rows]

    def list_visible_items(
        self,
        *,
        category_id: int | None = None,
        search_term: str | None = None,
    ) -> list[ItemView]:
        if search_term:
            return self.search_visible_items(search_term)

        if category_id is None:
            return []
        rows = (
            self._visible_items_query().filter(MenuItem.category_id == category_id)
            .order_by(MenuItem.name.asc())
            .limit(MAX_LIST_ROWS)
            .all()
        )
        return [_item_view(item) for item in rows]

    def get_item_with_variants_and_addons(self, item_id: int) -> ItemDetails | None:
        item = self._visible_items_query().filter(MenuItem.id == item_id).first()
        if item is None:
            return None

        variants = (
            self.db.query(MenuItemVariant)
            .filter(MenuItemVariant.menu_item_id == item.id, MenuItemVariant.is_available.is_(True))
            .order_by(MenuItemVariant.sort_order.asc(), MenuItemVariant.id.asc())
            .all()
        )
        addons = (
            self.db.query(MenuItemAddon)
            .filter(MenuItemAddon.menu_item_id == item.id, MenuItemAddon.is_available.is_(True))
            .order_by(MenuItemAddon.sort_order.asc(), MenuItemAddon.id.asc())
            .all()
        )
        return ItemDetails(
            id=item.id,
            name=item.name,
            price_cents=int(item.price_cents or 0),
            description=item.description,
            image_url=item.image_url,
            allergens=_allergens(item.allergens),
            variants=tuple(
                VariantChoice(id=variant.id, name=variant.name, price_adjustment_cents=int(variant.price_adjustment_cents or 0))
                for variant in variants[:MAX_LIST_ROWS]
            ),
            addons=tuple(
                AddonChoice(id=addon.id, name=addon.name, price_cents=int(addon.price_cents or 0))
                for addon in addons
            ),
        )

    def search_visible_items(self, term: str) -> list[ItemView]:
        candidates = self._visible_items_query().order_by(MenuItem.name.asc()).all()
        ranked = rank_by_name(candidates, term, name_of=lambda item: item.name, limit=MAX_LIST_ROWS)
        logger.info("Menu search term=%r matches=%s", term, len(ranked))
        return [_item_view(item) for item in ranked]
