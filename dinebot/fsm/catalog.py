from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from dinebot.fsm.cart import AddonChoice, CartLine, VariantChoice


@dataclass(frozen=True)
class CategoryView:
    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True)
class ItemView:
    id: int
    name: str
    price_cents: int
    description: str | None = None


@dataclass(frozen=True)
class ItemDetails:
    id: int
    name: str
    price_cents: int
    description: str | None = None
    image_url: str | None = None
    allergens: tuple[str, ...] = ()
    variants: tuple[VariantChoice, ...] = ()
    addons: tuple[AddonChoice, ...] = ()


@dataclass(frozen=True)
class OrderView:
    id: int
    status: str
    order_type: str
    total_cents: int
    placed_at: datetime | None = None
    lines: tuple[str, ...] = field(default_factory=tuple)


class MenuLookup(Protocol):
    def list_visible_categories(self) -> list[CategoryView]:
        ...

    def list_visible_items(
        self,
        *,
        category_id: int | None = None,
        search_term: str | None = None,
    ) -> list[ItemView]:
        ...

    def get_item_with_variants_and_addons(self, item_id: int) -> ItemDetails | None:
        ...


class OrderLookup(Protocol):
    def recent_orders(self, customer_id: int, limit: int) -> list[OrderView]:
        ...

    def get_order(self, customer_id: int, order_id: int) -> OrderView | None:
        ...

    def reorder_lines(self, customer_id: int, order_id: int) -> list[CartLine]:
        ...
