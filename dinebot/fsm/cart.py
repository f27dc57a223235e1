from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 10


class VariantChoice(BaseModel):
    id: Optional[int] = None
    name: str
    price_adjustment_cents: int = 0


class AddonChoice(BaseModel):
    id: Optional[int] = None
    name: str
    price_cents: int = 0


class CartLine(BaseModel):
    item_id: Optional[int] = None
    name: str
    unit_price_cents: int
    quantity: int = Field(ge=MIN_QUANTITY, le=MAX_QUANTITY)
    variant: Optional[VariantChoice] = None
    addons: list[AddonChoice] = Field(default_factory=list)
    instructions: Optional[str] = None

    @property
    def is_customized(self) -> bool:
        return bool(self.variant or self.addons or self.instructions)

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class Cart(BaseModel):
    lines: list[CartLine] = Field(default_factory=list)
    total_cents: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.lines


def unit_price_cents(
    base_price_cents: int,
    variant: VariantChoice | None = None,
    addons: list[AddonChoice] | None = None,
) -> int:
    price = base_price_cents
    if variant is not None:
        price += variant.price_adjustment_cents
    for addon in addons or []:
        price += addon.price_cents
    return price


def recompute(lines: list[CartLine]) -> Cart:
    """Build a cart whose total is folded from scratch over ``lines``."""
    total = 0
    for line in lines:
        total += line.unit_price_cents * line.quantity
    return Cart(lines=lines, total_cents=total)


def _check_quantity(quantity: int) -> None:
    if not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
        raise ValueError(f"quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}")


def _check_position(cart: Cart, position: int) -> None:
    if not 1 <= position <= len(cart.lines):
        raise IndexError(f"cart has no line {position}")


def add_line(cart: Cart, line: CartLine) -> Cart:
    """Append ``line`` or fold it into an identical uncustomized line.

    Customized lines are never merged, even for the same item id.
    """
    _check_quantity(line.quantity)
    lines = [existing.model_copy(deep=True) for existing in cart.lines]
    if line.item_id is not None and not line.is_customized:
        for index, existing in enumerate(lines):
            if existing.item_id == line.item_id and not existing.is_customized:
                merged_quantity = existing.quantity + line.quantity
                _check_quantity(merged_quantity)
                lines[index] = existing.model_copy(update={"quantity": merged_quantity})
                return recompute(lines)
    lines.append(line.model_copy(deep=True))
    return recompute(lines)


def remove_line(cart: Cart, position: int) -> Cart:
    _check_position(cart, position)
    lines = [line.model_copy(deep=True) for line in cart.lines]
    del lines[position - 1]
    return recompute(lines)


def change_quantity(cart: Cart, position: int, quantity: int) -> Cart:
    _check_position(cart, position)
    _check_quantity(quantity)
    lines = [line.model_copy(deep=True) for line in cart.lines]
    lines[position - 1] = lines[position - 1].model_copy(update={"quantity": quantity})
    return recompute(lines)


def clear() -> Cart:
    return recompute([])


def replace_lines(lines: list[CartLine]) -> Cart:
    return recompute([line.model_copy(deep=True) for line in lines])


def dump_cart(cart: Cart) -> str:
    return json.dumps(cart.model_dump(mode="json"), ensure_ascii=False)


def load_cart(raw: str | None) -> Cart:
    if not raw:
        return clear()
    try:
        data = json.loads(raw)
        stored = Cart.model_validate(data if isinstance(data, dict) else {})
    except (ValueError, ValidationError):
        logger.warning("Discarding unreadable cart payload")
        return clear()
    # never trust a stored total
    return recompute(stored.lines)
