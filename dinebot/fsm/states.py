from __future__ import annotations

GREETING = "greeting"
SELECTING_ORDER_TYPE = "selecting_order_type"
ENTERING_TABLE_NUMBER = "entering_table_number"
BROWSING_MENU = "browsing_menu"
VIEWING_CATEGORY = "viewing_category"
VIEWING_ITEM = "viewing_item"
SELECTING_VARIANT = "selecting_variant"
SELECTING_ADDONS = "selecting_addons"
ADDING_INSTRUCTIONS = "adding_instructions"
SELECTING_QUANTITY = "selecting_quantity"
REVIEWING_CART = "reviewing_cart"
CONFIRMING_ORDER = "confirming_order"
CHECKOUT_ADDRESS = "checkout_address"
ORDER_PLACED = "order_placed"
VIEWING_HISTORY = "viewing_history"
CONFIRMING_REORDER = "confirming_reorder"
TRACKING_ORDER = "tracking_order"

ALL_STATES = frozenset(
    {
        GREETING,
        SELECTING_ORDER_TYPE,
        ENTERING_TABLE_NUMBER,
        BROWSING_MENU,
        VIEWING_CATEGORY,
        VIEWING_ITEM,
        SELECTING_VARIANT,
        SELECTING_ADDONS,
        ADDING_INSTRUCTIONS,
        SELECTING_QUANTITY,
        REVIEWING_CART,
        CONFIRMING_ORDER,
        CHECKOUT_ADDRESS,
        ORDER_PLACED,
        VIEWING_HISTORY,
        CONFIRMING_REORDER,
        TRACKING_ORDER,
    }
)


def normalize_state(value: str | None) -> str:
    """Unknown or legacy values restart the conversation."""
    if value in ALL_STATES:
        return value
    return GREETING
