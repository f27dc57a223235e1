from __future__ import annotations

from dinebot.fsm.cart import MAX_QUANTITY, MIN_QUANTITY, Cart, CartLine
from dinebot.fsm.catalog import CategoryView, ItemDetails, ItemView, OrderView
from dinebot.fsm.context import ItemDraft, OrderSetup
from dinebot.fsm.replies import (
    Button,
    ButtonsReply,
    ImageReply,
    ListRow,
    Reply,
    TextReply,
    single_section_list,
)

ROW_TITLE_LIMIT = 24
ROW_DESCRIPTION_LIMIT = 72

ORDER_TYPE_BUTTONS = (
    Button(id="dine_in", title="🍽️ Dine In"),
    Button(id="delivery", title="🚗 Delivery"),
    Button(id="pickup", title="🥡 Pickup"),
)

ORDER_TYPE_LABELS = {
    "dine_in": "Dine in",
    "pickup": "Pickup",
    "delivery": "Delivery",
}

STATUS_LABELS = {
    "pending": ("⏳", "Your order has been received and is waiting to be prepared."),
    "in_progress": ("👨‍🍳", "Your order is being prepared."),
    "ready": ("✅", "Your order is ready!"),
    "completed": ("🎉", "Your order has been completed. Enjoy!"),
    "cancelled": ("❌", "Your order was cancelled."),
}

HELP_TEXT = (
    "🤖 *How to order*\n\n"
    "• *menu* or *start*: browse the menu\n"
    "• *cart*: view your cart\n"
    "• *track*: check an order status\n"
    "• *search <name>*: find an item\n"
    "• *history*: reorder a previous order\n"
    "• *help*: show this message\n\n"
    "In your cart: *remove N*, *change N to Q*, *clear*, *checkout*."
)

CART_COMMANDS = "Commands: *remove N*, *change N to Q*, *clear*, *checkout*, *add*"


def format_price(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, fraction = divmod(abs(int(cents)), 100)
    return f"{sign}${whole:,}.{fraction:02d}"


def _clip(text: str, limit: int) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def greeting(restaurant_name: str, greeting_message: str | None, customer_name: str | None, returning: bool) -> Reply:
    if returning and customer_name:
        header = f"Welcome back, {customer_name}! 👋"
    elif greeting_message:
        header = greeting_message.strip()
    else:
        header = f"Welcome to {restaurant_name}! 👋"
    return ButtonsReply(body=f"{header}\n\nHow would you like to order today?", buttons=ORDER_TYPE_BUTTONS)


def select_order_type(prefix: str | None = None) -> Reply:
    body = "How would you like to receive your order?"
    if prefix:
        body = f"{prefix}\n\n{body}"
    return ButtonsReply(body=body, buttons=ORDER_TYPE_BUTTONS)


def categories(items: list[CategoryView], prefix: str | None = None) -> Reply:
    if not items:
        body = "😔 Sorry, our menu is not available right now. Please try again later."
        if prefix:
            body = f"{prefix}\n\n{body}"
        return TextReply(body)
    rows = [
        ListRow(
            id=str(position),
            title=_clip(category.name, ROW_TITLE_LIMIT),
            description=_clip(category.description, ROW_DESCRIPTION_LIMIT) if category.description else None,
        )
        for position, category in enumerate(items, start=1)
    ]
    body = "📋 *Our Menu*\n\nPick a category, or type *search <name>* to find an item."
    if prefix:
        body = f"{prefix}\n\n{body}"
    return single_section_list(body, "View Categories", "Categories", rows)


def items_list(items: list[ItemView], heading: str) -> Reply:
    rows = [
        ListRow(
            id=str(position),
            title=_clip(item.name, ROW_TITLE_LIMIT),
            description=_clip(f"{format_price(item.price_cents)} · {item.description or ''}".rstrip(" ·"), ROW_DESCRIPTION_LIMIT),
        )
        for position, item in enumerate(items, start=1)
    ]
    lines = [heading, ""]
    for position, item in enumerate(items, start=1):
        lines.append(f"{position}. {item.name} - {format_price(item.price_cents)}")
    lines.append("\nReply with the item number to add it.")
    return single_section_list("\n".join(lines), "View Items", "Items", rows)


def variant_prompt(draft: ItemDraft) -> Reply:
    options = draft.variant_options
    labels = []
    for variant in options:
        suffix = f" (+{format_price(variant.price_adjustment_cents)})" if variant.price_adjustment_cents else ""
        labels.append(f"{variant.name}{suffix}")
    body_lines = [f"Choose an option for *{draft.name}*:", ""]
    body_lines.extend(f"{position}. {label}" for position, label in enumerate(labels, start=1))
    body = "\n".join(body_lines)
    if len(options) <= 3:
        return ButtonsReply(
            body=body,
            buttons=tuple(
                Button(id=str(position), title=_clip(variant.name, 20))
                for position, variant in enumerate(options, start=1)
            ),
        )
    rows = [
        ListRow(id=str(position), title=_clip(options[position - 1].name, ROW_TITLE_LIMIT), description=label)
        for position, label in enumerate(labels, start=1)
    ]
    return single_section_list(body, "View Options", "Options", rows)


def addon_prompt(draft: ItemDraft, prefix: str | None = None) -> Reply:
    selected_ids = {addon.id for addon in draft.addons}
    lines = []
    if prefix:
        lines.extend([prefix, ""])
    lines.append(f"Would you like any extras for *{draft.name}*?")
    lines.append("")
    for position, addon in enumerate(draft.addon_options, start=1):
        mark = "✅" if addon.id in selected_ids else "▫️"
        lines.append(f"{mark} {position}. {addon.name} (+{format_price(addon.price_cents)})")
    lines.append("")
    lines.append("Reply with a number to add or remove an extra, or *done* to continue.")
    return TextReply("\n".join(lines))


def instructions_prompt(details: ItemDetails | None, draft: ItemDraft) -> Reply:
    lines = [f"*{draft.name}*"]
    if details is not None and details.description:
        lines.append(details.description)
    if details is not None and details.allergens:
        lines.append(f"⚠️ Allergens: {', '.join(details.allergens)}")
    lines.append("")
    lines.append("Any special instructions? (e.g. no onions) Reply *none* to skip.")
    body = "\n".join(lines)
    if details is not None and details.image_url:
        return ImageReply(image_url=details.image_url, caption=body)
    return TextReply(body)


def quantity_prompt(draft: ItemDraft, unit_price: int) -> Reply:
    return TextReply(
        f"How many *{draft.name}* would you like? ({MIN_QUANTITY}-{MAX_QUANTITY})\n"
        f"Unit price: {format_price(unit_price)}"
    )


def _line_details(line: CartLine) -> list[str]:
    details = []
    if line.addons:
        details.append("   + " + ", ".join(addon.name for addon in line.addons))
    if line.instructions:
        details.append(f"   📝 {line.instructions}")
    return details


def cart_lines_text(cart: Cart) -> str:
    lines = []
    for position, line in enumerate(cart.lines, start=1):
        variant = f" ({line.variant.name})" if line.variant else ""
        lines.append(f"{position}. {line.quantity}x {line.name}{variant} - {format_price(line.line_total_cents)}")
        lines.extend(_line_details(line))
    return "\n".join(lines)


def empty_cart() -> Reply:
    return TextReply('🛒 Your cart is empty! Type "menu" to browse our menu.')


def cart_view(cart: Cart, prefix: str | None = None) -> Reply:
    if cart.is_empty:
        return empty_cart()
    body = f"🛒 *Your Cart*\n\n{cart_lines_text(cart)}\n\n*Total: {format_price(cart.total_cents)}*\n\n{CART_COMMANDS}"
    if prefix:
        body = f"{prefix}\n\n{body}"
    return ButtonsReply(
        body=body,
        buttons=(
            Button(id="checkout", title="✅ Checkout"),
            Button(id="add_more", title="➕ Add More"),
            Button(id="clear_cart", title="🗑️ Clear Cart"),
        ),
    )


def item_added(line: CartLine, cart: Cart) -> Reply:
    return ButtonsReply(
        body=(
            f"✅ Added {line.quantity}x {line.name} to your cart!\n\n"
            f"Cart total: {format_price(cart.total_cents)}"
        ),
        buttons=(
            Button(id="add_more", title="➕ Add More"),
            Button(id="checkout", title="✅ Checkout"),
            Button(id="view_cart", title="🛒 View Cart"),
        ),
    )


def order_summary(cart: Cart, setup: OrderSetup) -> Reply:
    lines = ["📝 *Order Summary*", "", cart_lines_text(cart), "", f"*Total: {format_price(cart.total_cents)}*"]
    if setup.order_type:
        label = ORDER_TYPE_LABELS[setup.order_type]
        if setup.order_type == "dine_in" and setup.table_number:
            label = f"{label} · Table {setup.table_number}"
        lines.append(f"Order type: {label}")
    lines.append("")
    lines.append("Shall I place this order?")
    return ButtonsReply(
        body="\n".join(lines),
        buttons=(
            Button(id="confirm", title="✅ Confirm Order"),
            Button(id="cancel", title="✏️ Edit Cart"),
        ),
    )


def order_placed(order_id: int, order_type: str, table_number: str | None, total_cents: int) -> Reply:
    lines = [
        "🎉 *Order placed!*",
        "",
        f"Order number: *#{order_id}*",
        f"Total: {format_price(total_cents)}",
    ]
    if order_type == "dine_in" and table_number:
        lines.append(f"We'll bring it to table {table_number}.")
    elif order_type == "pickup":
        lines.append("We'll let you know when it's ready for pickup.")
    else:
        lines.append("We'll deliver it to the address you sent.")
    lines.append("")
    lines.append('Type "track" to follow your order or "menu" to order more.')
    return TextReply("\n".join(lines))


def order_failed() -> Reply:
    return TextReply(
        "😔 Sorry, we couldn't place your order right now. Your cart is saved, please try again in a moment."
    )


def order_status(order: OrderView) -> Reply:
    emoji, text = STATUS_LABELS.get(order.status, ("ℹ️", f"Status: {order.status}"))
    return TextReply(
        f"{emoji} *Order #{order.id}*\n\n{text}\nTotal: {format_price(order.total_cents)}\n\n"
        'Send another order number, or type "menu" to keep ordering.'
    )


def _order_date(order: OrderView) -> str:
    if order.placed_at is None:
        return ""
    return order.placed_at.strftime("%b %d")


def history(orders: list[OrderView]) -> Reply:
    rows = []
    for position, order in enumerate(orders, start=1):
        count = len(order.lines)
        description = f"{_order_date(order)} · {count} item{'s' if count != 1 else ''}".strip(" ·")
        rows.append(
            ListRow(
                id=str(position),
                title=_clip(f"#{order.id} · {format_price(order.total_cents)}", ROW_TITLE_LIMIT),
                description=_clip(description, ROW_DESCRIPTION_LIMIT),
            )
        )
    return single_section_list(
        "🕘 *Your recent orders*\n\nPick one to order it again.",
        "View Orders",
        "Recent orders",
        rows,
    )


def reorder_prompt(order: OrderView) -> Reply:
    lines = [f"🔁 Reorder *#{order.id}*?", ""]
    lines.extend(f"• {line}" for line in order.lines)
    lines.extend(["", f"Total: {format_price(order.total_cents)}", "", "This replaces your current cart."])
    return ButtonsReply(
        body="\n".join(lines),
        buttons=(
            Button(id="yes", title="✅ Yes, reorder"),
            Button(id="no", title="❌ No"),
        ),
    )
