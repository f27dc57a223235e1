"""Conversation state machine.

``ConversationEngine.step`` maps (state, context, cart, input) to the next
(state, context, cart, reply). It reads the menu and order history through
the lookups it is given and never writes anything; persisting the result
and committing orders is the caller's job.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace

from dinebot.core.config import ORDER_HISTORY_LIMIT
from dinebot.core.errors import InputValidationError, NotFoundError
from dinebot.fsm import messages, states
from dinebot.fsm.cart import (
    MAX_QUANTITY,
    MIN_QUANTITY,
    Cart,
    CartLine,
    add_line,
    change_quantity,
    clear,
    remove_line,
    replace_lines,
    unit_price_cents,
)
from dinebot.fsm.catalog import ItemDetails, MenuLookup, OrderLookup
from dinebot.fsm.context import (
    CategoryListStep,
    ConversationContext,
    HistoryStep,
    IdleStep,
    InstructionsStep,
    ItemDraft,
    ItemListStep,
    OrderSetup,
    QuantityStep,
    ReorderStep,
    AddonStep,
    VariantStep,
    step_for_state,
)
from dinebot.fsm.replies import MAX_LIST_ROWS, Reply, TextReply

logger = logging.getLogger(__name__)

HELP_COMMANDS = {"help", "?", "commands"}
MENU_COMMANDS = {"menu", "start"}
CART_COMMANDS = {"cart", "view_cart"}
TRACK_COMMANDS = {"track"}

HISTORY_COMMANDS = {"history", "orders", "my orders"}
SKIP_INSTRUCTIONS = {"none", "skip", "no"}
ADDONS_DONE = {"done", "0"}
YES_ANSWERS = {"yes", "y", "confirm", "reorder"}
NO_ANSWERS = {"no", "n", "cancel"}

TABLE_NUMBER_MAX_LENGTH = 20
SEARCH_MIN_LENGTH = 3
INSTRUCTIONS_MAX_LENGTH = 200
ADDRESS_MIN_LENGTH = 5
ADDRESS_MAX_LENGTH = 300

_SEARCH_RE = re.compile(r"^search\b\s*(.*)$", re.IGNORECASE | re.DOTALL)
_REMOVE_RE = re.compile(r"^remove\s+([0-9]{1,4})$")
_CHANGE_RE = re.compile(r"^change\s+([0-9]{1,4})\s+to\s+([0-9]{1,4})$")
_NUMBER_RE = re.compile(r"[0-9]{1,4}")
# order ids fit a 32-bit integer column
_ORDER_REF_RE = re.compile(r"^#?\s*([0-9]{1,9})$")


@dataclass(frozen=True)
class RestaurantInfo:
    id: int
    name: str
    greeting_message: str | None = None


@dataclass(frozen=True)
class CustomerInfo:
    id: int
    name: str | None = None
    returning: bool = False


@dataclass(frozen=True)
class CheckoutRequest:
    order_type: str
    cart: Cart
    table_number: str | None = None
    delivery_address: str | None = None


@dataclass
class StepResult:
    state: str
    context: ConversationContext
    cart: Cart
    reply: Reply | None
    checkout: CheckoutRequest | None = None


@dataclass
class _Turn:
    state: str
    context: ConversationContext
    cart: Cart
    text: str
    command: str


def normalize_command(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower())


def _as_number(command: str) -> int | None:
    """Small ASCII numbers only; superscripts and other script digits are not replies."""
    if not _NUMBER_RE.fullmatch(command):
        return None
    return int(command)


def _parse_position(command: str, count: int) -> int | None:
    position = _as_number(command)
    if position is not None and 1 <= position <= count:
        return position
    return None


def _parse_order_type(command: str) -> str | None:
    if command in {"1", "dine_in"} or "dine" in command:
        return "dine_in"
    if command in {"2", "delivery"} or "deliver" in command:
        return "delivery"
    if command in {"3", "pickup"} or "pick" in command or "take" in command:
        return "pickup"
    return None


def complete_checkout(result: StepResult, order_id: int) -> StepResult:
    """Attach the confirmation reply once the order transaction committed."""
    request = result.checkout
    reply = messages.order_placed(
        order_id,
        request.order_type,
        request.table_number,
        request.cart.total_cents,
    )
    return replace(result, reply=reply)


def checkout_failed(state: str, context: ConversationContext, cart: Cart) -> StepResult:
    return StepResult(state=state, context=context, cart=cart, reply=messages.order_failed())


class ConversationEngine:
    def __init__(
        self,
        *,
        menu: MenuLookup,
        orders: OrderLookup,
        restaurant: RestaurantInfo,
        customer: CustomerInfo,
        history_limit: int = ORDER_HISTORY_LIMIT,
    ) -> None:
        self._menu = menu
        self._orders = orders
        self._restaurant = restaurant
        self._customer = customer
        self._history_limit = history_limit
        self._handlers = {
            states.GREETING: self._handle_greeting,
            states.SELECTING_ORDER_TYPE: self._handle_order_type,
            states.ENTERING_TABLE_NUMBER: self._handle_table_number,
            states.BROWSING_MENU: self._handle_category_choice,
            states.VIEWING_CATEGORY: self._handle_category_choice,
            states.VIEWING_ITEM: self._handle_item_choice,
            states.SELECTING_VARIANT: self._handle_variant,
            states.SELECTING_ADDONS: self._handle_addons,
            states.ADDING_INSTRUCTIONS: self._handle_instructions,
            states.SELECTING_QUANTITY: self._handle_quantity,
            states.REVIEWING_CART: self._handle_cart_review,
            states.CONFIRMING_ORDER: self._handle_confirm_order,
            states.CHECKOUT_ADDRESS: self._handle_address,
            states.ORDER_PLACED: self._handle_order_placed,
            states.VIEWING_HISTORY: self._handle_history,
            states.CONFIRMING_REORDER: self._handle_reorder,
            states.TRACKING_ORDER: self._handle_tracking,
        }

    def step(self, state: str, context: ConversationContext, cart: Cart, text: str) -> StepResult:
        raw = (text or "").strip()
        turn = _Turn(
            state=states.normalize_state(state),
            context=context,
            cart=cart,
            text=raw,
            command=normalize_command(raw),
        )
        try:
            result = self._global_command(turn)
            if result is None:
                result = self._handlers[turn.state](turn)
        except InputValidationError as exc:
            result = self._stay(turn, TextReply(exc.message))
        except NotFoundError as exc:
            logger.info("Stale reference in state %s: %s", turn.state, exc)
            result = self._show_categories(turn, prefix=str(exc))

        logger.info(
            "Conversation step %s -> %s",
            turn.state,
            result.state,
            extra={"state": result.state},
        )
        return result

    # -- helpers ---------------------------------------------------------

    def _stay(self, turn: _Turn, reply: Reply) -> StepResult:
        return StepResult(state=turn.state, context=turn.context, cart=turn.cart, reply=reply)

    def _require_step(self, turn: _Turn):
        step = step_for_state(turn.context, turn.state)
        if step is None:
            raise NotFoundError("Let's pick up from the menu.")
        return step

    def _show_categories(
        self,
        turn: _Turn,
        *,
        state: str = states.BROWSING_MENU,
        context: ConversationContext | None = None,
        prefix: str | None = None,
    ) -> StepResult:
        categories = self._menu.list_visible_categories()[:MAX_LIST_ROWS]
        base = context if context is not None else turn.context
        next_context = base.model_copy(
            update={
                "step": CategoryListStep(category_ids=[category.id for category in categories]),
                "resume_checkout": False,
            }
        )
        return StepResult(
            state=state,
            context=next_context,
            cart=turn.cart,
            reply=messages.categories(categories, prefix=prefix),
        )

    def _show_cart(self, turn: _Turn, cart: Cart | None = None, prefix: str | None = None) -> StepResult:
        cart = turn.cart if cart is None else cart
        return StepResult(
            state=states.REVIEWING_CART,
            context=turn.context.model_copy(update={"step": IdleStep(), "resume_checkout": False}),
            cart=cart,
            reply=messages.cart_view(cart, prefix=prefix),
        )

    def _global_command(self, turn: _Turn) -> StepResult | None:
        command = turn.command
        if command in HELP_COMMANDS:
            return self._stay(turn, TextReply(messages.HELP_TEXT))
        if command in MENU_COMMANDS:
            return self._show_categories(turn)
        if command in CART_COMMANDS:
            return self._show_cart(turn)
        if command in TRACK_COMMANDS:
            return self._start_tracking(turn)
        return None

    def _start_tracking(self, turn: _Turn) -> StepResult:
        body = "📦 Send your order number to check its status (e.g. #12)."
        latest = self._orders.recent_orders(self._customer.id, 1)
        if latest:
            body = f"{body}\nYour latest order is *#{latest[0].id}*."
        return StepResult(
            state=states.TRACKING_ORDER,
            context=turn.context.model_copy(update={"step": IdleStep(), "resume_checkout": False}),
            cart=turn.cart,
            reply=TextReply(body),
        )

    # -- greeting and order setup ------------------------------------------

    def _handle_greeting(self, turn: _Turn) -> StepResult:
        reply = messages.greeting(
            self._restaurant.name,
            self._restaurant.greeting_message,
            self._customer.name,
            self._customer.returning,
        )
        return StepResult(
            state=states.SELECTING_ORDER_TYPE,
            context=ConversationContext(),
            cart=turn.cart,
            reply=reply,
        )

    def _handle_order_type(self, turn: _Turn) -> StepResult:
        order_type = _parse_order_type(turn.command)
        if order_type is None:
            return self._stay(turn, messages.select_order_type("Please select a valid option."))

        if order_type == "dine_in":
            context = turn.context.model_copy(
                update={"setup": OrderSetup(order_type="dine_in"), "step": IdleStep()}
            )
            return StepResult(
                state=states.ENTERING_TABLE_NUMBER,
                context=context,
                cart=turn.cart,
                reply=TextReply("🪑 Please enter your table number:"),
            )

        context = turn.context.model_copy(update={"setup": OrderSetup(order_type=order_type), "step": IdleStep()})
        if turn.context.resume_checkout:
            return self._confirm_order(turn, context)
        label = messages.ORDER_TYPE_LABELS[order_type]
        return self._show_categories(
            turn,
            state=states.VIEWING_CATEGORY,
            context=context,
            prefix=f"👍 {label} it is!",
        )

    def _handle_table_number(self, turn: _Turn) -> StepResult:
        label = turn.text.strip()
        if not label or len(label) > TABLE_NUMBER_MAX_LENGTH:
            raise InputValidationError(
                f"Please enter a valid table number (1-{TABLE_NUMBER_MAX_LENGTH} characters)."
            )
        context = turn.context.model_copy(
            update={"setup": OrderSetup(order_type="dine_in", table_number=label), "step": IdleStep()}
        )
        if turn.context.resume_checkout:
            return self._confirm_order(turn, context)
        return self._show_categories(
            turn,
            state=states.VIEWING_CATEGORY,
            context=context,
            prefix=f"🪑 Table {label} noted!",
        )

    # -- browsing --------------------------------------------------------

    def _handle_category_choice(self, turn: _Turn) -> StepResult:
        command = turn.command
        search = _SEARCH_RE.match(turn.text)
        if search:
            return self._search(turn, search.group(1).strip())
        if command in HISTORY_COMMANDS:
            return self._show_history(turn)
        if command in {"view", "categories", "browse", "back"}:
            return self._show_categories(turn, state=turn.state)

        step = step_for_state(turn.context, turn.state)
        if step is None:
            return self._show_categories(turn, state=turn.state)

        position = _parse_position(command, len(step.category_ids))
        if position is None:
            raise InputValidationError(
                "Please reply with a category number from the list, or type *search <name>*."
            )
        category_id = step.category_ids[position - 1]
        items = self._menu.list_visible_items(category_id=category_id)[:MAX_LIST_ROWS]
        if not items:
            raise NotFoundError("😔 That category has no items available right now.")
        context = turn.context.with_step(
            ItemListStep(item_ids=[item.id for item in items], category_id=category_id)
        )
        return StepResult(
            state=states.VIEWING_ITEM,
            context=context,
            cart=turn.cart,
            reply=messages.items_list(items, "🍽️ *Choose an item*"),
        )

    def _search(self, turn: _Turn, term: str) -> StepResult:
        if len(term) < SEARCH_MIN_LENGTH:
            raise InputValidationError(
                f"Please type at least {SEARCH_MIN_LENGTH} characters to search, e.g. *search burger*."
            )
        items = self._menu.list_visible_items(search_term=term)[:MAX_LIST_ROWS]
        if not items:
            raise InputValidationError(f'No items found for "{term}". Try another name or type *menu*.')
        context = turn.context.with_step(
            ItemListStep(item_ids=[item.id for item in items], search_term=term)
        )
        return StepResult(
            state=states.VIEWING_ITEM,
            context=context,
            cart=turn.cart,
            reply=messages.items_list(items, f'🔎 Results for "{term}"'),
        )

    def _handle_item_choice(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        position = _parse_position(turn.command, len(step.item_ids))
        if position is None:
            raise InputValidationError("Please reply with an item number from the list.")
        details = self._menu.get_item_with_variants_and_addons(step.item_ids[position - 1])
        if details is None:
            raise NotFoundError("😔 Sorry, that item is no longer available.")

        draft = ItemDraft(
            item_id=details.id,
            name=details.name,
            base_price_cents=details.price_cents,
            variant_options=list(details.variants)[:MAX_LIST_ROWS],
            addon_options=list(details.addons),
        )
        if draft.variant_options:
            return StepResult(
                state=states.SELECTING_VARIANT,
                context=turn.context.with_step(VariantStep(draft=draft)),
                cart=turn.cart,
                reply=messages.variant_prompt(draft),
            )
        return self._after_variant(turn, draft, details)

    # -- customization -----------------------------------------------------

    def _after_variant(self, turn: _Turn, draft: ItemDraft, details: ItemDetails | None = None) -> StepResult:
        if draft.addon_options:
            return StepResult(
                state=states.SELECTING_ADDONS,
                context=turn.context.with_step(AddonStep(draft=draft)),
                cart=turn.cart,
                reply=messages.addon_prompt(draft),
            )
        return self._ask_instructions(turn, draft, details)

    def _ask_instructions(self, turn: _Turn, draft: ItemDraft, details: ItemDetails | None = None) -> StepResult:
        if details is None:
            details = self._menu.get_item_with_variants_and_addons(draft.item_id)
            if details is None:
                raise NotFoundError("😔 Sorry, that item is no longer available.")
        return StepResult(
            state=states.ADDING_INSTRUCTIONS,
            context=turn.context.with_step(InstructionsStep(draft=draft)),
            cart=turn.cart,
            reply=messages.instructions_prompt(details, draft),
        )

    def _handle_variant(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        options = step.draft.variant_options
        position = _parse_position(turn.command, len(options))
        if position is None:
            raise InputValidationError(f"Please choose an option between 1 and {len(options)}.")
        draft = step.draft.model_copy(update={"variant": options[position - 1]})
        return self._after_variant(turn, draft)

    def _handle_addons(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        draft = step.draft
        if turn.command in ADDONS_DONE:
            return self._ask_instructions(turn, draft)

        tokens = [token for token in re.split(r"[,\s]+", turn.command) if token]
        positions = [_parse_position(token, len(draft.addon_options)) for token in tokens]
        if not positions or any(position is None for position in positions):
            raise InputValidationError(
                f"Please reply with an extra number (1-{len(draft.addon_options)}) or *done* to continue."
            )

        selected = list(draft.addons)
        for position in positions:
            option = draft.addon_options[position - 1]
            existing = [addon for addon in selected if addon.id == option.id and addon.name == option.name]
            if existing:
                selected.remove(existing[0])
            else:
                selected.append(option)
        draft = draft.model_copy(update={"addons": selected})
        return StepResult(
            state=states.SELECTING_ADDONS,
            context=turn.context.with_step(AddonStep(draft=draft)),
            cart=turn.cart,
            reply=messages.addon_prompt(draft),
        )

    def _handle_instructions(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        if not turn.text:
            raise InputValidationError("Please type your instructions, or *none* to skip.")
        instructions = None
        if turn.command not in SKIP_INSTRUCTIONS:
            instructions = turn.text[:INSTRUCTIONS_MAX_LENGTH]
        draft = step.draft.model_copy(update={"instructions": instructions})
        unit_price = unit_price_cents(draft.base_price_cents, draft.variant, draft.addons)
        return StepResult(
            state=states.SELECTING_QUANTITY,
            context=turn.context.with_step(QuantityStep(draft=draft)),
            cart=turn.cart,
            reply=messages.quantity_prompt(draft, unit_price),
        )

    def _handle_quantity(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        draft = step.draft
        quantity = _as_number(turn.command)
        if quantity is None or not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
            raise InputValidationError(f"Please enter a quantity between {MIN_QUANTITY} and {MAX_QUANTITY}.")

        line = CartLine(
            item_id=draft.item_id,
            name=draft.name,
            unit_price_cents=unit_price_cents(draft.base_price_cents, draft.variant, draft.addons),
            quantity=quantity,
            variant=draft.variant,
            addons=draft.addons,
            instructions=draft.instructions,
        )
        try:
            cart = add_line(turn.cart, line)
        except ValueError:
            raise InputValidationError(
                f"You can have at most {MAX_QUANTITY} {draft.name} in your cart. Please enter a smaller quantity."
            ) from None
        return StepResult(
            state=states.REVIEWING_CART,
            context=turn.context.with_step(IdleStep()),
            cart=cart,
            reply=messages.item_added(line, cart),
        )

    # -- cart and checkout -------------------------------------------------

    def _handle_cart_review(self, turn: _Turn) -> StepResult:
        command = turn.command
        cart = turn.cart
        if command in {"", "view"}:
            return self._show_cart(turn)
        if command == "checkout":
            if cart.is_empty:
                raise InputValidationError('🛒 Your cart is empty! Type "menu" to browse our menu.')
            return self._confirm_order(turn, turn.context)
        if command in {"clear", "clear_cart"}:
            return StepResult(
                state=states.REVIEWING_CART,
                context=turn.context,
                cart=clear(),
                reply=TextReply('🗑️ Your cart has been cleared. Type "menu" to start a new order.'),
            )
        if command in {"add", "add_more", "more"}:
            return self._show_categories(turn)

        match = _REMOVE_RE.match(command)
        if match:
            position = self._cart_position(cart, match.group(1))
            removed = cart.lines[position - 1]
            return self._show_cart(turn, remove_line(cart, position), prefix=f"Removed {removed.name}.")

        match = _CHANGE_RE.match(command)
        if match:
            position = self._cart_position(cart, match.group(1))
            quantity = int(match.group(2))
            if not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
                raise InputValidationError(
                    f"Please choose a quantity between {MIN_QUANTITY} and {MAX_QUANTITY}."
                )
            updated = change_quantity(cart, position, quantity)
            name = updated.lines[position - 1].name
            return self._show_cart(turn, updated, prefix=f"Updated {name} to {quantity}.")

        raise InputValidationError(f"Sorry, I didn't understand that.\n{messages.CART_COMMANDS}")

    def _cart_position(self, cart: Cart, raw: str) -> int:
        position = int(raw)
        if not 1 <= position <= len(cart.lines):
            if cart.is_empty:
                raise InputValidationError('🛒 Your cart is empty! Type "menu" to browse our menu.')
            raise InputValidationError(f"Please choose an item number between 1 and {len(cart.lines)}.")
        return position

    def _confirm_order(self, turn: _Turn, context: ConversationContext) -> StepResult:
        if turn.cart.is_empty:
            return self._show_cart(turn)
        next_context = context.model_copy(update={"step": IdleStep(), "resume_checkout": False})
        return StepResult(
            state=states.CONFIRMING_ORDER,
            context=next_context,
            cart=turn.cart,
            reply=messages.order_summary(turn.cart, next_context.setup),
        )

    def _handle_confirm_order(self, turn: _Turn) -> StepResult:
        command = turn.command
        if command in {"confirm", "yes", "checkout", "place order", "place"}:
            return self._begin_checkout(turn)
        if command in {"cancel", "no", "edit", "back"}:
            return self._show_cart(turn)
        if command in {"clear", "clear_cart"}:
            cleared = replace(turn, cart=clear())
            return self._show_categories(cleared, prefix="🗑️ Your cart has been cleared.")
        if command in {"add", "add_more"}:
            return self._show_categories(turn)
        raise InputValidationError('Please reply "confirm" to place your order or "cancel" to edit your cart.')

    def _begin_checkout(self, turn: _Turn) -> StepResult:
        if turn.cart.is_empty:
            return self._show_cart(turn)
        setup = turn.context.setup
        if not setup.is_complete:
            context = turn.context.model_copy(
                update={"setup": OrderSetup(), "step": IdleStep(), "resume_checkout": True}
            )
            return StepResult(
                state=states.SELECTING_ORDER_TYPE,
                context=context,
                cart=turn.cart,
                reply=messages.select_order_type("Almost there! 🙌"),
            )
        if setup.order_type == "delivery":
            return StepResult(
                state=states.CHECKOUT_ADDRESS,
                context=turn.context.with_step(IdleStep()),
                cart=turn.cart,
                reply=TextReply("📍 Please send your delivery address (street, number and any reference)."),
            )
        return self._checkout(
            turn,
            CheckoutRequest(order_type=setup.order_type, cart=turn.cart, table_number=setup.table_number),
        )

    def _handle_address(self, turn: _Turn) -> StepResult:
        if turn.cart.is_empty:
            return self._show_cart(turn)
        address = turn.text.strip()
        if not ADDRESS_MIN_LENGTH <= len(address) <= ADDRESS_MAX_LENGTH:
            raise InputValidationError("Please send the full delivery address (street, number and any reference).")
        return self._checkout(
            turn,
            CheckoutRequest(order_type="delivery", cart=turn.cart, delivery_address=address),
        )

    def _checkout(self, turn: _Turn, request: CheckoutRequest) -> StepResult:
        context = turn.context.model_copy(update={"step": IdleStep(), "resume_checkout": False})
        return StepResult(
            state=states.ORDER_PLACED,
            context=context,
            cart=clear(),
            reply=None,
            checkout=request,
        )

    def _handle_order_placed(self, turn: _Turn) -> StepResult:
        return self._show_categories(turn, prefix="🙌 Thanks again for your order! Want anything else?")

    # -- history, reorder and tracking ------------------------------------

    def _show_history(self, turn: _Turn) -> StepResult:
        orders = self._orders.recent_orders(self._customer.id, self._history_limit)[:MAX_LIST_ROWS]
        if not orders:
            raise InputValidationError('You don\'t have any previous orders yet. Type "menu" to start one!')
        return StepResult(
            state=states.VIEWING_HISTORY,
            context=turn.context.with_step(HistoryStep(order_ids=[order.id for order in orders])),
            cart=turn.cart,
            reply=messages.history(orders),
        )

    def _handle_history(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        position = _parse_position(turn.command, len(step.order_ids))
        if position is None:
            raise InputValidationError("Please reply with an order number from the list.")
        order = self._orders.get_order(self._customer.id, step.order_ids[position - 1])
        if order is None:
            raise NotFoundError("😔 Sorry, that order is no longer available.")
        return StepResult(
            state=states.CONFIRMING_REORDER,
            context=turn.context.with_step(ReorderStep(order_id=order.id)),
            cart=turn.cart,
            reply=messages.reorder_prompt(order),
        )

    def _handle_reorder(self, turn: _Turn) -> StepResult:
        step = self._require_step(turn)
        if turn.command in YES_ANSWERS:
            lines = self._orders.reorder_lines(self._customer.id, step.order_id)
            if not lines:
                raise NotFoundError("😔 Sorry, that order can no longer be reordered.")
            return self._show_cart(
                turn,
                replace_lines(lines),
                prefix="🔁 Your previous order is in your cart.",
            )
        if turn.command in NO_ANSWERS:
            return self._show_categories(turn, context=ConversationContext())
        raise InputValidationError('Please reply "yes" to reorder or "no" to go back to the menu.')

    def _handle_tracking(self, turn: _Turn) -> StepResult:
        match = _ORDER_REF_RE.match(turn.command)
        if not match:
            raise InputValidationError("Please send your order number, e.g. #12.")
        order_id = int(match.group(1))
        order = self._orders.get_order(self._customer.id, order_id)
        if order is None:
            raise InputValidationError(f"I couldn't find order #{order_id}. Please check the number and try again.")
        return self._stay(turn, messages.order_status(order))
