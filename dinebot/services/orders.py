import json
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dinebot.core.errors import CommitFailure
from dinebot.fsm.cart import AddonChoice, CartLine, VariantChoice
from dinebot.fsm.catalog import OrderView
from dinebot.fsm.engine import CheckoutRequest
from dinebot.models.conversation import Conversation
from dinebot.models.conversation_order import ConversationOrder
from dinebot.models.customer import WhatsAppCustomer
from dinebot.models.order import Order
from dinebot.models.order_item import OrderItem


logger = logging.getLogger(__name__)


def _table_label(request: CheckoutRequest) -> str:
    if request.order_type == "dine_in":
        return f"Table {request.table_number}" if request.table_number else "Dine in"
    if request.order_type == "pickup":
        return "Pickup"
    return "Delivery"


def _addons_from_json(raw: str | None) -> list[AddonChoice]:
    try:
        data = json.loads(raw or "[]")
    except ValueError:
        logger.warning("Unreadable addons snapshot: %r", raw)
        return []
    if not isinstance(data, list):
        return []
    return [AddonChoice.model_validate(entry) for entry in data if isinstance(entry, dict)]


def _describe_item(item: OrderItem) -> str:
    text = f"{item.quantity}x {item.name}"
    if item.variant_name:
        text += f" ({item.variant_name})"
    addons = _addons_from_json(item.addons_json)
    if addons:
        text += " + " + ", ".join(addon.name for addon in addons)
    return text


def _order_view(order: Order) -> OrderView:
    return OrderView(
        id=order.id,
        status=order.status,
        order_type=order.order_type,
        total_cents=int(order.total_cents or 0),
        placed_at=order.placed_at or order.created_at,
        lines=tuple(_describe_item(item) for item in order.order_items),
    )


def create_order_with_items(
    db: Session,
    *,
    restaurant_id: int,
    customer: WhatsAppCustomer,
    request: CheckoutRequest,
) -> Order:
    cart = request.cart
    order = Order(
        restaurant_id=restaurant_id,
        customer_id=customer.id,
        customer_name=customer.name,
        customer_phone=customer.phone_number,
        source="whatsapp",
        order_type=request.order_type,
        table_label=_table_label(request),
        table_number=request.table_number,
        delivery_address=request.delivery_address,
        total_cents=cart.total_cents,
        status="pending",
        placed_at=datetime.now(timezone.utc),
    )
    db.add(order)
    db.flush()

    for line in cart.lines:
        db.add(
            OrderItem(
                restaurant_id=restaurant_id,
                order_id=order.id,
                menu_item_id=line.item_id,
                name=line.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                subtotal_cents=line.line_total_cents,
                variant_id=line.variant.id if line.variant else None,
                variant_name=line.variant.name if line.variant else None,
                variant_price_adjustment_cents=line.variant.price_adjustment_cents if line.variant else 0,
                addons_json=json.dumps([addon.model_dump() for addon in line.addons], ensure_ascii=False),
                special_instructions=line.instructions,
            )
        )
    db.flush()
    return order


def link_order_to_conversation(db: Session, conversation_id: int, order_id: int) -> ConversationOrder:
    link = ConversationOrder(conversation_id=conversation_id, order_id=order_id)
    db.add(link)
    db.flush()
    return link


def commit_checkout(
    db: Session,
    *,
    conversation: Conversation,
    customer: WhatsAppCustomer,
    request: CheckoutRequest,
) -> Order:
    """Insert the order, its items and the conversation link, all or nothing.

    Runs inside a savepoint so a failure leaves the surrounding
    transaction (conversation update, dedup record) usable.
    """
    if not request.cart.lines:
        raise CommitFailure("Cannot place an order from an empty cart")
    try:
        with db.begin_nested():
            order = create_order_with_items(
                db,
                restaurant_id=conversation.restaurant_id,
                customer=customer,
                request=request,
            )
            link_order_to_conversation(db, conversation.id, order.id)
    except SQLAlchemyError as exc:
        logger.exception("Order commit failed for conversation %s", conversation.id)
        raise CommitFailure(str(exc)) from exc

    logger.info(
        "Order %s staged: type=%s items=%s total_cents=%s",
        order.id,
        order.order_type,
        len(request.cart.lines),
        order.total_cents,
    )
    return order


def _customer_orders_query(db: Session, restaurant_id: int, customer_id: int):
    # conversation -> customer -> every conversation of that customer -> linked orders
    return (
        db.query(Order)
        .join(ConversationOrder, ConversationOrder.order_id == Order.id)
        .join(Conversation, Conversation.id == ConversationOrder.conversation_id)
        .filter(
            Conversation.customer_id == customer_id,
            Order.restaurant_id == restaurant_id,
        )
    )


def recent_orders_for_customer(db: Session, restaurant_id: int, customer_id: int, limit: int) -> list[Order]:
    return (
        _customer_orders_query(db, restaurant_id, customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def find_order_for_customer(db: Session, restaurant_id: int, customer_id: int, order_id: int) -> Order | None:
    return _customer_orders_query(db, restaurant_id, customer_id).filter(Order.id == order_id).first()


def reorder_lines(order: Order) -> list[CartLine]:
    """Cart lines copied from the order snapshot, not from today's menu."""
    lines: list[CartLine] = []
    for item in order.order_items:
        variant = None
        if item.variant_name:
            variant = VariantChoice(
                id=item.variant_id,
                name=item.variant_name,
                price_adjustment_cents=int(item.variant_price_adjustment_cents or 0),
            )
        lines.append(
            CartLine(
                item_id=item.menu_item_id,
                name=item.name,
                unit_price_cents=int(item.unit_price_cents or 0),
                quantity=int(item.quantity or 1),
                variant=variant,
                addons=_addons_from_json(item.addons_json),
                instructions=item.special_instructions,
            )
        )
    return lines


class OrderHistory:
    """Order lookups handed to the conversation engine."""

    def __init__(self, db: Session, restaurant_id: int) -> None:
        self.db = db
        self.restaurant_id = restaurant_id

    def has_orders(self, customer_id: int) -> bool:
        return _customer_orders_query(self.db, self.restaurant_id, customer_id).first() is not None

    def recent_orders(self, customer_id: int, limit: int) -> list[OrderView]:
        orders = recent_orders_for_customer(self.db, self.restaurant_id, customer_id, limit)
        return [_order_view(order) for order in orders]

    def get_order(self, customer_id: int, order_id: int) -> OrderView | None:
        order = find_order_for_customer(self.db, self.restaurant_id, customer_id, order_id)
        if order is None:
            return None
        return _order_view(order)

    def reorder_lines(self, customer_id: int, order_id: int) -> list[CartLine]:
        order = find_order_for_customer(self.db, self.restaurant_id, customer_id, order_id)
        if order is None:
            return []
        return reorder_lines(order)
