from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from dinebot.core.config import CONVERSATION_IDLE_RESET_HOURS
from dinebot.core.errors import ConversationConflict
from dinebot.core.logging_setup import mask_phone
from dinebot.fsm import states
from dinebot.fsm.cart import Cart, dump_cart, load_cart
from dinebot.fsm.context import ConversationContext, dump_context, load_context
from dinebot.models.conversation import Conversation
from dinebot.models.customer import WhatsAppCustomer

logger = logging.getLogger(__name__)


@dataclass
class ConversationSnapshot:
    state: str
    context: ConversationContext
    cart: Cart


def normalize_phone(raw: str) -> str:
    digits = "".join(char for char in str(raw or "") if char.isdigit())
    return f"+{digits}" if digits else ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_or_create_customer(
    db: Session,
    restaurant_id: int,
    contact_address: str,
    display_name: str | None = None,
) -> WhatsAppCustomer:
    phone = normalize_phone(contact_address)
    customer = (
        db.query(WhatsAppCustomer)
        .filter(WhatsAppCustomer.restaurant_id == restaurant_id, WhatsAppCustomer.phone_number == phone)
        .first()
    )
    if customer is None:
        try:
            with db.begin_nested():
                customer = WhatsAppCustomer(restaurant_id=restaurant_id, phone_number=phone, name=display_name)
                db.add(customer)
            logger.info("Created customer restaurant=%s phone=%s", restaurant_id, mask_phone(phone))
        except IntegrityError:
            # created by a concurrent delivery
            customer = (
                db.query(WhatsAppCustomer)
                .filter(WhatsAppCustomer.restaurant_id == restaurant_id, WhatsAppCustomer.phone_number == phone)
                .one()
            )
    if display_name and not customer.name:
        customer.name = display_name.strip()[:120]
    return customer


def get_or_create_conversation(db: Session, restaurant_id: int, customer_id: int) -> Conversation:
    conversation = (
        db.query(Conversation)
        .filter(Conversation.restaurant_id == restaurant_id, Conversation.customer_id == customer_id)
        .first()
    )
    if conversation is not None:
        return conversation
    try:
        with db.begin_nested():
            conversation = Conversation(
                restaurant_id=restaurant_id,
                customer_id=customer_id,
                state=states.GREETING,
                context_json=dump_context(ConversationContext()),
                cart_json=dump_cart(Cart()),
            )
            db.add(conversation)
    except IntegrityError:
        conversation = (
            db.query(Conversation)
            .filter(Conversation.restaurant_id == restaurant_id, Conversation.customer_id == customer_id)
            .one()
        )
    return conversation


def load_snapshot(conversation: Conversation, now: datetime | None = None) -> ConversationSnapshot:
    """Decode the stored conversation, restarting it after a long idle period."""
    now = now or _utcnow()
    state = states.normalize_state(conversation.state)
    context = load_context(conversation.context_json)
    cart = load_cart(conversation.cart_json)

    last_message_at = _as_aware(conversation.last_message_at)
    idle_limit = timedelta(hours=CONVERSATION_IDLE_RESET_HOURS)
    if last_message_at is not None and now - last_message_at > idle_limit and state != states.GREETING:
        logger.info("Conversation %s idle since %s, restarting", conversation.id, last_message_at.isoformat())
        return ConversationSnapshot(state=states.GREETING, context=ConversationContext(), cart=cart)
    return ConversationSnapshot(state=state, context=context, cart=cart)


def update_conversation(
    db: Session,
    conversation: Conversation,
    *,
    state: str,
    context: ConversationContext,
    cart: Cart,
    now: datetime | None = None,
) -> Conversation:
    """Write the new state; fails with ConversationConflict if another writer won."""
    conversation.state = state
    conversation.context_json = dump_context(context)
    conversation.cart_json = dump_cart(cart)
    conversation.last_message_at = now or _utcnow()
    try:
        db.flush()
    except StaleDataError as exc:
        raise ConversationConflict(conversation.id) from exc
    return conversation
