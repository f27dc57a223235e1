"""Per-event pipeline for an inbound WhatsApp message.

dedup -> tenant -> customer/conversation -> engine step -> order commit ->
persist -> order event -> reply delivery. The dedup record, the order and
the conversation update share one transaction, so a failure anywhere
before the commit leaves nothing behind and the provider's redelivery is
processed from scratch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dinebot.core.errors import BotDisabled, CommitFailure, ConversationConflict, TenantNotFound
from dinebot.core.logging_setup import mask_phone
from dinebot.core.metrics import bot_metrics
from dinebot.core.request_context import clear_message_context, set_request_context
from dinebot.fsm.engine import (
    ConversationEngine,
    CustomerInfo,
    RestaurantInfo,
    checkout_failed,
    complete_checkout,
)
from dinebot.fsm.replies import Reply
from dinebot.models.order import Order
from dinebot.models.processed_message import ProcessedMessage
from dinebot.services.conversations import (
    get_or_create_conversation,
    get_or_create_customer,
    load_snapshot,
    update_conversation,
)
from dinebot.services.menu_catalog import MenuCatalog
from dinebot.services.order_events import emit_order_created
from dinebot.services.orders import OrderHistory, commit_checkout
from dinebot.services.tenant_resolver import resolve_restaurant
from dinebot.whatsapp.inbound import InboundMessage
from dinebot.whatsapp.service import WhatsAppService

logger = logging.getLogger(__name__)


@dataclass
class InboundResult:
    status: str
    state: str | None = None
    reply: Reply | None = None
    order_id: int | None = None
    conversation_id: int | None = None

    def as_dict(self) -> dict:
        data: dict = {"status": self.status}
        if self.state is not None:
            data["state"] = self.state
        if self.order_id is not None:
            data["order_id"] = self.order_id
        return data


def _claim_message(db: Session, message_id: str) -> bool:
    if db.get(ProcessedMessage, message_id) is not None:
        return False
    db.add(ProcessedMessage(message_id=message_id))
    try:
        db.flush()
    except IntegrityError:
        # a concurrent delivery of the same message claimed it first
        db.rollback()
        return False
    return True


def _finish(db: Session, status: str, restaurant_id: int | None = None) -> InboundResult:
    db.commit()
    bot_metrics.increment(status, restaurant_id)
    return InboundResult(status=status)


def handle_inbound_message(
    db: Session,
    message: InboundMessage,
    *,
    whatsapp: WhatsAppService | None = None,
    force_mock: bool = False,
    now: datetime | None = None,
) -> InboundResult:
    now = now or datetime.now(timezone.utc)
    whatsapp = whatsapp or WhatsAppService()
    set_request_context(wa_message_id=message.message_id)
    try:
        return _process(db, message, whatsapp=whatsapp, force_mock=force_mock, now=now)
    finally:
        clear_message_context()


def _process(
    db: Session,
    message: InboundMessage,
    *,
    whatsapp: WhatsAppService,
    force_mock: bool,
    now: datetime,
) -> InboundResult:
    if not message.supported:
        logger.info("Ignoring unsupported message type %s", message.message_type)
        bot_metrics.increment("unsupported")
        return InboundResult(status="unsupported")

    if not _claim_message(db, message.message_id):
        logger.info("Duplicate delivery ignored")
        bot_metrics.increment("duplicate")
        return InboundResult(status="duplicate")

    try:
        config = resolve_restaurant(db, message.phone_number_id)
    except TenantNotFound:
        logger.warning("No restaurant for phone_number_id=%s", message.phone_number_id)
        return _finish(db, "tenant_not_found")
    except BotDisabled as exc:
        logger.info("WhatsApp bot disabled for restaurant %s", exc.restaurant_id)
        return _finish(db, "bot_disabled", exc.restaurant_id)

    restaurant_id = config.restaurant_id
    set_request_context(restaurant_id=restaurant_id)

    try:
        customer = get_or_create_customer(db, restaurant_id, message.from_number, message.contact_name)
        conversation = get_or_create_conversation(db, restaurant_id, customer.id)
        set_request_context(conversation_id=conversation.id)
        logger.info(
            "Inbound %s from %s in state %s",
            message.message_type,
            mask_phone(customer.phone_number),
            conversation.state,
        )

        whatsapp.append_message(
            db,
            restaurant_id=restaurant_id,
            conversation_id=conversation.id,
            direction="inbound",
            message_type=message.message_type,
            content=message.text,
            payload=message.raw,
            status="received",
            provider_message_id=message.message_id,
        )

        snapshot = load_snapshot(conversation, now)
        history = OrderHistory(db, restaurant_id)
        engine = ConversationEngine(
            menu=MenuCatalog(db, restaurant_id),
            orders=history,
            restaurant=RestaurantInfo(
                id=restaurant_id,
                name=config.name,
                greeting_message=config.greeting_message,
            ),
            customer=CustomerInfo(
                id=customer.id,
                name=customer.name,
                returning=history.has_orders(customer.id),
            ),
        )
        result = engine.step(snapshot.state, snapshot.context, snapshot.cart, message.text)

        order: Order | None = None
        if result.checkout is not None:
            try:
                order = commit_checkout(db, conversation=conversation, customer=customer, request=result.checkout)
            except CommitFailure:
                result = checkout_failed(snapshot.state, snapshot.context, snapshot.cart)
            else:
                result = complete_checkout(result, order.id)

        update_conversation(
            db,
            conversation,
            state=result.state,
            context=result.context,
            cart=result.cart,
            now=now,
        )
        db.commit()
    except ConversationConflict:
        db.rollback()
        logger.warning("Concurrent update lost; message left for redelivery")
        bot_metrics.increment("conflict", restaurant_id)
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Inbound processing failed; message left for redelivery")
        bot_metrics.increment("error", restaurant_id)
        raise

    order_id = None
    if order is not None:
        order_id = order.id
        emit_order_created(order)

    if result.reply is not None:
        whatsapp.deliver_reply(
            db,
            config=config,
            conversation_id=conversation.id,
            to_phone=message.from_number,
            reply=result.reply,
            force_mock=force_mock,
        )

    bot_metrics.increment("processed", restaurant_id)
    return InboundResult(
        status="processed",
        state=result.state,
        reply=result.reply,
        order_id=order_id,
        conversation_id=conversation.id,
    )
