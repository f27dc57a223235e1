from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dinebot.core.database import Base
from dinebot.core.errors import ConversationConflict
from dinebot.fsm import states
from dinebot.fsm.cart import CartLine, add_line, clear
from dinebot.fsm.context import ConversationContext, OrderSetup
import dinebot.models  # noqa: F401
from dinebot.models.conversation import Conversation
from dinebot.models.customer import WhatsAppCustomer
from dinebot.services.conversations import (
    get_or_create_conversation,
    get_or_create_customer,
    load_snapshot,
    normalize_phone,
    update_conversation,
)
from tests.fixtures_data import seed_restaurant


def _session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_restaurant(db)
    return db


def _cart():
    return add_line(clear(), CartLine(item_id=10, name="Classic Burger", unit_price_cents=500, quantity=2))


def test_normalize_phone_keeps_digits_only():
    assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert normalize_phone("") == ""


def test_customer_and_conversation_are_created_once():
    db = _session()

    customer = get_or_create_customer(db, 1, "15551234567", "Alex")
    again = get_or_create_customer(db, 1, "+1 555 123 4567", "Someone Else")
    conversation = get_or_create_conversation(db, 1, customer.id)
    db.commit()

    assert again.id == customer.id
    assert again.name == "Alex"
    assert db.query(WhatsAppCustomer).count() == 1
    assert get_or_create_conversation(db, 1, customer.id).id == conversation.id
    assert conversation.state == states.GREETING


def test_update_then_load_round_trips_state():
    db = _session()
    customer = get_or_create_customer(db, 1, "15551234567")
    conversation = get_or_create_conversation(db, 1, customer.id)
    context = ConversationContext(setup=OrderSetup(order_type="pickup"))

    update_conversation(db, conversation, state=states.REVIEWING_CART, context=context, cart=_cart())
    db.commit()

    snapshot = load_snapshot(conversation)
    assert snapshot.state == states.REVIEWING_CART
    assert snapshot.context.setup.order_type == "pickup"
    assert snapshot.cart.total_cents == 1000


def test_idle_conversation_restarts_but_keeps_cart():
    db = _session()
    customer = get_or_create_customer(db, 1, "15551234567")
    conversation = get_or_create_conversation(db, 1, customer.id)
    last_seen = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    context = ConversationContext(setup=OrderSetup(order_type="delivery"))
    update_conversation(db, conversation, state=states.SELECTING_QUANTITY, context=context, cart=_cart(), now=last_seen)
    db.commit()

    fresh = load_snapshot(conversation, now=last_seen + timedelta(hours=2))
    stale = load_snapshot(conversation, now=last_seen + timedelta(hours=25))

    assert fresh.state == states.SELECTING_QUANTITY
    assert stale.state == states.GREETING
    assert stale.context == ConversationContext()
    assert stale.cart.total_cents == 1000


def test_losing_concurrent_writer_gets_conflict(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'bot.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = session_factory()
    seed_restaurant(setup)
    customer = get_or_create_customer(setup, 1, "15551234567")
    conversation_id = get_or_create_conversation(setup, 1, customer.id).id
    setup.commit()
    setup.close()

    first = session_factory()
    second = session_factory()
    mine = first.get(Conversation, conversation_id)
    theirs = second.get(Conversation, conversation_id)

    update_conversation(second, theirs, state=states.BROWSING_MENU, context=ConversationContext(), cart=_cart())
    second.commit()

    with pytest.raises(ConversationConflict):
        update_conversation(first, mine, state=states.REVIEWING_CART, context=ConversationContext(), cart=clear())
    first.rollback()

    first.expire_all()
    assert first.get(Conversation, conversation_id).state == states.BROWSING_MENU
    first.close()
    second.close()
