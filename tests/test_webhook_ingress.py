import asyncio
import hashlib
import hmac
import json
from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dinebot.core.database import Base, get_db
from dinebot.core.errors import CommitFailure, ConversationConflict
from dinebot.fsm import states
from dinebot.fsm.cart import load_cart
import dinebot.models  # noqa: F401
from dinebot.models.conversation import Conversation
from dinebot.models.conversation_order import ConversationOrder
from dinebot.models.menu_item import MenuItem
from dinebot.models.order import Order
from dinebot.models.processed_message import ProcessedMessage
from dinebot.models.whatsapp_message import WhatsAppMessage
from dinebot.routers import webhook
from dinebot.routers.webhook import router as webhook_router
from dinebot.services.event_bus import event_bus
from dinebot.services.inbound import InboundResult
from dinebot.services.order_events import ORDER_CREATED
from tests.fixtures_data import (
    button_reply_payload,
    image_message_payload,
    list_reply_payload,
    seed_restaurant,
    text_message_payload,
)

WEBHOOK = "/webhook/whatsapp"


def _build_client():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    seed_restaurant(db)

    app = FastAPI()
    app.include_router(webhook_router)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), db


def _conversation(db) -> Conversation:
    db.expire_all()
    return db.query(Conversation).one()


def _send(client, payload):
    response = client.post(WEBHOOK, json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _order_up_to_cart(client):
    """hi -> dine in -> table 7 -> Burgers -> Classic Burger -> no instructions -> qty 3"""
    _send(client, text_message_payload("wamid.1", "hi"))
    _send(client, button_reply_payload("wamid.2", "dine_in"))
    _send(client, text_message_payload("wamid.3", "7"))
    _send(client, list_reply_payload("wamid.4", "1"))
    _send(client, text_message_payload("wamid.5", "2"))
    _send(client, text_message_payload("wamid.6", "none"))
    return _send(client, text_message_payload("wamid.7", "3"))


def test_verify_webhook_echoes_challenge_for_known_token():
    client, _db = _build_client()

    response = client.get(
        WEBHOOK,
        params={"hub.mode": "subscribe", "hub.verify_token": "tenant-verify-token", "hub.challenge": "12345"},
    )

    assert response.status_code == 200
    assert response.text == "12345"


def test_verify_webhook_rejects_unknown_token():
    client, _db = _build_client()

    response = client.get(
        WEBHOOK,
        params={"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "12345"},
    )

    assert response.status_code == 403


def test_full_dine_in_order_is_committed():
    client, db = _build_client()

    body = _order_up_to_cart(client)
    assert body["state"] == states.REVIEWING_CART

    assert _send(client, button_reply_payload("wamid.8", "checkout"))["state"] == states.CONFIRMING_ORDER
    body = _send(client, button_reply_payload("wamid.9", "confirm"))

    assert body["status"] == "processed"
    assert body["state"] == states.ORDER_PLACED
    order = db.query(Order).one()
    assert body["order_id"] == order.id
    assert order.status == "pending"
    assert order.source == "whatsapp"
    assert order.order_type == "dine_in"
    assert order.table_number == "7"
    assert order.total_cents == 1500
    assert order.customer_phone == "+15551234567"
    assert [(item.name, item.quantity, item.unit_price_cents) for item in order.order_items] == [
        ("Classic Burger", 3, 500)
    ]
    assert db.query(ConversationOrder).filter(ConversationOrder.order_id == order.id).count() == 1

    conversation = _conversation(db)
    assert conversation.state == states.ORDER_PLACED
    assert load_cart(conversation.cart_json).is_empty

    transcript = db.query(WhatsAppMessage).filter(WhatsAppMessage.conversation_id == conversation.id)
    assert transcript.filter(WhatsAppMessage.direction == "inbound").count() == 9
    outbound = transcript.filter(WhatsAppMessage.direction == "outbound").order_by(WhatsAppMessage.id).all()
    assert len(outbound) == 9
    assert all(message.status == "sent" for message in outbound)
    assert f"#{order.id}" in outbound[-1].content


def test_duplicate_delivery_applies_once():
    client, db = _build_client()
    _order_up_to_cart(client)

    again = _send(client, text_message_payload("wamid.7", "3"))

    assert again == {"status": "duplicate"}
    cart = load_cart(_conversation(db).cart_json)
    assert [line.quantity for line in cart.lines] == [3]

    _send(client, button_reply_payload("wamid.8", "checkout"))
    _send(client, button_reply_payload("wamid.9", "confirm"))
    assert _send(client, button_reply_payload("wamid.9", "confirm")) == {"status": "duplicate"}
    assert db.query(Order).count() == 1


def test_unknown_tenant_and_disabled_bot_are_acknowledged_without_reply():
    client, db = _build_client()

    unknown = _send(client, text_message_payload("wamid.x1", "hi", phone_number_id="NOPE"))
    disabled = _send(client, text_message_payload("wamid.x2", "hi", phone_number_id="PNID-2"))

    assert unknown == {"status": "tenant_not_found"}
    assert disabled == {"status": "bot_disabled"}
    assert db.query(Conversation).count() == 0
    assert db.query(WhatsAppMessage).count() == 0


def test_unsupported_and_malformed_payloads_are_ignored():
    client, db = _build_client()

    assert _send(client, image_message_payload("wamid.img")) == {"status": "unsupported"}
    assert _send(client, {"object": "whatsapp_business_account"}) == {"status": "ignored"}
    assert db.query(ProcessedMessage).count() == 0
    assert db.query(Conversation).count() == 0


def test_commit_failure_keeps_cart_and_allows_retry():
    client, db = _build_client()
    _order_up_to_cart(client)
    _send(client, button_reply_payload("wamid.8", "checkout"))

    with patch("dinebot.services.inbound.commit_checkout", side_effect=CommitFailure("database is locked")):
        body = _send(client, button_reply_payload("wamid.9", "confirm"))

    assert body["state"] == states.CONFIRMING_ORDER
    assert db.query(Order).count() == 0
    conversation = _conversation(db)
    assert load_cart(conversation.cart_json).total_cents == 1500
    last_reply = (
        db.query(WhatsAppMessage)
        .filter(WhatsAppMessage.direction == "outbound")
        .order_by(WhatsAppMessage.id.desc())
        .first()
    )
    assert "couldn't place your order" in last_reply.content

    retry = _send(client, button_reply_payload("wamid.10", "confirm"))
    assert retry["state"] == states.ORDER_PLACED
    assert db.query(Order).count() == 1


def test_conversation_conflict_asks_provider_to_redeliver():
    client, db = _build_client()
    _send(client, text_message_payload("wamid.1", "hi"))

    with patch("dinebot.services.inbound.update_conversation", side_effect=ConversationConflict(1)):
        response = client.post(WEBHOOK, json=button_reply_payload("wamid.2", "pickup"))

    assert response.status_code == 503
    assert db.get(ProcessedMessage, "wamid.2") is None

    redelivered = _send(client, button_reply_payload("wamid.2", "pickup"))
    assert redelivered["state"] == states.VIEWING_CATEGORY


def test_reorder_uses_historical_prices():
    client, db = _build_client()
    _order_up_to_cart(client)
    _send(client, button_reply_payload("wamid.8", "checkout"))
    _send(client, button_reply_payload("wamid.9", "confirm"))

    db.query(MenuItem).filter(MenuItem.id == 10).update({"price_cents": 999})
    db.commit()

    _send(client, text_message_payload("wamid.10", "menu"))
    assert _send(client, text_message_payload("wamid.11", "history"))["state"] == states.VIEWING_HISTORY
    assert _send(client, list_reply_payload("wamid.12", "1"))["state"] == states.CONFIRMING_REORDER
    body = _send(client, button_reply_payload("wamid.13", "yes"))

    assert body["state"] == states.REVIEWING_CART
    cart = load_cart(_conversation(db).cart_json)
    assert [(line.name, line.unit_price_cents, line.quantity) for line in cart.lines] == [("Classic Burger", 500, 3)]
    assert cart.total_cents == 1500


def test_track_reports_order_status():
    client, db = _build_client()
    _order_up_to_cart(client)
    _send(client, button_reply_payload("wamid.8", "checkout"))
    order_id = _send(client, button_reply_payload("wamid.9", "confirm"))["order_id"]

    _send(client, text_message_payload("wamid.10", "track"))
    body = _send(client, text_message_payload("wamid.11", f"#{order_id}"))

    assert body["state"] == states.TRACKING_ORDER
    last_reply = (
        db.query(WhatsAppMessage)
        .filter(WhatsAppMessage.direction == "outbound")
        .order_by(WhatsAppMessage.id.desc())
        .first()
    )
    assert "waiting to be prepared" in last_reply.content


def test_signature_is_checked_when_app_secret_is_configured(monkeypatch):
    client, _db = _build_client()
    monkeypatch.setattr(webhook, "WHATSAPP_APP_SECRET", "s3cret")
    body = json.dumps(text_message_payload("wamid.sig", "hi")).encode("utf-8")
    signature = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

    rejected = client.post(
        WEBHOOK,
        content=body,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": "sha256=deadbeef"},
    )
    accepted = client.post(
        WEBHOOK,
        content=body,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": f"sha256={signature}"},
    )

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert accepted.json()["state"] == states.SELECTING_ORDER_TYPE


def test_order_created_event_fires_once_after_commit():
    client, db = _build_client()
    received = []
    event_bus.subscribe(ORDER_CREATED, received.append)
    try:
        _order_up_to_cart(client)
        _send(client, button_reply_payload("wamid.8", "checkout"))
        body = _send(client, button_reply_payload("wamid.9", "confirm"))
        _send(client, button_reply_payload("wamid.9", "confirm"))
    finally:
        event_bus.unsubscribe(ORDER_CREATED, received.append)

    assert len(received) == 1
    payload = received[0]
    assert payload["order_id"] == body["order_id"]
    assert payload["table_label"] == "Table 7"
    assert payload["total_cents"] == 1500
    assert payload["items"] == [
        {"name": "Classic Burger", "quantity": 3, "unit_price_cents": 500, "variant_name": None}
    ]


def test_odd_digits_and_oversized_order_numbers_get_corrective_replies():
    client, db = _build_client()
    _send(client, text_message_payload("wamid.1", "hi"))
    _send(client, button_reply_payload("wamid.2", "dine_in"))
    _send(client, text_message_payload("wamid.3", "7"))
    _send(client, list_reply_payload("wamid.4", "1"))
    _send(client, text_message_payload("wamid.5", "2"))
    _send(client, text_message_payload("wamid.6", "none"))

    superscript = _send(client, text_message_payload("wamid.7", "²"))
    assert superscript["state"] == states.SELECTING_QUANTITY

    assert _send(client, text_message_payload("wamid.8", "track"))["state"] == states.TRACKING_ORDER
    oversized = _send(client, text_message_payload("wamid.9", "#" + "9" * 25))
    assert oversized["status"] == "processed"
    assert oversized["state"] == states.TRACKING_ORDER

    replies = (
        db.query(WhatsAppMessage)
        .filter(WhatsAppMessage.direction == "outbound")
        .order_by(WhatsAppMessage.id.desc())
        .limit(1)
        .all()
    )
    assert "order number" in replies[0].content


def test_message_handling_runs_off_the_event_loop(monkeypatch):
    client, _db = _build_client()
    seen = []

    def fake_handle(db, message):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker thread")
        return InboundResult(status="processed")

    monkeypatch.setattr(webhook, "handle_inbound_message", fake_handle)

    assert _send(client, text_message_payload("wamid.1", "hi")) == {"status": "processed"}
    assert seen == ["worker thread"]
