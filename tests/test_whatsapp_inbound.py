import hashlib
import hmac

import pytest

from dinebot.core.errors import ProtocolError, SignatureMismatch
from dinebot.whatsapp.inbound import parse_webhook_payload, verify_signature
from tests.fixtures_data import (
    button_reply_payload,
    image_message_payload,
    list_reply_payload,
    text_message_payload,
)


def test_text_message_is_parsed():
    [message] = parse_webhook_payload(text_message_payload("wamid.1", "  Menu  "))

    assert message.message_id == "wamid.1"
    assert message.from_number == "15551234567"
    assert message.phone_number_id == "PNID-1"
    assert message.contact_name == "Alex"
    assert message.text == "Menu"
    assert message.supported is True


def test_interactive_replies_use_reply_id_as_text():
    [button] = parse_webhook_payload(button_reply_payload("wamid.2", "checkout", "✅ Checkout"))
    [row] = parse_webhook_payload(list_reply_payload("wamid.3", "4"))

    assert button.text == "checkout"
    assert row.text == "4"


def test_media_messages_are_flagged_unsupported():
    [message] = parse_webhook_payload(image_message_payload("wamid.4"))

    assert message.message_type == "image"
    assert message.supported is False


def test_status_callbacks_carry_no_messages():
    payload = {"entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.1", "status": "read"}]}}]}]}

    assert parse_webhook_payload(payload) == []


@pytest.mark.parametrize("payload", [None, [], {"object": "page"}, {"entry": ["bad"]}])
def test_malformed_envelopes_raise_protocol_error(payload):
    with pytest.raises(ProtocolError):
        parse_webhook_payload(payload)


def test_verify_signature():
    body = b'{"entry": []}'
    good = "sha256=" + hmac.new(b"secret", body, hashlib.sha256).hexdigest()

    verify_signature(body, good, "secret")
    verify_signature(body, None, "")
    with pytest.raises(SignatureMismatch):
        verify_signature(body, "sha256=00", "secret")
    with pytest.raises(SignatureMismatch):
        verify_signature(body, None, "secret")
