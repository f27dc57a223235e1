"""Parsing and authentication of WhatsApp Cloud API webhook deliveries."""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Any

from dinebot.core.errors import ProtocolError, SignatureMismatch

SUPPORTED_TYPES = {"text", "button", "interactive"}


@dataclass(frozen=True)
class InboundMessage:
    message_id: str
    from_number: str
    phone_number_id: str | None
    message_type: str
    text: str = ""
    contact_name: str | None = None
    supported: bool = True
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def _message_text(msg: dict[str, Any]) -> tuple[str, bool]:
    msg_type = msg.get("type") or "text"
    if msg_type == "text":
        return ((msg.get("text") or {}).get("body") or "").strip(), True
    if msg_type == "button":
        # quick-reply buttons on template messages
        button = msg.get("button") or {}
        return (button.get("payload") or button.get("text") or "").strip(), True
    if msg_type == "interactive":
        interactive = msg.get("interactive") or {}
        kind = interactive.get("type")
        reply = interactive.get(kind) if kind in {"button_reply", "list_reply"} else None
        if not isinstance(reply, dict):
            return "", False
        return str(reply.get("id") or reply.get("title") or "").strip(), True
    return "", False


def parse_webhook_payload(payload: Any) -> list[InboundMessage]:
    """Flatten a webhook envelope into the customer messages it carries.

    Status callbacks (delivered/read receipts) carry no messages and yield
    an empty list. A body that is not a Cloud API envelope raises
    ``ProtocolError``.
    """
    if not isinstance(payload, dict):
        raise ProtocolError("Webhook body is not a JSON object")
    entries = payload.get("entry")
    if not isinstance(entries, list):
        raise ProtocolError("Webhook body has no entry list")

    messages: list[InboundMessage] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ProtocolError("Malformed webhook entry")
        for change in entry.get("changes") or []:
            value = (change or {}).get("value") or {}
            metadata = value.get("metadata") or {}
            phone_number_id = metadata.get("phone_number_id")

            contacts = value.get("contacts") or []
            contact_name = None
            if contacts:
                contact_name = ((contacts[0].get("profile") or {}).get("name")) or None

            for msg in value.get("messages") or []:
                message_id = msg.get("id")
                from_number = msg.get("from")
                if not message_id or not from_number:
                    raise ProtocolError("Message without id or sender")
                text, supported = _message_text(msg)
                messages.append(
                    InboundMessage(
                        message_id=str(message_id),
                        from_number=str(from_number),
                        phone_number_id=str(phone_number_id) if phone_number_id else None,
                        message_type=msg.get("type") or "text",
                        text=text,
                        contact_name=contact_name,
                        supported=supported and (msg.get("type") or "text") in SUPPORTED_TYPES,
                        raw=msg,
                    )
                )
    return messages


def verify_signature(body: bytes, signature_header: str | None, app_secret: str) -> None:
    """Check ``X-Hub-Signature-256`` against the app secret; no-op without a secret."""
    if not app_secret:
        return
    if not signature_header or not signature_header.startswith("sha256="):
        raise SignatureMismatch("Missing X-Hub-Signature-256 header")
    expected = hmac.new(app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    received = signature_header.split("=", 1)[1].strip()
    if not hmac.compare_digest(expected, received):
        raise SignatureMismatch("Webhook signature does not match")
