from __future__ import annotations

from contextvars import ContextVar


_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_RESTAURANT_ID_CTX: ContextVar[str | None] = ContextVar("restaurant_id", default=None)
_CONVERSATION_ID_CTX: ContextVar[str | None] = ContextVar("conversation_id", default=None)
_WA_MESSAGE_ID_CTX: ContextVar[str | None] = ContextVar("wa_message_id", default=None)


def set_request_context(
    *,
    request_id: str | None = None,
    restaurant_id: str | int | None = None,
    conversation_id: str | int | None = None,
    wa_message_id: str | None = None,
) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if restaurant_id is not None:
        _RESTAURANT_ID_CTX.set(str(restaurant_id))
    if conversation_id is not None:
        _CONVERSATION_ID_CTX.set(str(conversation_id))
    if wa_message_id is not None:
        _WA_MESSAGE_ID_CTX.set(wa_message_id)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_restaurant_id() -> str | None:
    return _RESTAURANT_ID_CTX.get()


def get_conversation_id() -> str | None:
    return _CONVERSATION_ID_CTX.get()


def get_wa_message_id() -> str | None:
    return _WA_MESSAGE_ID_CTX.get()


def clear_message_context() -> None:
    _CONVERSATION_ID_CTX.set(None)
    _WA_MESSAGE_ID_CTX.set(None)


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _RESTAURANT_ID_CTX.set(None)
    clear_message_context()
