from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone

from dinebot.core.request_context import (
    get_conversation_id,
    get_request_id,
    get_restaurant_id,
    get_wa_message_id,
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# (pattern, replacement); group 1 is kept, the secret itself is starred out
_REDACTIONS = [
    (re.compile(r"(bearer\s+)[A-Za-z0-9._\-]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"((?:access_token|verify_token|app_secret|hub\.verify_token)[\"']?\s*[:=]\s*[\"']?)[^\s\"'&,}]+", re.IGNORECASE), r"\1***"),
    # bare phone numbers: keep the last four digits
    (re.compile(r"\+?\d{6,}(\d{4})\b"), r"****\1"),
]

_CONTEXT_GETTERS = {
    "request_id": get_request_id,
    "restaurant_id": get_restaurant_id,
    "conversation_id": get_conversation_id,
    "wa_message_id": get_wa_message_id,
}

_EXTRA_FIELDS = ("endpoint", "method", "status_code", "duration_ms", "state", "outcome")


def mask_phone(phone: str | None) -> str:
    if not phone:
        return ""
    phone = str(phone)
    return "****" if len(phone) <= 4 else f"****{phone[-4:]}"


def redact(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the current message context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": redact(record.getMessage()),
        }
        for name, getter in _CONTEXT_GETTERS.items():
            value = getattr(record, name, None) or getter()
            if value is not None:
                entry[name] = value
        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(LOG_LEVEL)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(LOG_LEVEL)
    # SQL echo stays off unless asked for explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(os.getenv("SQL_LOG_LEVEL", "WARNING").upper())
