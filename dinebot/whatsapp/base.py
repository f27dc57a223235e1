from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

from dinebot.core.logging_setup import mask_phone
from dinebot.services.tenant_resolver import RestaurantBotConfig

# keys whose values never reach the transcript table
REDACTED_KEYS = frozenset({"access_token", "verify_token", "app_secret", "authorization"})


@dataclass
class SendResult:
    status: str
    provider_message_id: str | None = None
    error: str | None = None
    response_payload: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == "sent"


class WhatsAppProvider(Protocol):
    """Sends one rendered Cloud API message for a restaurant's line."""

    name: str

    def send(self, config: RestaurantBotConfig, payload: dict[str, Any]) -> SendResult:
        ...


def sanitize_payload(value: Any) -> Any:
    """Copy of ``value`` with credentials starred out, recursing into dicts and lists."""
    if isinstance(value, dict):
        return {
            key: mask_phone(str(inner)) if key.lower() in REDACTED_KEYS and inner is not None else sanitize_payload(inner)
            for key, inner in value.items()
        }
    if isinstance(value, list):
        return [sanitize_payload(item) for item in value]
    return value


def safe_json(payload: Any) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except ValueError:
        # circular structures
        return "{}"
