from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from dinebot.core.config import META_API_VERSION, WHATSAPP_HTTP_TIMEOUT_SECONDS
from dinebot.services.tenant_resolver import RestaurantBotConfig
from dinebot.whatsapp.base import SendResult

logger = logging.getLogger(__name__)


class CloudWhatsAppProvider:
    """Graph API sender. One bounded attempt; redelivery is the caller's concern."""

    name = "cloud"

    def __init__(self, timeout: float = WHATSAPP_HTTP_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    def _url(self, phone_number_id: str) -> str:
        return f"https://graph.facebook.com/{META_API_VERSION}/{phone_number_id}/messages"

    def send(self, config: RestaurantBotConfig, payload: dict[str, Any]) -> SendResult:
        if not config.has_cloud_credentials:
            return SendResult(status="failed", error="WhatsApp Cloud credentials incomplete")

        headers = {"Authorization": f"Bearer {config.access_token}", "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self._url(config.phone_number_id), headers=headers, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("WhatsApp Cloud request failed: %s", exc.__class__.__name__)
            return SendResult(status="failed", error=str(exc) or exc.__class__.__name__)

        body_text = response.text
        if not 200 <= response.status_code < 300:
            logger.warning("WhatsApp Cloud rejected message status=%s", response.status_code)
            return SendResult(status="failed", error=f"WhatsApp error {response.status_code}: {body_text}")

        try:
            data = response.json()
        except json.JSONDecodeError:
            data = {"raw": body_text}
        provider_id = None
        if isinstance(data, dict):
            provider_id = ((data.get("messages") or [{}])[0] or {}).get("id")
        return SendResult(status="sent", provider_message_id=provider_id, response_payload=data)
