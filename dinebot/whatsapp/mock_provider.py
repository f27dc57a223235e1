from __future__ import annotations

import logging
import uuid
from typing import Any

from dinebot.services.tenant_resolver import RestaurantBotConfig
from dinebot.whatsapp.base import SendResult

logger = logging.getLogger(__name__)


class MockWhatsAppProvider:
    """Accepts every message without network I/O (dev, simulator, tests)."""

    name = "mock"

    def send(self, config: RestaurantBotConfig, payload: dict[str, Any]) -> SendResult:
        provider_id = f"mock-{uuid.uuid4().hex[:10]}"
        logger.debug("Mock WhatsApp send type=%s id=%s", payload.get("type"), provider_id)
        return SendResult(status="sent", provider_message_id=provider_id)
