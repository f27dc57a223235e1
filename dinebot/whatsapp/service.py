from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dinebot.core.errors import DeliveryFailure
from dinebot.core.logging_setup import mask_phone
from dinebot.fsm.replies import Reply, reply_summary
from dinebot.models.whatsapp_message import WhatsAppMessage
from dinebot.services.tenant_resolver import RestaurantBotConfig
from dinebot.whatsapp.base import WhatsAppProvider, safe_json, sanitize_payload
from dinebot.whatsapp.cloud_provider import CloudWhatsAppProvider
from dinebot.whatsapp.mock_provider import MockWhatsAppProvider
from dinebot.whatsapp.renderer import render_reply

logger = logging.getLogger(__name__)


class WhatsAppService:
    def __init__(
        self,
        cloud_provider: WhatsAppProvider | None = None,
        mock_provider: WhatsAppProvider | None = None,
    ) -> None:
        self._cloud_provider = cloud_provider or CloudWhatsAppProvider()
        self._mock_provider = mock_provider or MockWhatsAppProvider()

    def _select_provider(self, config: RestaurantBotConfig, force_mock: bool = False) -> WhatsAppProvider:
        if force_mock or not config.has_cloud_credentials:
            return self._mock_provider
        return self._cloud_provider

    def append_message(
        self,
        db: Session,
        *,
        restaurant_id: int,
        conversation_id: int,
        direction: str,
        message_type: str,
        content: str | None,
        payload: dict[str, Any] | None = None,
        status: str,
        provider_message_id: str | None = None,
        error: str | None = None,
    ) -> WhatsAppMessage:
        """Add a transcript row to the session; the caller owns the commit."""
        entry = WhatsAppMessage(
            restaurant_id=restaurant_id,
            conversation_id=conversation_id,
            direction=direction,
            message_type=message_type,
            content=content,
            payload_json=safe_json(sanitize_payload(payload or {})),
            status=status,
            error=error,
            provider_message_id=provider_message_id,
        )
        db.add(entry)
        return entry

    def deliver_reply(
        self,
        db: Session,
        *,
        config: RestaurantBotConfig,
        conversation_id: int,
        to_phone: str,
        reply: Reply,
        force_mock: bool = False,
    ) -> WhatsAppMessage | None:
        """Send a reply and record it.

        Runs after the conversation transaction committed: a failed send
        is recorded and logged, never raised back into the inbound flow.
        """
        payload = render_reply(reply, to_phone)
        provider = self._select_provider(config, force_mock=force_mock)
        try:
            result = provider.send(config, payload)
            if not result.ok:
                raise DeliveryFailure(result.error or "unknown error")
        except DeliveryFailure as exc:
            logger.warning(
                "WhatsApp delivery failed provider=%s to=%s: %s",
                provider.name,
                mask_phone(to_phone),
                exc,
            )
            status, provider_message_id, error = "failed", None, str(exc)
        else:
            status, provider_message_id, error = "sent", result.provider_message_id, None

        entry = self.append_message(
            db,
            restaurant_id=config.restaurant_id,
            conversation_id=conversation_id,
            direction="outbound",
            message_type=payload["type"],
            content=reply_summary(reply),
            payload=payload,
            status=status,
            provider_message_id=provider_message_id,
            error=error,
        )
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not record outbound message for conversation %s", conversation_id)
            return None
        return entry
