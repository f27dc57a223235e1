from __future__ import annotations

import logging

from dinebot.core.logging_setup import mask_phone
from dinebot.services.event_bus import event_bus
from dinebot.services.order_events import ORDER_CREATED

logger = logging.getLogger(__name__)


def handle_order_created(payload: dict) -> None:
    # kitchen / staff notification boundary
    logger.info(
        "New WhatsApp order %s for restaurant %s: %s (%s items, total_cents=%s, customer=%s)",
        payload.get("order_id"),
        payload.get("restaurant_id"),
        payload.get("table_label"),
        len(payload.get("items") or []),
        payload.get("total_cents"),
        mask_phone(payload.get("customer_phone")),
    )


event_bus.subscribe(ORDER_CREATED, handle_order_created)
