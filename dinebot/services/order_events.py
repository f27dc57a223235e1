from __future__ import annotations

from dinebot.models.order import Order
from dinebot.services.event_bus import event_bus

ORDER_CREATED = "order.created"


def build_order_payload(order: Order) -> dict:
    return {
        "order_id": order.id,
        "restaurant_id": order.restaurant_id,
        "status": (order.status or "").strip().lower(),
        "source": order.source,
        "order_type": order.order_type,
        "table_label": order.table_label,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "total_cents": int(order.total_cents or 0),
        "items": [
            {
                "name": item.name,
                "quantity": item.quantity,
                "unit_price_cents": item.unit_price_cents,
                "variant_name": item.variant_name,
            }
            for item in order.order_items
        ],
    }


def emit_order_created(order: Order) -> None:
    event_bus.emit(ORDER_CREATED, build_order_payload(order))
