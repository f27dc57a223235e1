from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    """In-process fan-out for domain events such as ``order.created``.

    Events are emitted after the rows they describe are committed. A
    failing handler is logged and the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, tuple[Handler, ...]] = {}

    def subscribe(self, event_name: str, handler: Handler) -> Handler:
        current = self._handlers.get(event_name, ())
        if handler not in current:
            self._handlers[event_name] = current + (handler,)
        return handler

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        self._handlers[event_name] = tuple(
            registered for registered in self._handlers.get(event_name, ()) if registered != handler
        )

    def emit(self, event_name: str, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every handler; returns how many succeeded."""
        delivered = 0
        for handler in self._handlers.get(event_name, ()):
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler %s failed for %s", getattr(handler, "__name__", handler), event_name)
            else:
                delivered += 1
        if not delivered:
            logger.debug("Event %s reached no handler", event_name)
        return delivered


event_bus = EventBus()
