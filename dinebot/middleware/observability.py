from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from dinebot.core.metrics import request_metrics
from dinebot.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _route_template(request: Request) -> str:
    # "/webhook/whatsapp" rather than every raw path, to keep the metric keys bounded
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, then times, counts and logs it."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_context(request_id=request_id)
        started = time.perf_counter()
        route = _route_template(request)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            request_metrics.record(request.method, route, status_code, duration_ms)
            log = logger.warning if status_code >= 500 else logger.info
            log(
                "%s %s -> %s",
                request.method,
                route,
                status_code,
                extra={
                    "method": request.method,
                    "endpoint": route,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
            clear_request_context()
