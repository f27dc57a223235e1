from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException

from dinebot.core.config import INTERNAL_METRICS_TOKEN
from dinebot.core.metrics import bot_metrics, request_metrics

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def metrics(x_internal_token: str | None = Header(default=None)):
    if INTERNAL_METRICS_TOKEN and x_internal_token != INTERNAL_METRICS_TOKEN:
        raise HTTPException(status_code=403, detail="Forbidden")
    return {"requests": request_metrics.snapshot(), "bot": bot_metrics.snapshot()}
