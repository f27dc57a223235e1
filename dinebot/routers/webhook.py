import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from dinebot.core.config import WHATSAPP_APP_SECRET
from dinebot.core.database import get_db
from dinebot.core.errors import ConversationConflict, ProtocolError, SignatureMismatch
from dinebot.core.metrics import bot_metrics
from dinebot.services.inbound import handle_inbound_message
from dinebot.services.tenant_resolver import known_verify_tokens
from dinebot.whatsapp.inbound import parse_webhook_payload, verify_signature

router = APIRouter(tags=["whatsapp"])
logger = logging.getLogger(__name__)


@router.get("/webhook/whatsapp")
def verify_webhook(request: Request, db: Session = Depends(get_db)):
    qp = request.query_params
    mode = qp.get("hub.mode")
    token = qp.get("hub.verify_token")
    challenge = qp.get("hub.challenge")

    if mode == "subscribe" and token and token in known_verify_tokens(db):
        return PlainTextResponse(challenge or "")

    logger.warning("Webhook verification rejected mode=%s", mode)
    raise HTTPException(status_code=403, detail="Invalid verify token")


def _retry_later(reason: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"status": "retry", "reason": reason})


@router.post("/webhook/whatsapp")
async def receive_webhook(request: Request, db: Session = Depends(get_db)):
    body = await request.body()
    try:
        verify_signature(body, request.headers.get("X-Hub-Signature-256"), WHATSAPP_APP_SECRET)
    except SignatureMismatch as exc:
        logger.warning("Webhook signature rejected: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        messages = parse_webhook_payload(json.loads(body or b"null"))
    except (ValueError, ProtocolError) as exc:
        logger.warning("Malformed webhook payload: %s", exc)
        bot_metrics.increment("malformed")
        return {"status": "ignored"}

    if not messages:
        return {"status": "ignored"}

    results = []
    for message in messages:
        try:
            # sync DB work and the Graph API call stay off the event loop
            result = await run_in_threadpool(handle_inbound_message, db, message)
        except ConversationConflict:
            return _retry_later("conflict")
        except SQLAlchemyError:
            return _retry_later("unavailable")
        results.append(result.as_dict())

    if len(results) == 1:
        return results[0]
    return {"status": "processed", "results": results}
