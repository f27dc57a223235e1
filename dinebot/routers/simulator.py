import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dinebot.core.config import SIMULATOR_ENABLED
from dinebot.core.database import get_db
from dinebot.fsm.replies import reply_summary
from dinebot.services.inbound import handle_inbound_message
from dinebot.services.tenant_resolver import get_restaurant_bot_config_by_id
from dinebot.whatsapp.inbound import InboundMessage

router = APIRouter(prefix="/simulator", tags=["simulator"])


class SimulatedMessage(BaseModel):
    restaurant_id: int
    phone: str = Field(min_length=4, max_length=32)
    text: str = Field(default="", max_length=1000)
    contact_name: str | None = None


@router.post("/message")
def simulate_message(body: SimulatedMessage, db: Session = Depends(get_db)):
    if not SIMULATOR_ENABLED:
        raise HTTPException(status_code=404, detail="Not Found")

    config = get_restaurant_bot_config_by_id(db, body.restaurant_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    if not config.phone_number_id:
        raise HTTPException(status_code=400, detail="Restaurant has no WhatsApp line configured")

    message = InboundMessage(
        message_id=f"sim-{uuid.uuid4().hex}",
        from_number=body.phone,
        phone_number_id=config.phone_number_id,
        message_type="text",
        text=body.text.strip(),
        contact_name=body.contact_name,
    )
    result = handle_inbound_message(db, message, force_mock=True)
    return {
        **result.as_dict(),
        "reply": reply_summary(result.reply) if result.reply is not None else None,
    }
