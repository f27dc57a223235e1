from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from dinebot.core.config import WHATSAPP_VERIFY_TOKEN
from dinebot.core.errors import BotDisabled, TenantNotFound
from dinebot.models.restaurant import Restaurant


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestaurantBotConfig:
    restaurant_id: int
    name: str
    enabled: bool
    greeting_message: str | None
    phone_number_id: str | None
    access_token: str | None

    @property
    def has_cloud_credentials(self) -> bool:
        return bool(self.phone_number_id and self.access_token)


def _to_config(restaurant: Restaurant) -> RestaurantBotConfig:
    return RestaurantBotConfig(
        restaurant_id=restaurant.id,
        name=restaurant.name,
        enabled=bool(restaurant.whatsapp_enabled and restaurant.is_active),
        greeting_message=restaurant.greeting_message,
        phone_number_id=restaurant.phone_number_id,
        access_token=restaurant.access_token,
    )


def get_restaurant_bot_config(db: Session, phone_number_id: str | None) -> RestaurantBotConfig | None:
    """Look up the restaurant behind a WhatsApp business line."""
    if not phone_number_id:
        return None
    restaurant = (
        db.query(Restaurant)
        .filter(Restaurant.phone_number_id == str(phone_number_id).strip())
        .first()
    )
    if restaurant is None:
        return None
    return _to_config(restaurant)


def get_restaurant_bot_config_by_id(db: Session, restaurant_id: int) -> RestaurantBotConfig | None:
    restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
    if restaurant is None:
        return None
    return _to_config(restaurant)


def resolve_restaurant(db: Session, phone_number_id: str | None) -> RestaurantBotConfig:
    config = get_restaurant_bot_config(db, phone_number_id)
    if config is None:
        raise TenantNotFound(phone_number_id)
    if not config.enabled:
        raise BotDisabled(config.restaurant_id)
    return config


def known_verify_tokens(db: Session) -> set[str]:
    tokens = {
        token
        for (token,) in db.query(Restaurant.verify_token)
        .filter(Restaurant.verify_token.isnot(None))
        .all()
        if token
    }
    if WHATSAPP_VERIFY_TOKEN:
        tokens.add(WHATSAPP_VERIFY_TOKEN)
    return tokens
