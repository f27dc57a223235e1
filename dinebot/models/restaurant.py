from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from dinebot.core.database import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # WhatsApp bot configuration
    whatsapp_enabled = Column(Boolean, nullable=False, default=False)
    phone_number_id = Column(String, unique=True, index=True, nullable=True)
    access_token = Column(String, nullable=True)
    verify_token = Column(String, nullable=True)
    greeting_message = Column(Text, nullable=True)
