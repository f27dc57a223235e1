from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func

from dinebot.core.database import Base


class WhatsAppMessage(Base):
    """Append-only transcript entry; rows are never updated."""

    __tablename__ = "whatsapp_messages"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, nullable=False, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    direction = Column(String, nullable=False)  # inbound / outbound
    message_type = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    payload_json = Column(Text, nullable=True)
    status = Column(String, nullable=False)  # received / sent / failed
    error = Column(Text, nullable=True)
    provider_message_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


Index("ix_whatsapp_messages_conversation_created", WhatsAppMessage.conversation_id, WhatsAppMessage.created_at)
Index("ix_whatsapp_messages_provider_id", WhatsAppMessage.provider_message_id)
