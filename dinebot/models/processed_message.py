from sqlalchemy import Column, DateTime, String, func
from dinebot.core.database import Base

class ProcessedMessage(Base):
    __tablename__ = "processed_messages"
    message_id = Column(String, primary_key=True)
    processed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
