from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func

from dinebot.core.database import Base


class ConversationOrder(Base):
    __tablename__ = "conversation_orders"
    __table_args__ = (UniqueConstraint("order_id", name="uq_conversation_orders_order"),)

    id = Column(Integer, primary_key=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
