from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func

from dinebot.core.database import Base


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "customer_id", name="uq_conversations_restaurant_customer"),
    )

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("whatsapp_customers.id"), nullable=False, index=True)

    state = Column(String, nullable=False, default="greeting")

    # JSON serialized (see dinebot.fsm.context / dinebot.fsm.cart)
    context_json = Column(Text, nullable=False, default="{}")
    cart_json = Column(Text, nullable=False, default="{}")

    # compare-and-swap guard for concurrent deliveries
    version = Column(Integer, nullable=False, default=1)

    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}
