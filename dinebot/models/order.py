from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from dinebot.core.database import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, index=True, nullable=False)

    customer_id = Column(Integer, ForeignKey("whatsapp_customers.id"), nullable=True, index=True)
    customer_name = Column(String(120), nullable=True)
    customer_phone = Column(String(30), nullable=True)

    source = Column(String(30), nullable=False, default="whatsapp")
    order_type = Column(String(20), nullable=False)  # dine_in / pickup / delivery
    table_label = Column(String(60), nullable=False, default="")
    table_number = Column(String(20), nullable=True)
    delivery_address = Column(Text, nullable=True)

    total_cents = Column(Integer, default=0, nullable=False)

    # pending / in_progress / ready / completed / cancelled
    status = Column(String, default="pending", nullable=False)

    placed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
