from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from dinebot.core.database import Base


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    # plain reference, the snapshot below survives menu deletion
    menu_item_id = Column(Integer, nullable=True)

    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price_cents = Column(Integer, nullable=False, default=0)
    subtotal_cents = Column(Integer, nullable=False, default=0)

    variant_id = Column(Integer, nullable=True)
    variant_name = Column(String, nullable=True)
    variant_price_adjustment_cents = Column(Integer, nullable=False, default=0)
    addons_json = Column(Text, nullable=False, default="[]")
    special_instructions = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="order_items")
