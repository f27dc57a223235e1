from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from dinebot.core.database import Base


class WhatsAppCustomer(Base):
    __tablename__ = "whatsapp_customers"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "phone_number", name="uq_whatsapp_customers_restaurant_phone"),
    )

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    phone_number = Column(String(30), nullable=False)
    name = Column(String(120), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
