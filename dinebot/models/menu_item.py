import sqlalchemy as sa
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from dinebot.core.database import Base


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (Index("ix_menu_items_restaurant_category", "restaurant_id", "category_id"),)

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("menu_categories.id"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False)
    image_url = Column(String, nullable=True)
    allergens = Column(sa.JSON(), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    show_in_whatsapp = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    variants = relationship(
        "MenuItemVariant",
        back_populates="menu_item",
        order_by="MenuItemVariant.sort_order",
        cascade="all, delete-orphan",
    )
    addons = relationship(
        "MenuItemAddon",
        back_populates="menu_item",
        order_by="MenuItemAddon.sort_order",
        cascade="all, delete-orphan",
    )
