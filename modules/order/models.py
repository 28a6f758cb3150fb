"""
Order Module - Models
======================
Order header and its lines. Each line keeps the price paid, never the
product's current price.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, CheckConstraint,
)
from sqlalchemy.orm import relationship
from config.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, default=OrderStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderItem.id",
    )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)

    # Snapshot at time of purchase
    product_name = Column(String(200), nullable=True)
    unit_price_at_purchase = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_qty"),
    )

    @property
    def line_total(self):
        return self.unit_price_at_purchase * self.quantity
