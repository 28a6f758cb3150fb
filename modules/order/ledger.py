"""
Order Module - Ledger
=======================
Append-only writes of order headers and their lines.
Runs inside the caller's transaction; storage failures surface as PersistenceError.
"""

from datetime import datetime
from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.exceptions import PersistenceError
from modules.order.models import Order, OrderItem, OrderStatus


class OrderLineInput(NamedTuple):
    product_id: int
    quantity: int
    unit_price: Decimal
    product_name: Optional[str] = None


class OrderLedger:

    def create_order(self, db: Session, user_id: int, total_amount: Decimal, created_at: datetime) -> int:
        """Insert a Pending order header and return its id."""
        order = Order(
            user_id=user_id,
            total_amount=total_amount,
            status=OrderStatus.PENDING.value,
            created_at=created_at,
        )
        try:
            db.add(order)
            db.flush()  # get order.id
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create order: {e}") from e
        return order.id

    def create_order_lines(self, db: Session, order_id: int, lines: Sequence[OrderLineInput]):
        """Insert all lines of an order in one flush."""
        items = [
            OrderItem(
                order_id=order_id,
                product_id=line.product_id,
                quantity=line.quantity,
                product_name=line.product_name,
                unit_price_at_purchase=line.unit_price,
            )
            for line in lines
        ]
        try:
            db.add_all(items)
            db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create lines for order #{order_id}: {e}") from e


# Singleton
order_ledger = OrderLedger()
