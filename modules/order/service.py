"""
Order Module - Service Layer
===============================
Order history, receipt detail, and admin status changes.
Orders are written only by checkout (see modules.order.ledger).
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc

from common.exceptions import AuthorizationError, NotFoundError, ValidationError
from modules.order.models import Order, OrderStatus

logger = logging.getLogger("supermarket.order")

_VALID_STATUSES = {s.value for s in OrderStatus}


class OrderService:

    # ==========================================
    # Query
    # ==========================================

    def get_user_orders(self, db: Session, user_id: int) -> List[Order]:
        return db.query(Order).filter(
            Order.user_id == user_id,
        ).order_by(desc(Order.created_at), desc(Order.id)).all()

    def get_order_by_id(self, db: Session, order_id: int) -> Optional[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    def get_order_detail(self, db: Session, order_id: int, viewer) -> Order:
        """Order with its lines. Only the owner or an admin may see it."""
        order = self.get_order_by_id(db, order_id)
        if not order:
            raise NotFoundError("Order not found.")
        if order.user_id != viewer.id and not viewer.is_admin:
            raise AuthorizationError("You cannot view this order.")
        return order

    def list_all_orders(self, db: Session, status: str = None) -> List[Order]:
        q = db.query(Order).order_by(desc(Order.id))
        if status:
            q = q.filter(Order.status == status)
        return q.all()

    # ==========================================
    # Admin
    # ==========================================

    def update_status(self, db: Session, order_id: int, status: str) -> Order:
        """Change an order's status. Totals and lines are never touched."""
        status = (status or "").strip()
        if status not in _VALID_STATUSES:
            raise ValidationError(f"Unknown order status: {status or '(empty)'}")

        order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
        if not order:
            raise NotFoundError("Order not found.")

        previous = order.status
        order.status = status
        db.flush()
        logger.info(f"Order #{order_id} status {previous} -> {status}")
        return order


# Singleton
order_service = OrderService()
