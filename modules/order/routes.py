"""
Order Routes
==============
Order history and receipt for the logged-in user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import AuthorizationError, NotFoundError, raise_http
from common.helpers import format_money
from modules.auth.deps import require_login
from modules.order.models import Order
from modules.order.service import order_service

router = APIRouter(tags=["orders"])


def order_json(order: Order, with_items: bool = False) -> dict:
    data = {
        "id": order.id,
        "user_id": order.user_id,
        "total_amount": str(order.total_amount),
        "total_display": format_money(order.total_amount),
        "status": order.status,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }
    if with_items:
        data["items"] = [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price_at_purchase),
                "line_total": str(item.line_total),
            }
            for item in order.items
        ]
    return data


# ==========================================
# 📋 My Orders
# ==========================================

@router.get("/orders")
async def my_orders(
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    orders = order_service.get_user_orders(db, me.id)
    return {"orders": [order_json(o) for o in orders]}


# ==========================================
# 🧾 Order Detail / Receipt
# ==========================================

@router.get("/orders/{order_id}")
async def order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    try:
        order = order_service.get_order_detail(db, order_id, me)
    except NotFoundError as e:
        raise_http(e, 404)
    except AuthorizationError as e:
        raise_http(e, 403)
    return {"order": order_json(order, with_items=True)}
