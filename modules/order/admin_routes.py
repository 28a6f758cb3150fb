"""
Order Module - Admin Routes
==============================
Order management for admin: list, detail, status change.
"""

from typing import Dict, Any

from fastapi import APIRouter, Request, Depends, Body, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError, ValidationError, raise_http
from common.security import csrf_check
from modules.auth.deps import require_admin
from modules.order.routes import order_json
from modules.order.service import order_service

router = APIRouter(tags=["order-admin"])


@router.get("/admin/orders")
async def admin_orders(
    status: str = Query(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    orders = order_service.list_all_orders(db, status=status)
    return {"orders": [order_json(o) for o in orders]}


@router.get("/admin/orders/{order_id}")
async def admin_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    try:
        order = order_service.get_order_detail(db, order_id, user)
    except NotFoundError as e:
        raise_http(e, 404)
    return {"order": order_json(order, with_items=True)}


@router.post("/admin/orders/{order_id}/status")
async def update_order_status(
    request: Request,
    order_id: int,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        order = order_service.update_status(db, order_id, data.get("status"))
    except NotFoundError as e:
        db.rollback()
        raise_http(e, 404)
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    db.commit()
    return {"order": order_json(order)}
