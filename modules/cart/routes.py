"""
Cart & Checkout Routes
========================
Cart view, item add/update/remove/clear (JSON API), and checkout.
"""

import logging
from typing import Dict, Any

from fastapi import APIRouter, Request, Depends, Body
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import (
    StorefrontError, NotFoundError, InsufficientStockError, raise_http,
)
from common.helpers import safe_int, format_money
from common.security import csrf_check
from modules.auth.deps import require_login
from modules.cart.service import cart_service
from modules.checkout.service import checkout_service, CheckoutService
from modules.checkout.outcomes import (
    CheckoutOutcome, Success, EmptyCart, InsufficientStock,
)

logger = logging.getLogger("supermarket.cart")

router = APIRouter(tags=["cart"])


def get_checkout_service() -> CheckoutService:
    return checkout_service


def _item_json(item: dict) -> dict:
    return {
        "cart_item_id": item["cart_item_id"],
        "product_id": item["product_id"],
        "product_name": item["product_name"],
        "quantity": item["quantity"],
        "unit_price": str(item["unit_price"]) if item["unit_price"] is not None else None,
        "line_total": str(item["line_total"]),
        "stock": item["stock"],
        "available": item["available"],
    }


def _cart_change_error(e: StorefrontError):
    if isinstance(e, NotFoundError):
        raise_http(e, 404)
    if isinstance(e, InsufficientStockError):
        raise_http(e, 409)
    raise_http(e, 400)


def _require_product_id(data: Dict[str, Any]) -> int:
    product_id = safe_int(data.get("product_id"))
    if not product_id:
        raise_http(StorefrontError("Invalid request: missing product_id"), 400)
    return product_id


# ==========================================
# 🛒 View Cart
# ==========================================

@router.get("/cart")
async def view_cart(
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    items, total = cart_service.get_cart_summary(db, me.id)
    return {
        "items": [_item_json(it) for it in items],
        "total": str(total),
        "total_display": format_money(total),
        "cart_count": sum(it["quantity"] for it in items),
    }


# ==========================================
# ➕➖ Cart changes (API, for AJAX)
# ==========================================

@router.post("/api/cart/add")
async def api_add_to_cart(
    request: Request,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    csrf_check(request)
    product_id = _require_product_id(data)
    quantity = safe_int(data.get("quantity")) or 1

    try:
        added, new_qty = cart_service.add_item(db, me.id, product_id, quantity)
    except StorefrontError as e:
        db.rollback()
        _cart_change_error(e)
    except IntegrityError:
        db.rollback()
        raise_http(StorefrontError("Your cart changed at the same time. Please try again."), 409)
    db.commit()

    message = "Added to cart" if added == quantity else f"Added {added} (limited by stock)"
    return JSONResponse({
        "status": "success",
        "message": message,
        "added": added,
        "new_quantity": new_qty,
        "cart_count": cart_service.cart_count(db, me.id),
    })


@router.post("/api/cart/update")
async def api_update_cart(
    request: Request,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    csrf_check(request)
    product_id = _require_product_id(data)
    quantity = safe_int(data.get("quantity"))
    if quantity is None:
        raise_http(StorefrontError("Invalid request: missing quantity"), 400)

    try:
        new_qty = cart_service.set_quantity(db, me.id, product_id, quantity)
    except StorefrontError as e:
        db.rollback()
        _cart_change_error(e)
    except IntegrityError:
        db.rollback()
        raise_http(StorefrontError("Your cart changed at the same time. Please try again."), 409)
    db.commit()

    return JSONResponse({
        "status": "success",
        "new_quantity": new_qty,
        "cart_count": cart_service.cart_count(db, me.id),
    })


@router.post("/api/cart/remove")
async def api_remove_from_cart(
    request: Request,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    csrf_check(request)
    product_id = _require_product_id(data)
    removed = cart_service.remove_item(db, me.id, product_id)
    db.commit()
    return JSONResponse({
        "status": "success",
        "removed": removed,
        "cart_count": cart_service.cart_count(db, me.id),
    })


@router.post("/api/cart/clear")
async def api_clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    csrf_check(request)
    removed = cart_service.clear_for_user(db, me.id)
    db.commit()
    return JSONResponse({"status": "success", "removed": removed, "cart_count": 0})


# ==========================================
# ✅ Checkout
# ==========================================

def outcome_response(outcome: CheckoutOutcome) -> JSONResponse:
    """Map a checkout outcome to an HTTP response. Internal details never leave here."""
    if isinstance(outcome, Success):
        return JSONResponse({
            "status": outcome.kind,
            "order_id": outcome.order_id,
            "total": str(outcome.total_amount),
            "redirect": f"/orders/{outcome.order_id}",
        }, status_code=201)

    if isinstance(outcome, EmptyCart):
        return JSONResponse({
            "status": outcome.kind,
            "message": "Your cart is empty.",
        }, status_code=409)

    if isinstance(outcome, InsufficientStock):
        return JSONResponse({
            "status": outcome.kind,
            "message": "Not enough stock for one or more items.",
            "items": [
                {"product_id": s.product_id, "requested": s.requested, "available": s.available}
                for s in outcome.items
            ],
        }, status_code=409)

    # DecrementRace / Infrastructure
    return JSONResponse({
        "status": "error",
        "message": "We could not place your order. Please try again.",
    }, status_code=503)


@router.post("/cart/checkout")
def checkout(
    request: Request,
    me=Depends(require_login),
    service: CheckoutService = Depends(get_checkout_service),
):
    # Sync handler: runs in the threadpool while waiting on row locks
    csrf_check(request)
    outcome = service.checkout(me.id)
    return outcome_response(outcome)
