"""
Catalog Module - Admin Routes
================================
Product and category management for admin.
"""

from typing import Dict, Any

from fastapi import APIRouter, Request, Depends, Body
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError, ValidationError, raise_http
from common.security import csrf_check
from modules.auth.deps import require_admin
from modules.catalog.routes import product_json
from modules.catalog.service import catalog_service

router = APIRouter(tags=["catalog-admin"])


@router.get("/admin/products")
async def admin_products(
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    return {"products": [product_json(p) for p in catalog_service.list_products(db)]}


@router.post("/admin/products", status_code=201)
async def create_product(
    request: Request,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        product = catalog_service.create_product(
            db,
            name=data.get("name"),
            unit_price=data.get("unit_price"),
            stock_quantity=data.get("stock_quantity", 0),
            category_id=data.get("category_id"),
        )
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    db.commit()
    return {"product": product_json(product)}


@router.put("/admin/products/{product_id}")
async def update_product(
    request: Request,
    product_id: int,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        product = catalog_service.update_product(
            db, product_id,
            name=data.get("name"),
            unit_price=data.get("unit_price"),
            stock_quantity=data.get("stock_quantity"),
            category_id=data.get("category_id"),
        )
    except NotFoundError as e:
        db.rollback()
        raise_http(e, 404)
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    db.commit()
    return {"product": product_json(product)}


@router.delete("/admin/products/{product_id}")
async def delete_product(
    request: Request,
    product_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        catalog_service.delete_product(db, product_id)
    except NotFoundError as e:
        raise_http(e, 404)
    db.commit()
    return {"status": "success"}


# ==========================================
# 🗂️ Categories
# ==========================================

def category_json(category) -> dict:
    return {"id": category.id, "name": category.name}


@router.get("/admin/api/categories")
async def admin_categories(
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    return [category_json(c) for c in catalog_service.list_categories(db)]


@router.post("/admin/api/categories", status_code=201)
async def create_category(
    request: Request,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        category = catalog_service.create_category(db, data.get("name"))
        db.commit()
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    except IntegrityError:
        db.rollback()
        raise_http(ValidationError("Category already exists."), 409)
    return category_json(category)


@router.put("/admin/api/categories/{category_id}")
async def rename_category(
    request: Request,
    category_id: int,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        category = catalog_service.rename_category(db, category_id, data.get("name"))
        db.commit()
    except NotFoundError as e:
        db.rollback()
        raise_http(e, 404)
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    except IntegrityError:
        db.rollback()
        raise_http(ValidationError("Category already exists."), 409)
    return category_json(category)


@router.delete("/admin/api/categories/{category_id}")
async def delete_category(
    request: Request,
    category_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        catalog_service.delete_category(db, category_id)
    except NotFoundError as e:
        raise_http(e, 404)
    db.commit()
    return {"status": "success"}
