"""
Catalog Routes
================
Public product listing, detail and category names.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError, raise_http
from modules.auth.deps import get_request_context, RequestContext
from modules.catalog.models import Product
from modules.catalog.service import catalog_service

router = APIRouter(tags=["catalog"])


def product_json(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "unit_price": str(product.unit_price),
        "stock_quantity": product.stock_quantity,
        "in_stock": product.in_stock,
        "category_id": product.category_id,
        "category": product.category_name,
    }


@router.get("/products")
async def list_products(
    in_stock: bool = Query(False),
    category_id: int = Query(None),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    products = catalog_service.list_products(db, in_stock_only=in_stock, category_id=category_id)
    return {
        "products": [product_json(p) for p in products],
        "cart_count": ctx.cart_count,
    }


@router.get("/products/{product_id}")
async def product_detail(
    product_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    try:
        product = catalog_service.get_product(db, product_id)
    except NotFoundError as e:
        raise_http(e, 404)
    return {"product": product_json(product), "cart_count": ctx.cart_count}


@router.get("/api/categories")
async def category_names(db: Session = Depends(get_db)):
    return [c.name for c in catalog_service.list_categories(db)]
