"""
Catalog Module - Service Layer
================================
Product listing, admin product management (create, edit, delete) and categories.

Edits lock the product row first so a stock change queues behind any
in-flight checkout holding the same row.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from common.exceptions import NotFoundError, ValidationError
from common.helpers import safe_int, to_money
from modules.catalog.models import Product, ProductCategory

logger = logging.getLogger("supermarket.catalog")


class CatalogService:

    # ==========================================
    # Query
    # ==========================================

    def list_products(
        self, db: Session, in_stock_only: bool = False, category_id: Optional[int] = None,
    ) -> List[Product]:
        q = db.query(Product).order_by(Product.id.desc())
        if in_stock_only:
            q = q.filter(Product.stock_quantity > 0)
        if category_id:
            q = q.filter(Product.category_id == category_id)
        return q.all()

    def get_product(self, db: Session, product_id: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found.")
        return product

    # ==========================================
    # Admin
    # ==========================================

    def create_product(self, db: Session, name: str, unit_price, stock_quantity=0, category_id=None) -> Product:
        product = Product(
            name=self._clean_name(name),
            unit_price=self._clean_price(unit_price),
            stock_quantity=self._clean_stock(stock_quantity),
            category_id=self._clean_category(db, category_id),
        )
        db.add(product)
        db.flush()
        logger.info(f"Product #{product.id} created: {product.name}")
        return product

    def update_product(
        self, db: Session, product_id: int,
        name: Optional[str] = None, unit_price=None, stock_quantity=None, category_id=None,
    ) -> Product:
        """
        Edit a product under its row lock. Only given fields change;
        category_id=0 takes the product out of its category.
        Order lines keep the price they were sold at.
        """
        product = (
            db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )
        if not product:
            raise NotFoundError("Product not found.")

        if name is not None:
            product.name = self._clean_name(name)
        if unit_price is not None:
            product.unit_price = self._clean_price(unit_price)
        if stock_quantity is not None:
            product.stock_quantity = self._clean_stock(stock_quantity)
        if category_id is not None:
            product.category_id = self._clean_category(db, category_id)

        db.flush()
        logger.info(f"Product #{product.id} updated (price={product.unit_price}, stock={product.stock_quantity})")
        return product

    def delete_product(self, db: Session, product_id: int):
        product = self.get_product(db, product_id)
        db.delete(product)
        db.flush()
        logger.info(f"Product #{product_id} deleted")

    # ==========================================
    # Categories
    # ==========================================

    def list_categories(self, db: Session) -> List[ProductCategory]:
        return db.query(ProductCategory).order_by(ProductCategory.name).all()

    def get_category(self, db: Session, category_id: int) -> ProductCategory:
        category = db.query(ProductCategory).filter(ProductCategory.id == category_id).first()
        if not category:
            raise NotFoundError("Category not found.")
        return category

    def create_category(self, db: Session, name: str) -> ProductCategory:
        category = ProductCategory(name=self._clean_category_name(db, name))
        db.add(category)
        db.flush()
        logger.info(f"Category #{category.id} created: {category.name}")
        return category

    def rename_category(self, db: Session, category_id: int, name: str) -> ProductCategory:
        category = self.get_category(db, category_id)
        category.name = self._clean_category_name(db, name, exclude_id=category.id)
        db.flush()
        return category

    def delete_category(self, db: Session, category_id: int):
        """Delete a category. Its products stay listed, without a category."""
        category = self.get_category(db, category_id)
        db.query(Product).filter(Product.category_id == category_id).update(
            {Product.category_id: None}, synchronize_session=False,
        )
        db.delete(category)
        db.flush()
        logger.info(f"Category #{category_id} deleted")

    # ==========================================
    # Validation
    # ==========================================

    def _clean_name(self, name) -> str:
        name = str(name or "").strip()
        if not name:
            raise ValidationError("Product name is required.")
        return name

    def _clean_price(self, value) -> Decimal:
        price = to_money(value)
        if price is None or not price.is_finite() or price < 0:
            raise ValidationError("Price must be a non-negative number.")
        return price

    def _clean_stock(self, value) -> int:
        stock = safe_int(value)
        if stock is None or stock < 0:
            raise ValidationError("Stock quantity must be a whole number of 0 or more.")
        return stock

    def _clean_category(self, db: Session, value) -> Optional[int]:
        if value in (None, "", 0, "0"):
            return None
        category_id = safe_int(value)
        if category_id is None or category_id < 0:
            raise ValidationError("Invalid category.")
        if not db.query(ProductCategory.id).filter(ProductCategory.id == category_id).first():
            raise ValidationError("Category does not exist.")
        return category_id

    def _clean_category_name(self, db: Session, name, exclude_id: Optional[int] = None) -> str:
        name = str(name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        q = db.query(ProductCategory.id).filter(func.lower(ProductCategory.name) == name.lower())
        if exclude_id is not None:
            q = q.filter(ProductCategory.id != exclude_id)
        if q.first():
            raise ValidationError(f"Category '{name}' already exists.")
        return name


# Singleton
catalog_service = CatalogService()
