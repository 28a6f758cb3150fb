"""
Cart Module - Service Layer
==============================
Per-user cart lines: read, add/update/remove, clear, totals.

Totals shown here are advisory. The amount charged is recomputed by
checkout from locked product rows.
"""

from decimal import Decimal
from typing import List, NamedTuple, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, Query
from sqlalchemy import func

from common.exceptions import InsufficientStockError, NotFoundError, ValidationError
from config.settings import CART_MAX_QUANTITY
from modules.cart.models import CartItem
from modules.catalog.models import Product


class CartLineView(NamedTuple):
    """Cart line joined with product details. Product fields are None for a dangling line."""
    cart_item_id: int
    product_id: int
    quantity: int
    product_name: Optional[str]
    unit_price: Optional[Decimal]
    stock_quantity: Optional[int]


class CartService:

    # ==========================================
    # Store contract (used by checkout)
    # ==========================================

    def lines_for_user(self, db: Session, user_id: int, lock: bool = False) -> List[CartLineView]:
        """
        All cart lines of a user, oldest first, with product name/price/stock.

        lock=True takes FOR UPDATE on the user's cart rows (not the products),
        so a second checkout of the same cart waits and then sees it emptied.
        """
        return [CartLineView(*row) for row in self._lines_query(db, user_id, lock).all()]

    def clear_for_user(self, db: Session, user_id: int) -> int:
        """Delete every line of the user's cart. Returns the number removed (0 if empty)."""
        removed = (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.flush()
        return removed

    def _lines_query(self, db: Session, user_id: int, lock: bool = False) -> Query:
        q = (
            db.query(
                CartItem.id, CartItem.product_id, CartItem.quantity,
                Product.name, Product.unit_price, Product.stock_quantity,
            )
            .outerjoin(Product, Product.id == CartItem.product_id)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.id)
        )
        if lock:
            # Products sit on the nullable side of the join; they are locked separately
            q = q.with_for_update(of=CartItem)
        return q

    # ==========================================
    # Cart editing
    # ==========================================

    def add_item(self, db: Session, user_id: int, product_id: int, quantity: int = 1) -> Tuple[int, int]:
        """
        Add `quantity` units, limited by what is left after the units already in cart.
        Returns: (units_added, new_line_quantity)
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1.")
        return self._retry_on_conflict(db, self._add_once, user_id, product_id, quantity)

    def _add_once(self, db: Session, user_id: int, product_id: int, quantity: int) -> Tuple[int, int]:
        product = self._get_product(db, product_id)
        item = self._get_item(db, user_id, product_id)
        in_cart = item.quantity if item else 0

        can_add = min(product.stock_quantity, CART_MAX_QUANTITY) - in_cart
        if can_add <= 0:
            raise InsufficientStockError(product.name, product.stock_quantity)

        added = min(quantity, can_add)
        if item:
            item.quantity = in_cart + added
        else:
            item = CartItem(user_id=user_id, product_id=product_id, quantity=added)
            db.add(item)

        db.flush()
        return added, item.quantity

    def set_quantity(self, db: Session, user_id: int, product_id: int, quantity: int) -> int:
        """
        Set a line to an exact quantity. 0 (or less) removes the line.
        Returns the new quantity.
        """
        if quantity <= 0:
            self.remove_item(db, user_id, product_id)
            return 0

        if quantity > CART_MAX_QUANTITY:
            raise ValidationError(f"At most {CART_MAX_QUANTITY} units per product.")

        return self._retry_on_conflict(db, self._set_once, user_id, product_id, quantity)

    def _set_once(self, db: Session, user_id: int, product_id: int, quantity: int) -> int:
        product = self._get_product(db, product_id)
        if quantity > product.stock_quantity:
            raise InsufficientStockError(product.name, product.stock_quantity)

        item = self._get_item(db, user_id, product_id)
        if item:
            item.quantity = quantity
        else:
            db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))

        db.flush()
        return quantity

    def _retry_on_conflict(self, db: Session, fn, *args):
        """Run fn in a savepoint, once more if a parallel request inserted the same line first."""
        for attempt in range(2):
            try:
                with db.begin_nested():
                    return fn(db, *args)
            except IntegrityError:
                if attempt == 1:
                    raise

    def remove_item(self, db: Session, user_id: int, product_id: int) -> bool:
        removed = (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .delete(synchronize_session=False)
        )
        db.flush()
        return removed > 0

    # ==========================================
    # Display
    # ==========================================

    def get_cart_summary(self, db: Session, user_id: int) -> Tuple[List[dict], Decimal]:
        """
        Cart lines with line totals for display.
        Returns: (items_data, advisory_total)
        """
        items_data = []
        total = Decimal("0.00")

        for line in self.lines_for_user(db, user_id):
            available = line.unit_price is not None
            line_total = line.unit_price * line.quantity if available else Decimal("0.00")
            total += line_total
            items_data.append({
                "cart_item_id": line.cart_item_id,
                "product_id": line.product_id,
                "product_name": line.product_name,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "line_total": line_total,
                "stock": line.stock_quantity or 0,
                "available": available,
            })

        return items_data, total

    def cart_count(self, db: Session, user_id: int) -> int:
        """Total units in the user's cart."""
        return db.query(
            func.coalesce(func.sum(CartItem.quantity), 0)
        ).filter(CartItem.user_id == user_id).scalar() or 0

    # ==========================================
    # Private helpers
    # ==========================================

    def _get_product(self, db: Session, product_id: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found.")
        return product

    def _get_item(self, db: Session, user_id: int, product_id: int) -> Optional[CartItem]:
        return db.query(CartItem).filter(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        ).first()


# Singleton
cart_service = CartService()
