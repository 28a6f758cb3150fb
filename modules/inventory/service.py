"""
Inventory Module - Service Layer
==================================
Per-product stock: locked reads and conditional decrements.

Both operations run inside the caller's transaction. The caller owns
begin/commit/rollback; nothing here commits.
"""

from decimal import Decimal
from typing import Dict, Iterable, NamedTuple

from sqlalchemy.orm import Session

from common.exceptions import PreconditionError, ValidationError
from modules.catalog.models import Product


class LockedStock(NamedTuple):
    """A product row as read under its row lock."""
    product_id: int
    name: str
    unit_price: Decimal
    stock_quantity: int


class InventoryStore:

    def lock_and_read(self, db: Session, product_ids: Iterable[int]) -> Dict[int, LockedStock]:
        """
        Lock the given product rows (SELECT ... FOR UPDATE) until the transaction
        ends and return their current stock. Rows are locked in ascending id order
        so two checkouts sharing products always queue instead of deadlocking.

        Ids with no product row are simply missing from the result.
        Raises PreconditionError if no transaction is active.
        """
        if not db.in_transaction():
            raise PreconditionError("lock_and_read requires an active transaction")

        ids = sorted(set(product_ids))
        if not ids:
            return {}

        rows = (
            db.query(Product.id, Product.name, Product.unit_price, Product.stock_quantity)
            .filter(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .all()
        )
        return {
            row.id: LockedStock(row.id, row.name, row.unit_price, row.stock_quantity)
            for row in rows
        }

    def conditional_decrement(self, db: Session, product_id: int, amount: int) -> bool:
        """
        stock_quantity -= amount, only if stock_quantity >= amount.
        Returns True if the row was changed. Never raises for low stock.
        """
        if amount <= 0:
            raise ValidationError(f"Decrement amount must be positive, got {amount}")

        changed = (
            db.query(Product)
            .filter(Product.id == product_id, Product.stock_quantity >= amount)
            .update(
                {Product.stock_quantity: Product.stock_quantity - amount},
                synchronize_session=False,
            )
        )
        return changed == 1


# Singleton
inventory_store = InventoryStore()
