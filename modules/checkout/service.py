"""
Checkout Module - Coordinator
===============================
Turns a user's cart into an order in one transaction:

    Started -> CartLoaded -> StockValidated -> OrderCreated -> LinesCreated
            -> StockDecremented -> CartCleared -> Committed

Any step that does not succeed ends in RolledBack with nothing written.
The user's cart rows and then the product rows are locked for the whole
transaction, so the stock that was validated is the stock that gets
decremented, and a cart is turned into an order at most once.
"""

import logging
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from common.exceptions import PersistenceError
from common.helpers import now_utc
from config.database import LockingSessionLocal
from modules.cart.service import cart_service
from modules.inventory.service import inventory_store
from modules.order.ledger import order_ledger, OrderLineInput
from modules.checkout.outcomes import (
    CheckoutOutcome, CheckoutStage, Success, EmptyCart,
    InsufficientStock, StockShortage, DecrementRace, Infrastructure,
)

logger = logging.getLogger("supermarket.checkout")


class _Attempt:
    def __init__(self, user_id: int):
        self.user_id = user_id
        self.stage = CheckoutStage.STARTED


class CheckoutService:

    def __init__(
        self,
        session_factory: sessionmaker = None,
        clock: Callable = now_utc,
        inventory=inventory_store,
        cart=cart_service,
        ledger=order_ledger,
    ):
        self._session_factory = session_factory or LockingSessionLocal
        self._clock = clock
        self._inventory = inventory
        self._cart = cart
        self._ledger = ledger

    def checkout(self, user_id: int) -> CheckoutOutcome:
        """
        Place an order from the user's cart. Exactly one attempt, no retries.
        Returns Success, EmptyCart, InsufficientStock, DecrementRace or Infrastructure.
        """
        attempt = _Attempt(user_id)
        db = self._session_factory()
        try:
            db.begin()
            outcome = self._run(db, attempt)
            if outcome.ok:
                db.commit()
                attempt.stage = CheckoutStage.COMMITTED
            else:
                db.rollback()
                attempt.stage = CheckoutStage.ROLLED_BACK
        except (SQLAlchemyError, PersistenceError) as e:
            failed_at = attempt.stage
            db.rollback()
            attempt.stage = CheckoutStage.ROLLED_BACK
            logger.error(f"Checkout for user #{user_id} failed after {failed_at.value}: {e}")
            outcome = Infrastructure(detail=str(e))
        finally:
            db.close()

        if isinstance(outcome, Success):
            logger.info(f"Order #{outcome.order_id} placed by user #{user_id} (total {outcome.total_amount})")
        elif isinstance(outcome, DecrementRace):
            logger.error(
                f"Stock decrement failed under lock for product #{outcome.product_id} "
                f"(user #{user_id}): locking discipline was bypassed"
            )
        elif not isinstance(outcome, Infrastructure):
            logger.info(f"Checkout for user #{user_id} rolled back: {outcome.kind}")
        return outcome

    def _run(self, db: Session, attempt: _Attempt) -> CheckoutOutcome:
        user_id = attempt.user_id

        lines = self._cart.lines_for_user(db, user_id, lock=True)
        if not lines:
            return EmptyCart()

        locked = self._inventory.lock_and_read(db, [line.product_id for line in lines])
        attempt.stage = CheckoutStage.CART_LOADED

        shortages = []
        for line in lines:
            snapshot = locked.get(line.product_id)
            available = snapshot.stock_quantity if snapshot else 0
            if line.quantity > available:
                shortages.append(StockShortage(line.product_id, line.quantity, available))
        if shortages:
            return InsufficientStock(items=tuple(shortages))
        attempt.stage = CheckoutStage.STOCK_VALIDATED

        # Price from the locked rows, never from what the cart page showed
        order_lines = []
        total = Decimal("0.00")
        for line in lines:
            snapshot = locked[line.product_id]
            unit_price = Decimal(snapshot.unit_price)
            total += unit_price * line.quantity
            order_lines.append(OrderLineInput(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=unit_price,
                product_name=snapshot.name,
            ))

        order_id = self._ledger.create_order(db, user_id, total, self._clock())
        attempt.stage = CheckoutStage.ORDER_CREATED

        self._ledger.create_order_lines(db, order_id, order_lines)
        attempt.stage = CheckoutStage.LINES_CREATED

        for line in order_lines:
            if not self._inventory.conditional_decrement(db, line.product_id, line.quantity):
                return DecrementRace(product_id=line.product_id)
        attempt.stage = CheckoutStage.STOCK_DECREMENTED

        self._cart.clear_for_user(db, user_id)
        attempt.stage = CheckoutStage.CART_CLEARED

        return Success(order_id=order_id, total_amount=total)


# Singleton
checkout_service = CheckoutService()
