"""
Checkout Module - Outcomes
============================
Typed results of one checkout attempt. Expected user conditions
(empty cart, short stock) are values here, not exceptions.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


class CheckoutStage(str, enum.Enum):
    STARTED = "Started"
    CART_LOADED = "CartLoaded"
    STOCK_VALIDATED = "StockValidated"
    ORDER_CREATED = "OrderCreated"
    LINES_CREATED = "LinesCreated"
    STOCK_DECREMENTED = "StockDecremented"
    CART_CLEARED = "CartCleared"
    COMMITTED = "Committed"
    ROLLED_BACK = "RolledBack"


@dataclass(frozen=True)
class CheckoutOutcome:
    kind = "outcome"

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(CheckoutOutcome):
    order_id: int
    total_amount: Decimal
    kind = "success"

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class EmptyCart(CheckoutOutcome):
    kind = "empty_cart"


@dataclass(frozen=True)
class StockShortage:
    product_id: int
    requested: int
    available: int


@dataclass(frozen=True)
class InsufficientStock(CheckoutOutcome):
    items: Tuple[StockShortage, ...]
    kind = "insufficient_stock"


@dataclass(frozen=True)
class DecrementRace(CheckoutOutcome):
    product_id: int
    kind = "decrement_race"


@dataclass(frozen=True)
class Infrastructure(CheckoutOutcome):
    detail: str
    kind = "infrastructure"
