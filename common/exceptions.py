"""
Supermarket Storefront - Custom Exceptions
===========================================
Business-level exceptions that can be caught and converted to HTTP responses.
"""

from fastapi import HTTPException


class StorefrontError(Exception):
    """Base exception for all business logic errors."""
    def __init__(self, message: str = "Something went wrong."):
        self.message = message
        super().__init__(self.message)


class AuthorizationError(StorefrontError):
    """Raised when user lacks permission."""
    pass


class PreconditionError(StorefrontError):
    """Raised when an operation is called outside the state it requires."""
    pass


class PersistenceError(StorefrontError):
    """Raised when the underlying storage fails to write."""
    pass


class ValidationError(StorefrontError):
    """Raised for invalid input values (price, quantity, status...)."""
    pass


class InsufficientStockError(StorefrontError):
    """Raised when product stock is not enough for a cart change."""
    def __init__(self, product_name: str = "", available: int = 0):
        self.available = available
        if product_name:
            msg = f"Not enough stock for {product_name}. Only {available} available."
        else:
            msg = "Not enough stock."
        super().__init__(msg)


class NotFoundError(StorefrontError):
    """Raised when a requested resource doesn't exist."""
    pass


def raise_http(error: StorefrontError, status_code: int = 400):
    """Convert a business exception to an HTTP exception."""
    raise HTTPException(status_code=status_code, detail=error.message)
