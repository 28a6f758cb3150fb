"""
Supermarket Storefront - Shared Helpers
========================================
Pure utility functions with NO database or module dependencies.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def to_money(value) -> Optional[Decimal]:
    """Parse a price into a 2-place Decimal. Returns None on failure."""
    if value is None:
        return None
    try:
        return Decimal(str(value).strip()).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None


def format_money(value) -> str:
    """Format a price with 2 decimals and comma separators."""
    if value is None:
        return "0.00"
    try:
        return "{:,.2f}".format(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return str(value)
