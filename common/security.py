"""
Supermarket Storefront - Security Utilities
============================================
JWT tokens and CSRF protection.

Tokens are only decoded here; issuing them at login belongs to the
surrounding auth layer.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Request, HTTPException
from jose import jwt, JWTError

from config.settings import (
    SECRET_KEY, ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES, CSRF_ENABLED,
)
from common.helpers import now_utc

logger = logging.getLogger("supermarket.security")

AUTH_COOKIE = "auth_token"


# ==========================================
# JWT Tokens
# ==========================================

def create_token(data: dict) -> str:
    """Create a signed JWT with an expiry."""
    to_encode = data.copy()
    to_encode["exp"] = now_utc() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# ==========================================
# Cookie Helpers
# ==========================================

def get_cookie_kwargs(httponly: bool = True) -> dict:
    """Standard cookie settings. The CSRF cookie passes httponly=False so scripts can echo it back."""
    from config.settings import COOKIE_SECURE, COOKIE_SAMESITE
    return dict(
        httponly=httponly,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


# ==========================================
# CSRF
# ==========================================

def new_csrf_token() -> str:
    """Generate a new random CSRF token."""
    return secrets.token_urlsafe(32)


def csrf_check(request: Request, form_token: Optional[str] = None):
    """
    Verify CSRF token from cookie matches the one in header or body.
    Raises HTTPException(403) on mismatch.
    """
    if not CSRF_ENABLED:
        return

    cookie_token = request.cookies.get("csrf_token")
    header_token = request.headers.get("X-CSRF-Token")
    token = header_token or form_token

    if not cookie_token or not token or not secrets.compare_digest(cookie_token, token):
        logger.warning("CSRF check failed on %s", request.url.path)
        raise HTTPException(403, "CSRF token missing or invalid")
