"""
Auth Module - Dependencies
===========================
FastAPI dependencies that identify the current user and build the
request-scoped context handlers receive. Nothing here is global state.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.database import get_db
from common.security import decode_token, AUTH_COOKIE
from modules.user.models import User


@dataclass
class RequestContext:
    """Per-request view of who is calling and what their cart holds."""
    user: Optional[User]
    cart_count: int = 0


def get_current_active_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """
    Identify the current user from the auth_token cookie (or a Bearer header).
    Returns User object or None.
    """
    token = request.cookies.get(AUTH_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[len("Bearer "):]
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        return None

    return db.query(User).filter(User.id == int(user_id), User.is_active == True).first()  # noqa: E712


def require_login(user=Depends(get_current_active_user)) -> User:
    """Require any authenticated active user. Raises 401 if not logged in."""
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="login_required")
    return user


def require_admin(user=Depends(get_current_active_user)) -> User:
    """Only allow admins. 401 if anonymous, 403 if logged in without the role."""
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="login_required")
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def get_request_context(
    db: Session = Depends(get_db),
    user=Depends(get_current_active_user),
) -> RequestContext:
    """User plus cart badge count, computed per request."""
    from modules.cart.service import cart_service

    cart_count = cart_service.cart_count(db, user.id) if user else 0
    return RequestContext(user=user, cart_count=cart_count)
