"""
User Module - Admin Service
=============================
Admin user management: list/search, edit role and profile, deactivate.

Users are never deleted: orders keep a RESTRICT reference to them, so
"delete" in the admin panel switches the account off instead.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from common.exceptions import NotFoundError, ValidationError
from modules.user.models import User, UserRole

logger = logging.getLogger("supermarket.user")

_ROLES = {UserRole.USER, UserRole.ADMIN}


class UserService:

    def list_users(
        self, db: Session, search: str = None, role: str = None, status: str = None,
    ) -> List[User]:
        q = db.query(User)
        if search:
            term = f"%{search.strip()}%"
            q = q.filter(or_(User.username.ilike(term), User.email.ilike(term)))
        if role:
            q = q.filter(User.role == role)
        if status == "active":
            q = q.filter(User.is_active == True)  # noqa: E712
        elif status == "inactive":
            q = q.filter(User.is_active == False)  # noqa: E712
        return q.order_by(User.id).all()

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found.")
        return user

    def update_user(
        self, db: Session, user_id: int, actor: User,
        role: Optional[str] = None, is_active: Optional[bool] = None,
        email: Optional[str] = None, contact: Optional[str] = None, address: Optional[str] = None,
    ) -> User:
        """Edit a user. Only given fields change. Admins cannot demote or lock out themselves."""
        user = self.get_user(db, user_id)

        if role is not None:
            if role not in _ROLES:
                raise ValidationError(f"Unknown role: {role}")
            if user.id == actor.id and role != user.role:
                raise ValidationError("You cannot change your own role.")
            user.role = role
        if is_active is not None:
            if user.id == actor.id and not is_active:
                raise ValidationError("You cannot deactivate your own account.")
            user.is_active = bool(is_active)
        if email is not None:
            user.email = self._clean_email(db, email, user.id)
        if contact is not None:
            user.contact = contact.strip() or None
        if address is not None:
            user.address = address.strip() or None

        db.flush()
        logger.info(f"User #{user.id} updated by admin #{actor.id} (role={user.role}, active={user.is_active})")
        return user

    def deactivate_user(self, db: Session, user_id: int, actor: User) -> User:
        return self.update_user(db, user_id, actor, is_active=False)

    def _clean_email(self, db: Session, email: str, user_id: int) -> str:
        email = email.strip().lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("Invalid email address.")
        taken = db.query(User.id).filter(User.email == email, User.id != user_id).first()
        if taken:
            raise ValidationError("Email is already in use.")
        return email


# Singleton
user_service = UserService()
