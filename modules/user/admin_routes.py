"""
User Module - Admin Routes
============================
Admin user management: list, detail, edit, deactivate.
"""

from typing import Dict, Any

from fastapi import APIRouter, Request, Depends, Body, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError, ValidationError, raise_http
from common.security import csrf_check
from modules.auth.deps import require_admin
from modules.user.models import User
from modules.user.service import user_service

router = APIRouter(prefix="/admin/users", tags=["admin-user"])


def user_json(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "contact": user.contact,
        "address": user.address,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ==========================================
# User List
# ==========================================

@router.get("")
async def admin_user_list(
    search: str = Query(None),
    role: str = Query(None),
    status: str = Query(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    users = user_service.list_users(db, search=search, role=role, status=status)
    return {"users": [user_json(u) for u in users]}


@router.get("/{user_id}")
async def admin_user_detail(
    user_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    try:
        target = user_service.get_user(db, user_id)
    except NotFoundError as e:
        raise_http(e, 404)
    return {"user": user_json(target)}


# ==========================================
# Edit / Deactivate
# ==========================================

@router.put("/{user_id}")
async def admin_user_update(
    request: Request,
    user_id: int,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        target = user_service.update_user(
            db, user_id, user,
            role=data.get("role"),
            is_active=data.get("is_active"),
            email=data.get("email"),
            contact=data.get("contact"),
            address=data.get("address"),
        )
    except NotFoundError as e:
        db.rollback()
        raise_http(e, 404)
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    db.commit()
    return {"user": user_json(target)}


@router.post("/{user_id}/deactivate")
async def admin_user_deactivate(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    csrf_check(request)
    try:
        target = user_service.deactivate_user(db, user_id, user)
    except NotFoundError as e:
        db.rollback()
        raise_http(e, 404)
    except ValidationError as e:
        db.rollback()
        raise_http(e, 400)
    db.commit()
    return {"user": user_json(target)}
