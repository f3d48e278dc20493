from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.api.v1.endpoints.auth import user_out
from backend.app.db.models.models_v1 import Hotel, User
from backend.app.db.models.core_types import Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")

admin_only = require_roles(Role.superadmin)


class RoleUpdate(BaseModel):
    role: Role
    hotel_id: int | None = None


def _get_user(db: Session, user_id: int) -> User:
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


@router.get("")
def list_users(db: Session = Depends(get_db), current: User = Depends(admin_only)):
    rows = db.execute(select(User).where(User.is_active.is_(True)).order_by(User.name)).scalars().all()
    return [user_out(u) for u in rows]


@router.patch("/{user_id}/role")
def change_role(
    user_id: int,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(admin_only),
):
    u = _get_user(db, user_id)
    hotel_id = payload.hotel_id if payload.hotel_id is not None else u.hotel_id
    if payload.role == Role.hotel_manager:
        if hotel_id is None:
            raise HTTPException(status_code=400, detail="Hotel managers must be assigned a hotel")
        hotel = db.get(Hotel, hotel_id)
        if not hotel or not hotel.is_active:
            raise HTTPException(status_code=400, detail="Invalid hotel_id")

    u.role = payload.role
    u.hotel_id = hotel_id
    db.commit()
    db.refresh(u)
    logger.info("User %s role changed to %s by %s", u.id, u.role.value, current.id)
    return user_out(u)


@router.delete("/{user_id}")
def disable_user(user_id: int, db: Session = Depends(get_db), current: User = Depends(admin_only)):
    u = _get_user(db, user_id)
    if u.id == current.id:
        raise HTTPException(status_code=400, detail="You cannot disable your own account")
    u.is_active = False
    db.commit()
    logger.info("User %s disabled by %s", u.id, current.id)
    return {"id": u.id, "is_active": u.is_active}
