from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_roles
from backend.app.core.security import create_access_token, get_password_hash, verify_password
from backend.app.db.models.models_v1 import Hotel, User
from backend.app.db.models.core_types import Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")

MAX_PASSWORD_BYTES = 72


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: Role
    hotel_id: int | None = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        # bcrypt only accepts up to 72 bytes of input
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


def user_out(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "hotel_id": u.hotel_id,
        "is_active": u.is_active,
    }


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.execute(select(User).where(User.email == payload.email.lower())).scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    token = create_access_token(
        {"sub": str(user.id), "role": user.role.value, "hotel_id": user.hotel_id}
    )
    logger.info("User %s logged in", user.id)
    return {"access_token": token, "token_type": "bearer", "user": user_out(user)}


@router.post("/register", status_code=201)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    current: User = Depends(require_roles(Role.superadmin)),
):
    email = payload.email.lower()
    if db.execute(select(User).where(User.email == email)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail="User already exists")

    if payload.role == Role.hotel_manager and payload.hotel_id is None:
        raise HTTPException(status_code=400, detail="Hotel managers must be assigned a hotel")
    if payload.hotel_id is not None:
        hotel = db.get(Hotel, payload.hotel_id)
        if not hotel or not hotel.is_active:
            raise HTTPException(status_code=400, detail="Invalid hotel_id")

    u = User(
        name=payload.name,
        email=email,
        password_hash=get_password_hash(payload.password),
        role=payload.role,
        hotel_id=payload.hotel_id,
        is_active=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    logger.info("User %s registered with role %s by %s", u.id, u.role.value, current.id)
    return user_out(u)


@router.get("/me")
def me(current: User = Depends(get_current_user)):
    return user_out(current)
