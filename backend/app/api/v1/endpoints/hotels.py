from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import Hotel, User
from backend.app.db.models.core_types import Role

router = APIRouter(prefix="/hotels")

admin_only = require_roles(Role.superadmin)
hotel_readers = require_roles(Role.superadmin, Role.md, Role.procurement_officer, Role.store_manager)


class HotelCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    branch: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=255)
    code: str | None = Field(default=None, max_length=32)


class HotelUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    branch: str | None = Field(default=None, min_length=1, max_length=200)
    location: str | None = Field(default=None, min_length=1, max_length=255)
    code: str | None = Field(default=None, min_length=1, max_length=32)


def hotel_out(h: Hotel) -> dict:
    return {
        "id": h.id,
        "name": h.name,
        "branch": h.branch,
        "location": h.location,
        "code": h.code,
        "display_name": h.display_name,
        "is_active": h.is_active,
    }


def default_code(name: str, branch: str) -> str:
    """NAM-BRA style code from the first three letters of name and branch."""
    return f"{name.strip()[:3]}-{branch.strip()[:3]}".upper()


def _get_hotel(db: Session, hotel_id: int) -> Hotel:
    h = db.get(Hotel, hotel_id)
    if not h or not h.is_active:
        raise HTTPException(status_code=404, detail="Hotel not found")
    return h


def _code_taken(db: Session, code: str, exclude_id: int | None = None) -> bool:
    stmt = select(Hotel.id).where(Hotel.code == code)
    if exclude_id is not None:
        stmt = stmt.where(Hotel.id != exclude_id)
    return db.execute(stmt).first() is not None


@router.get("")
def list_hotels(db: Session = Depends(get_db), current: User = Depends(hotel_readers)):
    rows = db.execute(select(Hotel).where(Hotel.is_active.is_(True)).order_by(Hotel.name, Hotel.branch)).scalars().all()
    return [hotel_out(h) for h in rows]


@router.get("/{hotel_id}")
def get_hotel(hotel_id: int, db: Session = Depends(get_db), current: User = Depends(hotel_readers)):
    return hotel_out(_get_hotel(db, hotel_id))


@router.post("", status_code=201)
def create_hotel(payload: HotelCreate, db: Session = Depends(get_db), current: User = Depends(admin_only)):
    code = (payload.code or default_code(payload.name, payload.branch)).upper()
    if _code_taken(db, code):
        raise HTTPException(status_code=409, detail=f"Hotel code {code} already exists")

    h = Hotel(
        name=payload.name.strip(),
        branch=payload.branch.strip(),
        location=payload.location.strip(),
        code=code,
        is_active=True,
    )
    db.add(h)
    db.commit()
    db.refresh(h)
    return hotel_out(h)


@router.put("/{hotel_id}")
def update_hotel(
    hotel_id: int,
    payload: HotelUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(admin_only),
):
    h = _get_hotel(db, hotel_id)
    data = payload.model_dump(exclude_unset=True)
    if "code" in data and data["code"] is not None:
        data["code"] = data["code"].upper()
        if _code_taken(db, data["code"], exclude_id=h.id):
            raise HTTPException(status_code=409, detail=f"Hotel code {data['code']} already exists")
    for field, value in data.items():
        if value is not None:
            setattr(h, field, value)
    db.commit()
    db.refresh(h)
    return hotel_out(h)


@router.delete("/{hotel_id}")
def disable_hotel(hotel_id: int, db: Session = Depends(get_db), current: User = Depends(admin_only)):
    h = _get_hotel(db, hotel_id)
    h.is_active = False
    db.commit()
    return {"id": h.id, "is_active": h.is_active}
