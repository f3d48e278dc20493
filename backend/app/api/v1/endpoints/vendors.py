from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import User, Vendor
from backend.app.db.models.core_types import PaymentTerms, Role

router = APIRouter(prefix="/vendors")

admin_only = require_roles(Role.superadmin)
vendor_readers = require_roles(Role.superadmin, Role.procurement_officer, Role.accounts)


class VendorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=32)
    email: EmailStr | None = None
    address: str | None = None
    gst_number: str | None = Field(default=None, max_length=32)
    pan_number: str | None = Field(default=None, max_length=16)
    payment_terms: PaymentTerms = PaymentTerms.days_30


class VendorUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=32)
    email: EmailStr | None = None
    address: str | None = None
    gst_number: str | None = Field(default=None, max_length=32)
    pan_number: str | None = Field(default=None, max_length=16)
    payment_terms: PaymentTerms | None = None


def vendor_out(v: Vendor) -> dict:
    return {
        "id": v.id,
        "name": v.name,
        "contact_person": v.contact_person,
        "phone": v.phone,
        "email": v.email,
        "address": v.address,
        "gst_number": v.gst_number,
        "pan_number": v.pan_number,
        "payment_terms": v.payment_terms,
        "is_active": v.is_active,
    }


def _name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Vendor.id).where(func.lower(Vendor.name) == name.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(Vendor.id != exclude_id)
    return db.execute(stmt).first() is not None


def _get_vendor(db: Session, vendor_id: int) -> Vendor:
    v = db.get(Vendor, vendor_id)
    if not v or not v.is_active:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return v


@router.get("")
def list_vendors(db: Session = Depends(get_db), current: User = Depends(vendor_readers)):
    rows = db.execute(select(Vendor).where(Vendor.is_active.is_(True)).order_by(Vendor.name)).scalars().all()
    return [vendor_out(v) for v in rows]


@router.get("/{vendor_id}")
def get_vendor(vendor_id: int, db: Session = Depends(get_db), current: User = Depends(vendor_readers)):
    return vendor_out(_get_vendor(db, vendor_id))


@router.post("", status_code=201)
def create_vendor(payload: VendorCreate, db: Session = Depends(get_db), current: User = Depends(admin_only)):
    if _name_taken(db, payload.name):
        raise HTTPException(status_code=409, detail="Vendor already exists")

    v = Vendor(
        **payload.model_dump(exclude={"name"}),
        name=payload.name.strip(),
        created_by=current.id,
        is_active=True,
    )
    db.add(v)
    db.commit()
    db.refresh(v)
    return vendor_out(v)


@router.put("/{vendor_id}")
def update_vendor(
    vendor_id: int,
    payload: VendorUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(admin_only),
):
    v = _get_vendor(db, vendor_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        if _name_taken(db, data["name"], exclude_id=v.id):
            raise HTTPException(status_code=409, detail="Vendor already exists")
        data["name"] = data["name"].strip()
    for field, value in data.items():
        setattr(v, field, value)
    db.commit()
    db.refresh(v)
    return vendor_out(v)


@router.patch("/{vendor_id}/disable")
def disable_vendor(vendor_id: int, db: Session = Depends(get_db), current: User = Depends(admin_only)):
    v = _get_vendor(db, vendor_id)
    v.is_active = False
    db.commit()
    return {"id": v.id, "is_active": v.is_active}
