from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.core.config import settings
from backend.app.db.models.models_v1 import Item, User
from backend.app.db.models.core_types import Role
from backend.services import units

router = APIRouter(prefix="/items")

item_editors = require_roles(Role.superadmin, Role.procurement_officer)
item_readers = require_roles(Role.superadmin, Role.procurement_officer, Role.store_manager, Role.hotel_manager, Role.md)


class ItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    unit: str = Field(min_length=1, max_length=32)
    default_gst_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    last_procured_price: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("unit")
    @classmethod
    def normalize_unit(cls, v: str) -> str:
        return v.strip().lower()


class ItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    unit: str | None = Field(default=None, min_length=1, max_length=32)
    default_gst_percentage: Decimal | None = Field(default=None, ge=0, le=100)


def item_out(i: Item) -> dict:
    return {
        "id": i.id,
        "name": i.name,
        "category": i.category,
        "unit": i.unit,
        "base_unit": units.get_base_unit(i.unit),
        "default_gst_percentage": i.default_gst_percentage,
        "last_procured_price": i.last_procured_price,
        "is_active": i.is_active,
    }


def _get_item(db: Session, item_id: int) -> Item:
    i = db.get(Item, item_id)
    if not i or not i.is_active:
        raise HTTPException(status_code=404, detail="Item not found")
    return i


@router.get("")
def list_items(category: str | None = None, db: Session = Depends(get_db), current: User = Depends(item_readers)):
    stmt = select(Item).where(Item.is_active.is_(True)).order_by(Item.name)
    if category:
        stmt = stmt.where(Item.category == category)
    return [item_out(i) for i in db.execute(stmt).scalars().all()]


@router.get("/{item_id}")
def get_item(item_id: int, db: Session = Depends(get_db), current: User = Depends(item_readers)):
    return item_out(_get_item(db, item_id))


@router.post("", status_code=201)
def create_item(payload: ItemCreate, db: Session = Depends(get_db), current: User = Depends(item_editors)):
    gst = payload.default_gst_percentage
    i = Item(
        name=payload.name.strip(),
        category=payload.category.strip(),
        unit=payload.unit,
        default_gst_percentage=gst if gst is not None else Decimal(str(settings.default_gst_percentage)),
        last_procured_price=payload.last_procured_price,
        is_active=True,
    )
    db.add(i)
    db.commit()
    db.refresh(i)
    return item_out(i)


@router.put("/{item_id}")
def update_item(
    item_id: int,
    payload: ItemUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(item_editors),
):
    i = _get_item(db, item_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("unit"):
        new_unit = data["unit"].strip().lower()
        # stored quantities are in the item's unit
        if not units.are_units_compatible(new_unit, i.unit):
            raise HTTPException(status_code=400, detail=f"Unit '{new_unit}' is not compatible with '{i.unit}'")
        data["unit"] = new_unit
    for field, value in data.items():
        if value is not None:
            setattr(i, field, value)
    db.commit()
    db.refresh(i)
    return item_out(i)


@router.patch("/{item_id}/disable")
def disable_item(item_id: int, db: Session = Depends(get_db), current: User = Depends(item_editors)):
    i = _get_item(db, item_id)
    i.is_active = False
    db.commit()
    return {"id": i.id, "is_active": i.is_active}
