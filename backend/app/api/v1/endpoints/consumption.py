from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import ensure_hotel_access, get_db, require_roles
from backend.app.db.models.models_v1 import ConsumptionEntry, User
from backend.app.db.models.core_types import Role
from backend.services import consumption

router = APIRouter(prefix="/consumption")

reporters = require_roles(Role.hotel_manager, Role.superadmin)
readers = require_roles(Role.hotel_manager, Role.md, Role.superadmin)


class ConsumptionLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(ge=0)
    unit: str | None = Field(default=None, max_length=32)


class ConsumptionCreate(BaseModel):
    hotel_id: int
    entry_date: date
    items: list[ConsumptionLineIn] = Field(min_length=1)
    remarks: str | None = None


def consumption_out(e: ConsumptionEntry) -> dict:
    return {
        "id": e.id,
        "hotel_id": e.hotel_id,
        "entry_date": e.entry_date,
        "reported_by": e.reported_by,
        "remarks": e.remarks,
        "items": [
            {
                "item_id": ln.item_id,
                "item_name": ln.item.name if ln.item else None,
                "quantity_consumed": ln.quantity_consumed,
                "unit": ln.unit,
                "opening_balance": ln.opening_balance,
                "closing_balance": ln.closing_balance,
            }
            for ln in e.lines
        ],
    }


@router.post("", status_code=201)
def record_consumption(payload: ConsumptionCreate, db: Session = Depends(get_db), current: User = Depends(reporters)):
    ensure_hotel_access(current, payload.hotel_id)
    entry, over = consumption.record_consumption(
        db,
        hotel_id=payload.hotel_id,
        entry_date=payload.entry_date,
        lines=[
            consumption.ConsumptionLineInput(item_id=ln.item_id, quantity=ln.quantity, unit=ln.unit)
            for ln in payload.items
        ],
        reported_by=current.id,
        remarks=payload.remarks,
    )
    db.commit()
    db.refresh(entry)
    return {"consumption": consumption_out(entry), "over_consumption": over}


@router.get("")
def list_consumption(
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(readers),
):
    if current.role == Role.hotel_manager:
        hotel_id = hotel_id if hotel_id is not None else current.hotel_id
        ensure_hotel_access(current, hotel_id)
    rows = consumption.list_consumption(db, hotel_id=hotel_id, date_from=date_from, date_to=date_to)
    return [consumption_out(e) for e in rows]
