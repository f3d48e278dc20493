from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import ensure_hotel_access, get_db, require_roles
from backend.app.db.models.models_v1 import SalesEntry, User
from backend.app.db.models.core_types import Role
from backend.services import consumption

router = APIRouter(prefix="/sales")

reporters = require_roles(Role.hotel_manager, Role.superadmin)
readers = require_roles(Role.hotel_manager, Role.md, Role.superadmin)


class SaleLineIn(BaseModel):
    dish_name: str = Field(min_length=1, max_length=255)
    quantity_sold: Decimal = Field(ge=0)
    price_per_unit: Decimal = Field(default=Decimal("0"), ge=0)


class SalesCreate(BaseModel):
    hotel_id: int
    entry_date: date
    sales: list[SaleLineIn] = Field(min_length=1)
    remarks: str | None = None


def sales_out(e: SalesEntry) -> dict:
    return {
        "id": e.id,
        "hotel_id": e.hotel_id,
        "entry_date": e.entry_date,
        "total_sales_amount": e.total_sales_amount,
        "reported_by": e.reported_by,
        "remarks": e.remarks,
        "sales": [
            {
                "dish_name": ln.dish_name,
                "quantity_sold": ln.quantity_sold,
                "price_per_unit": ln.price_per_unit,
                "amount": ln.amount,
            }
            for ln in e.lines
        ],
    }


@router.post("", status_code=201)
def record_sales(payload: SalesCreate, db: Session = Depends(get_db), current: User = Depends(reporters)):
    ensure_hotel_access(current, payload.hotel_id)
    entry = consumption.record_sales(
        db,
        hotel_id=payload.hotel_id,
        entry_date=payload.entry_date,
        lines=[
            consumption.SaleLineInput(
                dish_name=ln.dish_name,
                quantity_sold=ln.quantity_sold,
                price_per_unit=ln.price_per_unit,
            )
            for ln in payload.sales
        ],
        reported_by=current.id,
        remarks=payload.remarks,
    )
    db.commit()
    db.refresh(entry)
    return sales_out(entry)


@router.get("")
def list_sales(
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(readers),
):
    if current.role == Role.hotel_manager:
        hotel_id = hotel_id if hotel_id is not None else current.hotel_id
        ensure_hotel_access(current, hotel_id)
    rows = consumption.list_sales(db, hotel_id=hotel_id, date_from=date_from, date_to=date_to)
    return [sales_out(e) for e in rows]
