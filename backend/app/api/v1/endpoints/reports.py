from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import User
from backend.app.db.models.core_types import Role
from backend.services import reporting

router = APIRouter(prefix="/reports")

analysts = require_roles(Role.md, Role.superadmin)


@router.get("/issued-vs-consumed")
def issued_vs_consumed(
    hotel_id: int | None = None,
    item_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.issued_vs_consumed(
        db, hotel_id=hotel_id, item_id=item_id, date_from=date_from, date_to=date_to
    )


@router.get("/consumed-vs-sales")
def consumed_vs_sales(
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.consumed_vs_sales(db, hotel_id=hotel_id, date_from=date_from, date_to=date_to)


@router.get("/leakage")
def leakage(
    group_by: str = "hotel",
    hotel_id: int | None = None,
    item_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.leakage_report(
        db,
        group_by=group_by,
        hotel_id=hotel_id,
        item_id=item_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/expected-vs-actual")
def expected_vs_actual(
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.expected_vs_actual(db, hotel_id=hotel_id, date_from=date_from, date_to=date_to)


@router.get("/wastage")
def wastage(
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.wastage(db, hotel_id=hotel_id, date_from=date_from, date_to=date_to)
