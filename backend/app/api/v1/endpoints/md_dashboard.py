from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import User
from backend.app.db.models.core_types import Role
from backend.services import reporting

router = APIRouter(prefix="/md-dashboard")

analysts = require_roles(Role.md, Role.superadmin)


@router.get("/summary")
def summary(db: Session = Depends(get_db), current: User = Depends(analysts)):
    return reporting.dashboard_summary(db)


@router.get("/leakage-chart")
def leakage_chart(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.leakage_report(db, group_by="item", date_from=date_from, date_to=date_to)["data"]


@router.get("/hotel-leakage")
def hotel_leakage(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.leakage_report(db, group_by="hotel", date_from=date_from, date_to=date_to)["data"]


@router.get("/procurement-vs-payments")
def procurement_vs_payments(
    year: int | None = Query(default=None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.procurement_vs_payments(db, year=year or date.today().year)


@router.get("/item-consumption-trend")
def item_consumption_trend(
    item_id: int,
    range_: str = Query(default="daily", alias="range"),
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.item_consumption_trend(db, item_id=item_id, range_=range_)


@router.get("/expected-vs-actual-top-items")
def expected_vs_actual_top_items(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.expected_vs_actual_top_items(db, date_from=date_from, date_to=date_to)


@router.get("/vendor-performance")
def vendor_performance(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.vendor_performance(db, date_from=date_from, date_to=date_to)


@router.get("/insights")
def insights(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    return reporting.insights(db, date_from=date_from, date_to=date_to)
