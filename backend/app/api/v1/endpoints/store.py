from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import ensure_hotel_access, get_db, require_roles
from backend.app.db.models.models_v1 import (
    CentralStoreStock,
    Item,
    StockIssue,
    StockLedgerEntry,
    User,
)
from backend.app.db.models.core_types import IssueRequestType, LedgerDirection, Role
from backend.services import inventory

router = APIRouter(prefix="/store")

store_readers = require_roles(Role.store_manager, Role.superadmin, Role.md)
issuers = require_roles(Role.store_manager, Role.superadmin)
balance_readers = require_roles(Role.store_manager, Role.superadmin, Role.md, Role.hotel_manager)


class IssueLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(gt=0)


class IssueCreate(BaseModel):
    hotel_id: int
    items: list[IssueLineIn] = Field(min_length=1)
    approved_by: int | None = None
    issue_date: date | None = None
    remarks: str | None = None


def stock_out(s: CentralStoreStock) -> dict:
    return {
        "item_id": s.item_id,
        "item_name": s.item.name if s.item else None,
        "category": s.item.category if s.item else None,
        "unit": s.item.unit if s.item else None,
        "quantity_on_hand": s.quantity_on_hand,
        "previous_max_stock": s.previous_max_stock,
        "reorder_level_percent": s.reorder_level_percent,
        "minimum_stock_level": s.minimum_stock_level,
        "is_low_stock": s.is_low_stock,
        "last_updated": s.last_updated,
    }


def issue_out(i: StockIssue) -> dict:
    return {
        "id": i.id,
        "issue_number": i.issue_number,
        "hotel_id": i.hotel_id,
        "hotel_name": i.hotel.display_name if i.hotel else None,
        "request_type": i.request_type,
        "issue_date": i.issue_date,
        "issued_by": i.issued_by,
        "approved_by": i.approved_by,
        "remarks": i.remarks,
        "items": [
            {
                "item_id": ln.item_id,
                "item_name": ln.item.name if ln.item else None,
                "quantity_issued": ln.quantity_issued,
                "unit": ln.unit,
                "stock_after_issue": ln.stock_after_issue,
            }
            for ln in i.lines
        ],
    }


def ledger_out(e: StockLedgerEntry) -> dict:
    return {
        "id": e.id,
        "item_id": e.item_id,
        "direction": e.direction,
        "quantity": e.quantity,
        "unit": e.unit,
        "entry_date": e.entry_date,
        "source_vendor": e.source_vendor,
        "destination_hotel_id": e.destination_hotel_id,
        "order_id": e.order_id,
        "issue_id": e.issue_id,
        "opening_balance": e.opening_balance,
        "closing_balance": e.closing_balance,
        "created_by": e.created_by,
    }


# ---------- CENTRAL STOCK ----------
@router.get("/stock")
def list_stock(db: Session = Depends(get_db), current: User = Depends(store_readers)):
    rows = (
        db.execute(
            select(CentralStoreStock)
            .join(Item, Item.id == CentralStoreStock.item_id)
            .order_by(Item.name)
        )
        .scalars()
        .all()
    )
    return [stock_out(s) for s in rows]


@router.get("/stock/low")
def list_low_stock(db: Session = Depends(get_db), current: User = Depends(store_readers)):
    rows = db.execute(select(CentralStoreStock)).scalars().all()
    return [stock_out(s) for s in rows if s.is_low_stock]


# ---------- ISSUES ----------
@router.post("/issue", status_code=201)
def issue_stock(payload: IssueCreate, db: Session = Depends(get_db), current: User = Depends(issuers)):
    issue = inventory.issue_stock(
        db,
        hotel_id=payload.hotel_id,
        lines=[inventory.IssueLineInput(item_id=ln.item_id, quantity=ln.quantity) for ln in payload.items],
        issued_by=current.id,
        request_type=IssueRequestType.manual,
        approved_by=payload.approved_by,
        remarks=payload.remarks,
        issue_date=payload.issue_date,
    )
    db.commit()
    db.refresh(issue)
    return issue_out(issue)


@router.get("/issue/logs")
def issue_logs(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(store_readers),
):
    stmt = select(StockIssue).order_by(StockIssue.issue_date.desc(), StockIssue.id.desc())
    if date_from is not None:
        stmt = stmt.where(StockIssue.issue_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(StockIssue.issue_date <= date_to)
    return [issue_out(i) for i in db.execute(stmt).scalars().all()]


@router.get("/issue/hotel/{hotel_id}")
def issue_logs_by_hotel(hotel_id: int, db: Session = Depends(get_db), current: User = Depends(store_readers)):
    rows = (
        db.execute(
            select(StockIssue)
            .where(StockIssue.hotel_id == hotel_id)
            .order_by(StockIssue.issue_date.desc(), StockIssue.id.desc())
        )
        .scalars()
        .all()
    )
    return [issue_out(i) for i in rows]


# ---------- LEDGER ----------
def _ledger(db: Session, direction: LedgerDirection, item_id: int | None) -> list[dict]:
    stmt = (
        select(StockLedgerEntry)
        .where(StockLedgerEntry.direction == direction)
        .order_by(StockLedgerEntry.id.desc())
    )
    if item_id is not None:
        stmt = stmt.where(StockLedgerEntry.item_id == item_id)
    return [ledger_out(e) for e in db.execute(stmt).scalars().all()]


@router.get("/inward")
def inward_logs(item_id: int | None = None, db: Session = Depends(get_db), current: User = Depends(store_readers)):
    return _ledger(db, LedgerDirection.inward, item_id)


@router.get("/outward")
def outward_logs(item_id: int | None = None, db: Session = Depends(get_db), current: User = Depends(store_readers)):
    return _ledger(db, LedgerDirection.outward, item_id)


# ---------- HOTEL BALANCE ----------
@router.get("/hotel-balance/{hotel_id}")
def hotel_balance(hotel_id: int, db: Session = Depends(get_db), current: User = Depends(balance_readers)):
    ensure_hotel_access(current, hotel_id)
    return {"hotel_id": hotel_id, "items": inventory.hotel_balances(db, hotel_id=hotel_id)}
