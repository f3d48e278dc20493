from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import ensure_hotel_access, get_db, require_roles
from backend.app.api.v1.endpoints.store import issue_out
from backend.app.db.models.models_v1 import StockRequest, User
from backend.app.db.models.core_types import Role, StockRequestStatus
from backend.services import inventory, stock_requests

router = APIRouter(prefix="/stock-requests")

requesters = require_roles(Role.hotel_manager)
fulfillers = require_roles(Role.store_manager, Role.superadmin)
viewers = require_roles(Role.hotel_manager, Role.store_manager, Role.superadmin)
listers = require_roles(Role.store_manager, Role.superadmin, Role.md)


class RequestLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(gt=0)
    unit: str | None = Field(default=None, max_length=32)


class StockRequestCreate(BaseModel):
    items: list[RequestLineIn] = Field(min_length=1)
    remarks: str | None = None


class FulfillLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(gt=0)


class FulfillRequest(BaseModel):
    items: list[FulfillLineIn] = Field(min_length=1)
    issue_date: date | None = None


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


def request_out(r: StockRequest) -> dict:
    return {
        "id": r.id,
        "hotel_id": r.hotel_id,
        "hotel_name": r.hotel.display_name if r.hotel else None,
        "requested_by": r.requested_by,
        "request_date": r.request_date,
        "status": r.status,
        "remarks": r.remarks,
        "fulfilled_by": r.fulfilled_by,
        "fulfilled_at": r.fulfilled_at,
        "created_at": r.created_at,
        "items": [
            {
                "item_id": ln.item_id,
                "item_name": ln.item.name if ln.item else None,
                "requested_quantity": ln.requested_quantity,
                "issued_quantity": ln.issued_quantity,
                "unit": ln.unit,
                "status": ln.status,
            }
            for ln in r.lines
        ],
    }


@router.post("", status_code=201)
def create_request(payload: StockRequestCreate, db: Session = Depends(get_db), current: User = Depends(requesters)):
    if current.hotel_id is None:
        raise HTTPException(status_code=400, detail="No hotel is assigned to this user")
    request = stock_requests.create_request(
        db,
        hotel_id=current.hotel_id,
        requested_by=current.id,
        lines=[
            stock_requests.RequestLineInput(item_id=ln.item_id, quantity=ln.quantity, unit=ln.unit)
            for ln in payload.items
        ],
        remarks=payload.remarks,
    )
    db.commit()
    db.refresh(request)
    return request_out(request)


@router.get("")
def list_requests(
    hotel_id: int | None = None,
    status: StockRequestStatus | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(listers),
):
    return [request_out(r) for r in stock_requests.list_requests(db, hotel_id=hotel_id, status=status)]


@router.get("/mine")
def my_requests(db: Session = Depends(get_db), current: User = Depends(requesters)):
    if current.hotel_id is None:
        return []
    return [request_out(r) for r in stock_requests.list_requests(db, hotel_id=current.hotel_id)]


@router.get("/pending")
def pending_requests(db: Session = Depends(get_db), current: User = Depends(fulfillers)):
    return [request_out(r) for r in stock_requests.pending_requests(db)]


@router.get("/{request_id}")
def get_request(request_id: int, db: Session = Depends(get_db), current: User = Depends(viewers)):
    request = stock_requests.get_request(db, request_id)
    ensure_hotel_access(current, request.hotel_id)
    return request_out(request)


@router.patch("/{request_id}/fulfill")
def fulfill_request(
    request_id: int,
    payload: FulfillRequest,
    db: Session = Depends(get_db),
    current: User = Depends(fulfillers),
):
    request, issue = stock_requests.fulfill_request(
        db,
        request_id,
        lines=[inventory.IssueLineInput(item_id=ln.item_id, quantity=ln.quantity) for ln in payload.items],
        fulfilled_by=current.id,
        issue_date=payload.issue_date,
    )
    db.commit()
    db.refresh(request)
    db.refresh(issue)
    return {"request": request_out(request), "issue": issue_out(issue)}


@router.patch("/{request_id}/reject")
def reject_request(
    request_id: int,
    payload: RejectRequest | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(fulfillers),
):
    request = stock_requests.reject_request(
        db,
        request_id,
        rejected_by=current.id,
        reason=payload.reason if payload else None,
    )
    db.commit()
    db.refresh(request)
    return request_out(request)
