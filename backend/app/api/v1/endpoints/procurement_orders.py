from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import ProcurementOrder, User
from backend.app.db.models.core_types import OrderStatus, PaymentMode, Role
from backend.services import procurement

router = APIRouter(prefix="/procurement-orders")

order_creators = require_roles(Role.procurement_officer, Role.superadmin)
order_readers = require_roles(Role.procurement_officer, Role.md, Role.accounts, Role.superadmin)
approvers = require_roles(Role.md, Role.superadmin)
bill_uploaders = require_roles(Role.procurement_officer, Role.accounts, Role.superadmin)
payers = require_roles(Role.accounts, Role.superadmin)


class OrderLineCreate(BaseModel):
    item_id: int
    quantity: Decimal = Field(gt=0)
    unit: str = Field(min_length=1, max_length=32)
    price_per_unit: Decimal = Field(ge=0)
    gst_percentage: Decimal | None = Field(default=None, ge=0, le=100)


class OrderCreate(BaseModel):
    vendor_name: str = Field(min_length=1, max_length=255)
    vendor_id: int | None = None
    bill_number: str = Field(min_length=1, max_length=64)
    bill_date: date
    remarks: str | None = None
    items: list[OrderLineCreate] = Field(min_length=1)


class LineDecisionIn(BaseModel):
    line_id: int
    approved: bool
    remarks: str | None = Field(default=None, max_length=255)


class ApproveRequest(BaseModel):
    remarks: str | None = None
    lines: list[LineDecisionIn] | None = None


class RejectRequest(BaseModel):
    remarks: str = Field(min_length=1)


class BillUpload(BaseModel):
    bill_reference: str = Field(min_length=1, max_length=512)
    bill_number: str | None = Field(default=None, min_length=1, max_length=64)
    bill_date: date | None = None


class PayRequest(BaseModel):
    payment_mode: PaymentMode
    payment_date: date | None = None
    remarks: str | None = None


def order_out(o: ProcurementOrder, *, with_lines: bool = True) -> dict:
    out = {
        "id": o.id,
        "vendor_name": o.vendor_name,
        "vendor_id": o.vendor_id,
        "bill_number": o.bill_number,
        "bill_date": o.bill_date,
        "bill_reference": o.bill_reference,
        "status": o.status,
        "subtotal": o.subtotal,
        "gst_total": o.gst_total,
        "final_amount": o.final_amount,
        "remarks": o.remarks,
        "requested_by": o.requested_by,
        "approved_by": o.approved_by,
        "approved_at": o.approved_at,
        "rejected_by": o.rejected_by,
        "rejected_at": o.rejected_at,
        "bill_uploaded_at": o.bill_uploaded_at,
        "paid_by": o.paid_by,
        "paid_at": o.paid_at,
        "payment_mode": o.payment_mode,
        "created_at": o.created_at,
    }
    if with_lines:
        out["items"] = [
            {
                "id": ln.id,
                "item_id": ln.item_id,
                "item_name": ln.item.name if ln.item else None,
                "quantity": ln.quantity,
                "unit": ln.unit,
                "price_per_unit": ln.price_per_unit,
                "gst_percentage": ln.gst_percentage,
                "gst_amount": ln.gst_amount,
                "total_amount": ln.total_amount,
                "status": ln.status,
                "remarks": ln.remarks,
            }
            for ln in o.lines
        ]
    return out


@router.get("")
def list_orders(
    status: OrderStatus | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(order_readers),
):
    return [order_out(o, with_lines=False) for o in procurement.list_orders(db, status=status)]


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db), current: User = Depends(order_readers)):
    return order_out(procurement.get_order(db, order_id))


@router.post("", status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db), current: User = Depends(order_creators)):
    order = procurement.create_order(
        db,
        vendor_name=payload.vendor_name,
        vendor_id=payload.vendor_id,
        bill_number=payload.bill_number,
        bill_date=payload.bill_date,
        remarks=payload.remarks,
        requested_by=current.id,
        lines=[
            procurement.OrderLineInput(
                item_id=ln.item_id,
                quantity=ln.quantity,
                unit=ln.unit.strip().lower(),
                price_per_unit=ln.price_per_unit,
                gst_percentage=ln.gst_percentage,
            )
            for ln in payload.items
        ],
    )
    db.commit()
    db.refresh(order)
    return order_out(order)


@router.patch("/{order_id}/approve")
def approve_order(
    order_id: int,
    payload: ApproveRequest | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(approvers),
):
    payload = payload or ApproveRequest()
    decisions = None
    if payload.lines:
        decisions = [
            procurement.LineDecision(line_id=d.line_id, approved=d.approved, remarks=d.remarks)
            for d in payload.lines
        ]
    order = procurement.approve_order(
        db,
        order_id,
        approved_by=current.id,
        remarks=payload.remarks,
        decisions=decisions,
    )
    db.commit()
    db.refresh(order)
    return order_out(order)


@router.patch("/{order_id}/reject")
def reject_order(
    order_id: int,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    current: User = Depends(approvers),
):
    order = procurement.reject_order(db, order_id, rejected_by=current.id, remarks=payload.remarks)
    db.commit()
    db.refresh(order)
    return order_out(order)


@router.patch("/{order_id}/bill")
def upload_bill(
    order_id: int,
    payload: BillUpload,
    db: Session = Depends(get_db),
    current: User = Depends(bill_uploaders),
):
    order = procurement.upload_bill(
        db,
        order_id,
        bill_reference=payload.bill_reference,
        bill_number=payload.bill_number,
        bill_date=payload.bill_date,
    )
    db.commit()
    db.refresh(order)
    return order_out(order)


@router.patch("/{order_id}/pay")
def mark_paid(
    order_id: int,
    payload: PayRequest,
    db: Session = Depends(get_db),
    current: User = Depends(payers),
):
    order = procurement.mark_paid(
        db,
        order_id,
        paid_by=current.id,
        payment_mode=payload.payment_mode,
        payment_date=payload.payment_date,
        remarks=payload.remarks,
    )
    db.commit()
    db.refresh(order)
    return order_out(order)
