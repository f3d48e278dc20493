from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import User
from backend.app.db.models.core_types import Role
from backend.services import payments

router = APIRouter(prefix="/payments")

readers = require_roles(Role.accounts, Role.md, Role.superadmin)


@router.get("")
def list_payments(vendor_name: str | None = None, db: Session = Depends(get_db), current: User = Depends(readers)):
    return [
        {
            "id": p.id,
            "order_id": p.order_id,
            "vendor_name": p.vendor_name,
            "amount_paid": p.amount_paid,
            "payment_mode": p.payment_mode,
            "payment_date": p.payment_date,
            "paid_by": p.paid_by,
            "remarks": p.remarks,
        }
        for p in payments.list_payments(db, vendor_name=vendor_name)
    ]


@router.get("/pending")
def pending(db: Session = Depends(get_db), current: User = Depends(readers)):
    return payments.pending_payments(db)


@router.get("/summary")
def summary(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(readers),
):
    return payments.payment_summary(db, date_from=date_from, date_to=date_to)


@router.get("/vendor/{vendor_name}")
def vendor_ledger(vendor_name: str, db: Session = Depends(get_db), current: User = Depends(readers)):
    return payments.vendor_ledger(db, vendor_name)
