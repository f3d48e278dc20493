from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import PaymentEntry, ProcurementOrder
from backend.app.db.models.core_types import OrderStatus

# Orders the business owes money on once the MD has signed off.
PAYABLE_STATUSES = (OrderStatus.md_approved, OrderStatus.pending_payment, OrderStatus.paid)


def _paid_by_order(db: Session, order_ids) -> dict[int, Decimal]:
    order_ids = list(order_ids)
    if not order_ids:
        return {}
    rows = db.execute(
        select(PaymentEntry.order_id, func.sum(PaymentEntry.amount_paid))
        .where(PaymentEntry.order_id.in_(order_ids))
        .group_by(PaymentEntry.order_id)
    ).all()
    return {int(oid): Decimal(total or 0) for oid, total in rows}


def list_payments(db: Session, *, vendor_name: str | None = None) -> list[PaymentEntry]:
    stmt = select(PaymentEntry).order_by(PaymentEntry.payment_date.desc(), PaymentEntry.id.desc())
    if vendor_name:
        stmt = stmt.where(PaymentEntry.vendor_name == vendor_name)
    return list(db.execute(stmt).scalars().all())


def pending_payments(db: Session) -> list[dict]:
    """Approved orders not yet settled, oldest bill first."""
    orders = db.execute(
        select(ProcurementOrder)
        .where(ProcurementOrder.status.in_((OrderStatus.md_approved, OrderStatus.pending_payment)))
        .order_by(ProcurementOrder.bill_date, ProcurementOrder.id)
    ).scalars().all()
    paid = _paid_by_order(db, (o.id for o in orders))

    out = []
    for o in orders:
        total_paid = paid.get(o.id, Decimal("0"))
        out.append(
            {
                "order_id": o.id,
                "vendor_name": o.vendor_name,
                "bill_number": o.bill_number,
                "bill_date": o.bill_date,
                "status": o.status,
                "final_amount": o.final_amount,
                "total_paid": total_paid,
                "pending": Decimal(o.final_amount) - total_paid,
            }
        )
    return out


def vendor_ledger(db: Session, vendor_name: str) -> list[dict]:
    orders = db.execute(
        select(ProcurementOrder)
        .where(ProcurementOrder.vendor_name == vendor_name)
        .where(ProcurementOrder.status.in_(PAYABLE_STATUSES))
        .order_by(ProcurementOrder.bill_date, ProcurementOrder.id)
    ).scalars().all()
    payments = list_payments(db, vendor_name=vendor_name)

    ledger = []
    for o in orders:
        order_payments = [p for p in payments if p.order_id == o.id]
        total_paid = sum((Decimal(p.amount_paid) for p in order_payments), Decimal("0"))
        ledger.append(
            {
                "order_id": o.id,
                "bill_number": o.bill_number,
                "bill_date": o.bill_date,
                "final_amount": o.final_amount,
                "payments": [
                    {
                        "id": p.id,
                        "amount_paid": p.amount_paid,
                        "payment_mode": p.payment_mode,
                        "payment_date": p.payment_date,
                    }
                    for p in order_payments
                ],
                "total_paid": total_paid,
                "pending": Decimal(o.final_amount) - total_paid,
            }
        )
    return ledger


def payment_summary(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    procured_stmt = (
        select(func.coalesce(func.sum(ProcurementOrder.final_amount), 0))
        .where(ProcurementOrder.status.in_(PAYABLE_STATUSES))
    )
    paid_stmt = select(func.coalesce(func.sum(PaymentEntry.amount_paid), 0))
    if date_from is not None:
        procured_stmt = procured_stmt.where(ProcurementOrder.bill_date >= date_from)
        paid_stmt = paid_stmt.where(PaymentEntry.payment_date >= date_from)
    if date_to is not None:
        procured_stmt = procured_stmt.where(ProcurementOrder.bill_date <= date_to)
        paid_stmt = paid_stmt.where(PaymentEntry.payment_date <= date_to)

    total_procured = Decimal(db.execute(procured_stmt).scalar_one())
    total_paid = Decimal(db.execute(paid_stmt).scalar_one())
    return {
        "total_procured": total_procured,
        "total_paid": total_paid,
        "total_pending": total_procured - total_paid,
    }
