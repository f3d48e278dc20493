"""
Procurement order lifecycle.

    pending_md_approval --approve--> md_approved --upload bill--> pending_payment --pay--> paid
            |
            +--reject--> rejected (terminal)

Totals are always computed here, never trusted from the client:

    line gst_amount   = round(quantity * price_per_unit * gst% / 100, 2)
    order subtotal    = SUM(round(quantity * price_per_unit, 2))  over non-rejected lines
    order gst_total   = SUM(gst_amount)                           over non-rejected lines
    order final_amount = subtotal + gst_total

Stock only enters the central store when an order is paid
(see backend.services.inventory.post_inward).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.db.models.models_v1 import (
    Item,
    PaymentEntry,
    ProcurementOrder,
    ProcurementOrderLine,
    Vendor,
)
from backend.app.db.models.core_types import LineStatus, OrderStatus, PaymentMode
from backend.services import inventory, units
from backend.services.errors import (
    DomainValidationError,
    InvalidTransitionError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending_md_approval: frozenset({OrderStatus.md_approved, OrderStatus.rejected}),
    OrderStatus.md_approved: frozenset({OrderStatus.pending_payment}),
    OrderStatus.pending_payment: frozenset({OrderStatus.paid}),
    OrderStatus.rejected: frozenset(),
    OrderStatus.paid: frozenset(),
}


@dataclass(frozen=True)
class OrderLineInput:
    item_id: int
    quantity: Decimal
    unit: str
    price_per_unit: Decimal
    gst_percentage: Decimal | None = None


@dataclass(frozen=True)
class LineDecision:
    line_id: int
    approved: bool
    remarks: str | None = None


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_line_amounts(quantity, price_per_unit, gst_percentage) -> tuple[Decimal, Decimal, Decimal]:
    """Return (amount_before_gst, gst_amount, total_amount) for one line."""
    base = _money(Decimal(quantity) * Decimal(price_per_unit))
    gst_amount = _money(base * Decimal(gst_percentage) / 100)
    return base, gst_amount, base + gst_amount


def recompute_totals(order: ProcurementOrder) -> None:
    subtotal = Decimal("0.00")
    gst_total = Decimal("0.00")
    for ln in order.lines:
        if ln.status == LineStatus.rejected:
            continue
        base, gst_amount, total = compute_line_amounts(ln.quantity, ln.price_per_unit, ln.gst_percentage)
        ln.gst_amount = gst_amount
        ln.total_amount = total
        subtotal += base
        gst_total += gst_amount
    order.subtotal = subtotal
    order.gst_total = gst_total
    order.final_amount = subtotal + gst_total


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _transition(order: ProcurementOrder, target: OrderStatus) -> None:
    current = OrderStatus(order.status)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Order {order.id} cannot move from {current.value} to {target.value}"
        )
    logger.info("Order %s: %s -> %s", order.id, current.value, target.value)
    order.status = target


def get_order(db: Session, order_id: int, *, for_update: bool = False) -> ProcurementOrder:
    stmt = select(ProcurementOrder).where(ProcurementOrder.id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    order = db.execute(stmt).scalar_one_or_none()
    if not order:
        raise NotFoundError("Procurement order not found")
    return order


def list_orders(db: Session, *, status: OrderStatus | None = None) -> list[ProcurementOrder]:
    stmt = select(ProcurementOrder).order_by(ProcurementOrder.created_at.desc(), ProcurementOrder.id.desc())
    if status is not None:
        stmt = stmt.where(ProcurementOrder.status == status)
    return list(db.execute(stmt).scalars().all())


def create_order(
    db: Session,
    *,
    vendor_name: str,
    bill_number: str,
    bill_date: date,
    lines: Sequence[OrderLineInput],
    requested_by: int,
    vendor_id: int | None = None,
    remarks: str | None = None,
) -> ProcurementOrder:
    if not lines:
        raise DomainValidationError("At least one item is required")

    if vendor_id is not None:
        vendor = db.get(Vendor, vendor_id)
        if not vendor or not vendor.is_active:
            raise DomainValidationError(f"Invalid vendor_id {vendor_id}")
        vendor_name = vendor.name

    order = ProcurementOrder(
        vendor_name=vendor_name,
        vendor_id=vendor_id,
        bill_number=bill_number,
        bill_date=bill_date,
        status=OrderStatus.pending_md_approval,
        requested_by=requested_by,
        remarks=remarks,
    )

    for ln in lines:
        item = db.get(Item, ln.item_id)
        if not item or not item.is_active:
            raise DomainValidationError(f"Invalid item_id {ln.item_id}")
        if ln.unit and not units.are_units_compatible(ln.unit, item.unit):
            raise DomainValidationError(
                f"Unit '{ln.unit}' is not compatible with unit '{item.unit}' of item {item.name}"
            )
        if Decimal(ln.quantity) <= 0:
            raise DomainValidationError(f"Quantity for item {ln.item_id} must be positive")
        if Decimal(ln.price_per_unit) < 0:
            raise DomainValidationError(f"Price for item {ln.item_id} cannot be negative")

        gst = ln.gst_percentage
        if gst is None:
            gst = item.default_gst_percentage if item.default_gst_percentage is not None else settings.default_gst_percentage
        gst = Decimal(str(gst))
        if gst < 0 or gst > 100:
            raise DomainValidationError(f"GST percentage for item {ln.item_id} must be between 0 and 100")

        _, gst_amount, total = compute_line_amounts(ln.quantity, ln.price_per_unit, gst)
        order.lines.append(
            ProcurementOrderLine(
                item_id=ln.item_id,
                quantity=Decimal(ln.quantity),
                unit=ln.unit,
                price_per_unit=_money(ln.price_per_unit),
                gst_percentage=gst,
                gst_amount=gst_amount,
                total_amount=total,
                status=LineStatus.pending,
            )
        )

    recompute_totals(order)
    db.add(order)
    db.flush()
    logger.info(
        "Order %s created by user=%s vendor=%r final_amount=%s",
        order.id, requested_by, vendor_name, order.final_amount,
    )
    return order


def approve_order(
    db: Session,
    order_id: int,
    *,
    approved_by: int,
    remarks: str | None = None,
    decisions: Sequence[LineDecision] | Mapping[int, bool] | None = None,
) -> ProcurementOrder:
    """
    MD decision on a pending order.

    Without ``decisions`` every line is approved. With per-line decisions,
    rejected lines drop out of the totals; rejecting every line rejects the
    whole order.
    """
    order = get_order(db, order_id, for_update=True)
    if order.status != OrderStatus.pending_md_approval:
        raise InvalidTransitionError("Order is not pending MD approval")

    by_line: dict[int, LineDecision] = {}
    if isinstance(decisions, Mapping):
        by_line = {int(k): LineDecision(line_id=int(k), approved=bool(v)) for k, v in decisions.items()}
    elif decisions:
        by_line = {d.line_id: d for d in decisions}

    known = {ln.id for ln in order.lines}
    unknown = set(by_line) - known
    if unknown:
        raise DomainValidationError(f"Lines {sorted(unknown)} do not belong to order {order.id}")

    for ln in order.lines:
        decision = by_line.get(ln.id)
        if decision is None or decision.approved:
            ln.status = LineStatus.approved
        else:
            ln.status = LineStatus.rejected
        if decision is not None and decision.remarks:
            ln.remarks = decision.remarks

    order.remarks = remarks or order.remarks
    now = datetime.utcnow()

    if all(ln.status == LineStatus.rejected for ln in order.lines):
        _transition(order, OrderStatus.rejected)
        order.rejected_by = approved_by
        order.rejected_at = now
    else:
        _transition(order, OrderStatus.md_approved)
        order.approved_by = approved_by
        order.approved_at = now

    recompute_totals(order)
    db.flush()
    return order


def reject_order(
    db: Session,
    order_id: int,
    *,
    rejected_by: int,
    remarks: str | None = None,
) -> ProcurementOrder:
    order = get_order(db, order_id, for_update=True)
    if order.status != OrderStatus.pending_md_approval:
        raise InvalidTransitionError("Order is not pending MD approval")

    _transition(order, OrderStatus.rejected)
    for ln in order.lines:
        ln.status = LineStatus.rejected
    order.rejected_by = rejected_by
    order.rejected_at = datetime.utcnow()
    order.remarks = remarks or order.remarks
    db.flush()
    return order


def upload_bill(
    db: Session,
    order_id: int,
    *,
    bill_reference: str,
    bill_number: str | None = None,
    bill_date: date | None = None,
) -> ProcurementOrder:
    order = get_order(db, order_id, for_update=True)
    if order.status != OrderStatus.md_approved:
        raise InvalidTransitionError("Bill can only be uploaded for an MD approved order")

    _transition(order, OrderStatus.pending_payment)
    order.bill_reference = bill_reference
    if bill_number:
        order.bill_number = bill_number
    if bill_date:
        order.bill_date = bill_date
    order.bill_uploaded_at = datetime.utcnow()
    db.flush()
    return order


def mark_paid(
    db: Session,
    order_id: int,
    *,
    paid_by: int,
    payment_mode: PaymentMode,
    payment_date: date | None = None,
    remarks: str | None = None,
) -> ProcurementOrder:
    """
    Settle an order awaiting payment.

    Records a payment for the final amount and receives every approved line
    into the central store. The order row is locked, so two concurrent
    payments cannot both pass the status check.
    """
    order = get_order(db, order_id, for_update=True)
    if order.status != OrderStatus.pending_payment:
        raise InvalidTransitionError("Order is not pending payment")

    _transition(order, OrderStatus.paid)
    payment_date = payment_date or date.today()
    order.paid_by = paid_by
    order.paid_at = datetime.utcnow()
    order.payment_mode = payment_mode
    order.remarks = remarks or order.remarks

    db.add(
        PaymentEntry(
            order_id=order.id,
            vendor_name=order.vendor_name,
            amount_paid=order.final_amount,
            payment_mode=payment_mode,
            payment_date=payment_date,
            paid_by=paid_by,
            remarks=remarks,
        )
    )

    for ln in order.lines:
        if ln.status != LineStatus.approved:
            continue
        inventory.post_inward(
            db,
            item_id=ln.item_id,
            quantity=ln.quantity,
            unit=ln.unit,
            entry_date=payment_date,
            source_vendor=order.vendor_name,
            order_id=order.id,
            created_by=paid_by,
        )
        item = db.get(Item, ln.item_id)
        if item is not None:
            item.last_procured_price = ln.price_per_unit

    db.flush()
    return order
