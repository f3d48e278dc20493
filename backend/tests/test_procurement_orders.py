from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from backend.app.db.models.models_v1 import (
    CentralStoreStock,
    PaymentEntry,
    StockLedgerEntry,
)
from backend.app.db.models.core_types import (
    LedgerDirection,
    LineStatus,
    OrderStatus,
    PaymentMode,
)
from backend.services import procurement
from backend.services.errors import DomainValidationError, InvalidTransitionError


def _order(db_session, officer, rice, oil):
    order = procurement.create_order(
        db_session,
        vendor_name="Fresh Farms",
        bill_number="B-001",
        bill_date=date(2026, 3, 1),
        requested_by=officer.id,
        lines=[
            procurement.OrderLineInput(item_id=rice.id, quantity=Decimal("10"), unit="kg", price_per_unit=Decimal("50"), gst_percentage=Decimal("5")),
            procurement.OrderLineInput(item_id=oil.id, quantity=Decimal("4"), unit="l", price_per_unit=Decimal("120.50"), gst_percentage=Decimal("12")),
        ],
    )
    db_session.commit()
    return order


def test_compute_line_amounts_rounds_half_up():
    base, gst, total = procurement.compute_line_amounts(Decimal("3"), Decimal("3.335"), Decimal("5"))
    assert base == Decimal("10.01")
    assert gst == Decimal("0.50")
    assert total == Decimal("10.51")


def test_create_order_computes_totals(db_session, officer, rice, oil):
    order = _order(db_session, officer, rice, oil)

    assert order.status == OrderStatus.pending_md_approval
    assert order.subtotal == Decimal("982.00")
    assert order.gst_total == Decimal("82.84")
    assert order.final_amount == order.subtotal + order.gst_total
    assert all(ln.status == LineStatus.pending for ln in order.lines)


def test_create_order_defaults_gst_from_item(db_session, officer, oil):
    order = procurement.create_order(
        db_session,
        vendor_name="Fresh Farms",
        bill_number="B-002",
        bill_date=date(2026, 3, 1),
        requested_by=officer.id,
        lines=[procurement.OrderLineInput(item_id=oil.id, quantity=Decimal("1"), unit="l", price_per_unit=Decimal("100"))],
    )
    assert order.lines[0].gst_percentage == Decimal("12")
    assert order.gst_total == Decimal("12.00")


def test_create_order_requires_lines(db_session, officer):
    with pytest.raises(DomainValidationError):
        procurement.create_order(
            db_session,
            vendor_name="Fresh Farms",
            bill_number="B-003",
            bill_date=date(2026, 3, 1),
            requested_by=officer.id,
            lines=[],
        )


def test_create_order_rejects_incompatible_unit(db_session, officer, rice):
    """
    GIVEN
    - rice is stocked in kg
    WHEN
    - an order line asks for rice in litres
    THEN
    - the order is refused up front, nothing is stored
    """
    # ---------- ACT / ASSERT ----------
    with pytest.raises(DomainValidationError, match="not compatible"):
        procurement.create_order(
            db_session,
            vendor_name="Fresh Farms",
            bill_number="B-004",
            bill_date=date(2026, 3, 1),
            requested_by=officer.id,
            lines=[
                procurement.OrderLineInput(item_id=rice.id, quantity=Decimal("5"), unit="l", price_per_unit=Decimal("50")),
            ],
        )
    assert procurement.list_orders(db_session) == []


def test_create_order_accepts_convertible_unit(db_session, officer, rice):
    # ---------- ACT ----------
    order = procurement.create_order(
        db_session,
        vendor_name="Fresh Farms",
        bill_number="B-005",
        bill_date=date(2026, 3, 1),
        requested_by=officer.id,
        lines=[
            procurement.OrderLineInput(item_id=rice.id, quantity=Decimal("500"), unit="g", price_per_unit=Decimal("1")),
        ],
    )

    # ---------- ASSERT ----------
    assert order.lines[0].unit == "g"
    assert order.final_amount == Decimal("525.00")


def test_full_lifecycle_posts_inward_stock(db_session, officer, md, accounts, rice, oil):
    """
    GIVEN
    - an order for 10 kg rice and 4 l oil
    WHEN
    - MD approves, the bill is uploaded, accounts pays
    THEN
    - one payment for the final amount
    - one inward ledger entry per line, central stock increased
    - item last procured price updated
    """
    # ---------- ARRANGE ----------
    order = _order(db_session, officer, rice, oil)

    # ---------- ACT ----------
    procurement.approve_order(db_session, order.id, approved_by=md.id, remarks="ok")
    procurement.upload_bill(db_session, order.id, bill_reference="bills/B-001.pdf")
    procurement.mark_paid(
        db_session,
        order.id,
        paid_by=accounts.id,
        payment_mode=PaymentMode.bank_transfer,
        payment_date=date(2026, 3, 5),
    )
    db_session.commit()

    # ---------- ASSERT ----------
    assert order.status == OrderStatus.paid
    assert order.approved_by == md.id
    assert order.bill_reference == "bills/B-001.pdf"

    payments = db_session.execute(select(PaymentEntry)).scalars().all()
    assert len(payments) == 1
    assert payments[0].amount_paid == order.final_amount

    entries = db_session.execute(
        select(StockLedgerEntry).where(StockLedgerEntry.direction == LedgerDirection.inward)
    ).scalars().all()
    assert len(entries) == 2
    for e in entries:
        assert e.order_id == order.id
        assert e.closing_balance == e.opening_balance + e.quantity

    rice_stock = db_session.get(CentralStoreStock, rice.id)
    assert rice_stock.quantity_on_hand == Decimal("10")
    assert rice_stock.previous_max_stock == Decimal("10")
    db_session.refresh(rice)
    assert rice.last_procured_price == Decimal("50.00")


def test_per_line_rejection_recomputes_totals(db_session, officer, md, rice, oil):
    order = _order(db_session, officer, rice, oil)
    oil_line = next(ln for ln in order.lines if ln.item_id == oil.id)

    procurement.approve_order(
        db_session,
        order.id,
        approved_by=md.id,
        decisions=[procurement.LineDecision(line_id=oil_line.id, approved=False, remarks="too pricey")],
    )
    db_session.commit()

    assert order.status == OrderStatus.md_approved
    assert oil_line.status == LineStatus.rejected
    assert oil_line.remarks == "too pricey"
    assert order.subtotal == Decimal("500.00")
    assert order.gst_total == Decimal("25.00")
    assert order.final_amount == Decimal("525.00")


def test_rejecting_every_line_rejects_order(db_session, officer, md, rice, oil):
    order = _order(db_session, officer, rice, oil)
    decisions = {ln.id: False for ln in order.lines}

    procurement.approve_order(db_session, order.id, approved_by=md.id, decisions=decisions)

    assert order.status == OrderStatus.rejected
    assert order.rejected_by == md.id


def test_unknown_line_decision_is_refused(db_session, officer, md, rice, oil):
    order = _order(db_session, officer, rice, oil)
    with pytest.raises(DomainValidationError):
        procurement.approve_order(db_session, order.id, approved_by=md.id, decisions={999_999: False})


def test_rejected_order_can_never_be_paid(db_session, officer, md, accounts, rice, oil):
    order = _order(db_session, officer, rice, oil)
    procurement.reject_order(db_session, order.id, rejected_by=md.id, remarks="duplicate bill")
    db_session.commit()

    with pytest.raises(InvalidTransitionError):
        procurement.upload_bill(db_session, order.id, bill_reference="x")
    with pytest.raises(InvalidTransitionError):
        procurement.mark_paid(db_session, order.id, paid_by=accounts.id, payment_mode=PaymentMode.cash)
    with pytest.raises(InvalidTransitionError):
        procurement.approve_order(db_session, order.id, approved_by=md.id)


def test_paid_order_cannot_be_approved_or_paid_again(db_session, officer, md, accounts, rice, oil):
    order = _order(db_session, officer, rice, oil)
    procurement.approve_order(db_session, order.id, approved_by=md.id)
    procurement.upload_bill(db_session, order.id, bill_reference="x")
    procurement.mark_paid(db_session, order.id, paid_by=accounts.id, payment_mode=PaymentMode.upi)
    db_session.commit()

    with pytest.raises(InvalidTransitionError):
        procurement.approve_order(db_session, order.id, approved_by=md.id)
    with pytest.raises(InvalidTransitionError):
        procurement.mark_paid(db_session, order.id, paid_by=accounts.id, payment_mode=PaymentMode.upi)

    assert len(db_session.execute(select(PaymentEntry)).scalars().all()) == 1


def test_cannot_pay_before_bill_upload(db_session, officer, md, accounts, rice, oil):
    order = _order(db_session, officer, rice, oil)
    procurement.approve_order(db_session, order.id, approved_by=md.id)

    with pytest.raises(InvalidTransitionError):
        procurement.mark_paid(db_session, order.id, paid_by=accounts.id, payment_mode=PaymentMode.cash)


def test_transition_table_is_one_directional():
    assert procurement.can_transition(OrderStatus.pending_md_approval, OrderStatus.md_approved)
    assert procurement.can_transition(OrderStatus.pending_payment, OrderStatus.paid)
    assert not procurement.can_transition(OrderStatus.paid, OrderStatus.md_approved)
    assert not procurement.can_transition(OrderStatus.rejected, OrderStatus.paid)
    assert not procurement.can_transition(OrderStatus.md_approved, OrderStatus.paid)


# ---------- API ----------
def test_api_order_flow_and_conflict(client, auth, officer, md, accounts, rice):
    r = client.post(
        "/v1/procurement-orders",
        json={
            "vendor_name": "Fresh Farms",
            "bill_number": "B-100",
            "bill_date": "2026-03-01",
            "items": [{"item_id": rice.id, "quantity": "2", "unit": "kg", "price_per_unit": "40"}],
        },
        headers=auth(officer),
    )
    assert r.status_code == 201, r.text
    order_id = r.json()["id"]
    assert float(r.json()["final_amount"]) == 84.0

    # accounts cannot approve
    r = client.patch(f"/v1/procurement-orders/{order_id}/approve", json={}, headers=auth(accounts))
    assert r.status_code == 403

    r = client.patch(f"/v1/procurement-orders/{order_id}/reject", json={"remarks": "no"}, headers=auth(md))
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"

    r = client.patch(
        f"/v1/procurement-orders/{order_id}/pay",
        json={"payment_mode": "cash"},
        headers=auth(accounts),
    )
    assert r.status_code == 409
    assert "message" in r.json()


def test_api_create_order_validation(client, auth, officer):
    r = client.post(
        "/v1/procurement-orders",
        json={"vendor_name": "Fresh Farms", "bill_number": "B-1", "bill_date": "2026-03-01", "items": []},
        headers=auth(officer),
    )
    assert r.status_code == 422
    assert r.json()["message"] == "Validation error"
