from datetime import date
from decimal import Decimal

import pytest

from backend.app.db.models.models_v1 import ExpectedConsumption
from backend.services import consumption, inventory, payments, procurement, reporting
from backend.app.db.models.core_types import PaymentMode
from backend.services.errors import DomainValidationError


@pytest.fixture
def activity(db_session, hotel, other_hotel, rice, oil, store_manager, hotel_manager, receive):
    """
    hotel:        rice issued 10 kg, consumed 6 kg   oil issued 2 l, consumed 2 l
    other_hotel:  rice issued 4 kg,  consumed 4 kg
    """
    receive(rice, 100)
    receive(oil, 20)

    def issue(h, item, qty, on):
        inventory.issue_stock(
            db_session,
            hotel_id=h.id,
            issued_by=store_manager.id,
            issue_date=on,
            lines=[inventory.IssueLineInput(item_id=item.id, quantity=Decimal(qty))],
        )

    def consume(h, item, qty, on):
        consumption.record_consumption(
            db_session,
            hotel_id=h.id,
            entry_date=on,
            reported_by=hotel_manager.id,
            lines=[consumption.ConsumptionLineInput(item_id=item.id, quantity=Decimal(qty))],
        )

    issue(hotel, rice, "10", date(2026, 5, 1))
    issue(hotel, oil, "2", date(2026, 5, 1))
    issue(other_hotel, rice, "4", date(2026, 5, 2))
    consume(hotel, rice, "6", date(2026, 5, 3))
    consume(hotel, oil, "2", date(2026, 5, 3))
    consume(other_hotel, rice, "4", date(2026, 5, 3))
    db_session.commit()


def test_percent_helper():
    assert reporting.percent(Decimal("1"), Decimal("3")) == 33.33
    assert reporting.percent(Decimal("5"), Decimal("0")) == 0.0


def test_issued_vs_consumed_in_base_units(db_session, activity, hotel, rice):
    report = reporting.issued_vs_consumed(db_session, hotel_id=hotel.id, item_id=rice.id)

    assert report["issued"] == Decimal("10000")
    assert report["consumed"] == Decimal("6000")
    assert report["leakage"] == Decimal("4000")
    assert report["hotel_name"] == "Grand Palace"


def test_leakage_by_item(db_session, activity, rice, oil):
    report = reporting.leakage_report(db_session, group_by="item")
    rows = report["data"]

    assert [r["item_id"] for r in rows] == [rice.id, oil.id]
    rice_row = rows[0]
    assert rice_row["item_name"] == "Rice"
    assert rice_row["issued"] == Decimal("14000")
    assert rice_row["consumed"] == Decimal("10000")
    assert rice_row["percent_difference"] == 28.57
    for r in rows:
        assert r["leakage"] == r["issued"] - r["consumed"]


def test_leakage_by_hotel_sorted_descending(db_session, activity, hotel, other_hotel):
    rows = reporting.leakage_report(db_session, group_by="hotel")["data"]

    assert [r["hotel_id"] for r in rows] == [hotel.id, other_hotel.id]
    assert rows[0]["hotel_name"] == "Grand Palace - Downtown"
    assert rows[1]["leakage"] == Decimal("0")
    assert rows[1]["percent_difference"] == 0.0


def test_leakage_groups_by_hotel_by_default(db_session, activity, hotel, other_hotel):
    report = reporting.leakage_report(db_session)

    assert report["group_by"] == "hotel"
    assert [r["hotel_id"] for r in report["data"]] == [hotel.id, other_hotel.id]


def test_leakage_date_filter_is_inclusive(db_session, activity, other_hotel):
    rows = reporting.leakage_report(
        db_session, group_by="hotel", date_from=date(2026, 5, 2), date_to=date(2026, 5, 2)
    )["data"]

    assert len(rows) == 1
    assert rows[0]["hotel_id"] == other_hotel.id
    assert rows[0]["issued"] == Decimal("4000")
    assert rows[0]["consumed"] == Decimal("0")
    assert rows[0]["percent_difference"] == 100.0


def test_leakage_invalid_group_by(db_session):
    with pytest.raises(DomainValidationError):
        reporting.leakage_report(db_session, group_by="vendor")


def test_leakage_with_nothing_issued(db_session, hotel, rice, hotel_manager):
    consumption.record_consumption(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 5, 3),
        reported_by=hotel_manager.id,
        lines=[consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("1"))],
    )
    db_session.commit()

    row = reporting.leakage_report(db_session, group_by="item")["data"][0]
    assert row["issued"] == Decimal("0")
    assert row["percent_difference"] == 0.0


def test_expected_vs_actual_and_wastage(db_session, activity, hotel, rice, oil):
    db_session.add(
        ExpectedConsumption(
            hotel_id=hotel.id, entry_date=date(2026, 5, 3), item_id=rice.id,
            expected_quantity=Decimal("5000"), base_unit="g",
        )
    )
    db_session.add(
        ExpectedConsumption(
            hotel_id=hotel.id, entry_date=date(2026, 5, 3), item_id=oil.id,
            expected_quantity=Decimal("2500"), base_unit="ml",
        )
    )
    db_session.commit()

    rows = {r["item_id"]: r for r in reporting.expected_vs_actual(db_session, hotel_id=hotel.id)["data"]}
    assert rows[rice.id]["actual_consumed"] == Decimal("6000")
    assert rows[rice.id]["leakage"] == Decimal("1000")
    assert rows[oil.id]["leakage"] == Decimal("-500")

    waste = reporting.wastage(db_session, hotel_id=hotel.id)["data"]
    assert [w["item_id"] for w in waste] == [rice.id]
    assert waste[0]["wastage"] == Decimal("1000")
    assert waste[0]["wastage_percentage"] == 20.0


def test_consumed_vs_sales(db_session, activity, hotel, hotel_manager):
    consumption.record_sales(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 5, 3),
        reported_by=hotel_manager.id,
        lines=[consumption.SaleLineInput(dish_name="Tea", quantity_sold=Decimal("12"))],
    )
    db_session.commit()

    report = reporting.consumed_vs_sales(db_session, hotel_id=hotel.id)
    assert report["sales"] == Decimal("12")
    assert report["difference"] == report["consumed"] - report["sales"]


def test_payment_summary(db_session, officer, md, accounts, rice):
    order = procurement.create_order(
        db_session,
        vendor_name="Fresh Farms",
        bill_number="B-9",
        bill_date=date(2026, 5, 1),
        requested_by=officer.id,
        lines=[procurement.OrderLineInput(item_id=rice.id, quantity=Decimal("10"), unit="kg", price_per_unit=Decimal("10"), gst_percentage=Decimal("0"))],
    )
    procurement.approve_order(db_session, order.id, approved_by=md.id)
    db_session.commit()

    assert payments.payment_summary(db_session)["total_pending"] == Decimal("100")
    assert payments.pending_payments(db_session)[0]["pending"] == Decimal("100")

    procurement.upload_bill(db_session, order.id, bill_reference="b")
    procurement.mark_paid(db_session, order.id, paid_by=accounts.id, payment_mode=PaymentMode.cash)
    db_session.commit()

    summary = payments.payment_summary(db_session)
    assert summary["total_paid"] == Decimal("100")
    assert summary["total_pending"] == Decimal("0")
    assert payments.pending_payments(db_session) == []
    ledger = payments.vendor_ledger(db_session, "Fresh Farms")
    assert ledger[0]["total_paid"] == Decimal("100")


# ---------- API ----------
def test_api_leakage_report(client, auth, activity, md, hotel_manager):
    r = client.get("/v1/reports/leakage", params={"group_by": "hotel"}, headers=auth(md))
    assert r.status_code == 200
    assert len(r.json()["data"]) == 2

    r = client.get("/v1/reports/leakage", params={"group_by": "vendor"}, headers=auth(md))
    assert r.status_code == 400
    assert "groupBy" in r.json()["message"]

    r = client.get("/v1/reports/leakage", headers=auth(md))
    assert r.json()["group_by"] == "hotel"
    assert "hotel_id" in r.json()["data"][0]

    r = client.get("/v1/reports/leakage", headers=auth(hotel_manager))
    assert r.status_code == 403
