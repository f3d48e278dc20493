from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from backend.app.db.models.models_v1 import CentralStoreStock, Item, StockIssue
from backend.app.db.models.core_types import IssueRequestType, StockRequestStatus
from backend.services import inventory, stock_requests
from backend.services.errors import (
    DomainValidationError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
)


@pytest.fixture
def open_request(db_session, hotel, rice, oil, hotel_manager):
    """hotel asks for 10 kg rice and 2 l oil."""
    request = stock_requests.create_request(
        db_session,
        hotel_id=hotel.id,
        requested_by=hotel_manager.id,
        lines=[
            stock_requests.RequestLineInput(item_id=rice.id, quantity=Decimal("10")),
            stock_requests.RequestLineInput(item_id=oil.id, quantity=Decimal("2000"), unit="ml"),
        ],
        remarks="Weekend rush",
    )
    db_session.commit()
    return request


def _fulfil(db_session, request, store_manager, *lines):
    result = stock_requests.fulfill_request(
        db_session,
        request.id,
        lines=[inventory.IssueLineInput(item_id=item.id, quantity=Decimal(qty)) for item, qty in lines],
        fulfilled_by=store_manager.id,
        issue_date=date(2026, 4, 1),
    )
    db_session.commit()
    return result


def test_create_request_stores_item_units(db_session, open_request, oil):
    assert open_request.status == StockRequestStatus.pending
    oil_line = next(ln for ln in open_request.lines if ln.item_id == oil.id)
    assert oil_line.unit == "l"
    assert oil_line.requested_quantity == Decimal("2")
    assert oil_line.issued_quantity == Decimal("0")
    assert oil_line.status == StockRequestStatus.pending


def test_create_request_refuses_duplicate_items(db_session, hotel, rice, hotel_manager):
    with pytest.raises(DomainValidationError):
        stock_requests.create_request(
            db_session,
            hotel_id=hotel.id,
            requested_by=hotel_manager.id,
            lines=[
                stock_requests.RequestLineInput(item_id=rice.id, quantity=Decimal("1")),
                stock_requests.RequestLineInput(item_id=rice.id, quantity=Decimal("2")),
            ],
        )


def test_partial_then_full_fulfilment(db_session, open_request, hotel, rice, oil, store_manager, receive):
    """
    GIVEN
    - an open request for 10 kg rice and 2 l oil, stock in the central store
    WHEN
    - the store issues 4 kg rice, then the remaining 6 kg rice and 2 l oil
    THEN
    - the first issue leaves the request partially issued
    - the second fulfils it and records who fulfilled it
    - both issues are system-request issues linked to the request
    """
    # ---------- ARRANGE ----------
    receive(rice, 50)
    receive(oil, 10)

    # ---------- ACT ----------
    request, first = _fulfil(db_session, open_request, store_manager, (rice, "4"))

    # ---------- ASSERT ----------
    assert request.status == StockRequestStatus.partially_issued
    rice_line = next(ln for ln in request.lines if ln.item_id == rice.id)
    oil_line = next(ln for ln in request.lines if ln.item_id == oil.id)
    assert rice_line.issued_quantity == Decimal("4")
    assert rice_line.status == StockRequestStatus.partially_issued
    assert oil_line.status == StockRequestStatus.pending
    assert first.request_type == IssueRequestType.system_request
    assert first.stock_request_id == request.id
    assert first.remarks == f"Fulfilled stock request #{request.id}"

    # ---------- ACT ----------
    request, second = _fulfil(db_session, request, store_manager, (rice, "6"), (oil, "2"))

    # ---------- ASSERT ----------
    assert request.status == StockRequestStatus.fulfilled
    assert request.fulfilled_by == store_manager.id
    assert request.fulfilled_at is not None
    assert all(ln.status == StockRequestStatus.fulfilled for ln in request.lines)
    assert db_session.get(CentralStoreStock, rice.id).quantity_on_hand == Decimal("40")
    assert inventory.hotel_item_balance(db_session, hotel_id=hotel.id, item_id=rice.id) == Decimal("10")
    assert second.issue_number == "ISSUE-20260401-0002"


def test_fulfilled_lines_are_skipped(db_session, open_request, rice, oil, store_manager, receive):
    receive(rice, 50)
    receive(oil, 10)
    request, _ = _fulfil(db_session, open_request, store_manager, (rice, "10"))

    request, issue = _fulfil(db_session, request, store_manager, (rice, "3"), (oil, "1"))

    assert [ln.item_id for ln in issue.lines] == [oil.id]
    assert next(ln for ln in request.lines if ln.item_id == rice.id).issued_quantity == Decimal("10")


def test_fulfil_refuses_item_not_in_request(db_session, open_request, store_manager, receive):
    salt = Item(name="Salt", category="Spices", unit="kg")
    db_session.add(salt)
    db_session.commit()
    receive(salt, 5)

    with pytest.raises(DomainValidationError, match="not part of"):
        _fulfil(db_session, open_request, store_manager, (salt, "1"))


def test_fulfil_refuses_more_than_outstanding(db_session, open_request, rice, store_manager, receive):
    receive(rice, 50)
    with pytest.raises(DomainValidationError, match="outstanding"):
        _fulfil(db_session, open_request, store_manager, (rice, "11"))


def test_fulfil_with_insufficient_stock_changes_nothing(db_session, open_request, rice, store_manager, receive):
    """
    GIVEN
    - only 3 kg rice in the central store
    WHEN
    - the store tries to issue 5 kg against the request
    THEN
    - InsufficientStockError, the request and the store are untouched
    """
    # ---------- ARRANGE ----------
    receive(rice, 3)

    # ---------- ACT ----------
    with pytest.raises(InsufficientStockError):
        _fulfil(db_session, open_request, store_manager, (rice, "5"))
    db_session.rollback()

    # ---------- ASSERT ----------
    request = stock_requests.get_request(db_session, open_request.id)
    assert request.status == StockRequestStatus.pending
    assert all(ln.issued_quantity == Decimal("0") for ln in request.lines)
    assert db_session.get(CentralStoreStock, rice.id).quantity_on_hand == Decimal("3")
    assert db_session.execute(select(StockIssue)).scalars().all() == []


def test_reject_only_while_pending(db_session, open_request, rice, store_manager, receive):
    receive(rice, 50)
    _fulfil(db_session, open_request, store_manager, (rice, "1"))

    with pytest.raises(InvalidTransitionError):
        stock_requests.reject_request(db_session, open_request.id, rejected_by=store_manager.id)


def test_rejected_request_cannot_be_fulfilled(db_session, open_request, rice, store_manager, receive):
    receive(rice, 50)
    request = stock_requests.reject_request(
        db_session, open_request.id, rejected_by=store_manager.id, reason="Over budget"
    )
    db_session.commit()

    assert request.status == StockRequestStatus.rejected
    assert all(ln.status == StockRequestStatus.rejected for ln in request.lines)
    assert request.remarks == "Weekend rush\nRejected: Over budget"
    with pytest.raises(InvalidTransitionError):
        _fulfil(db_session, request, store_manager, (rice, "1"))


def test_pending_requests_oldest_first(db_session, open_request, hotel, rice, hotel_manager, store_manager):
    newer = stock_requests.create_request(
        db_session,
        hotel_id=hotel.id,
        requested_by=hotel_manager.id,
        lines=[stock_requests.RequestLineInput(item_id=rice.id, quantity=Decimal("1"))],
    )
    db_session.commit()
    stock_requests.reject_request(db_session, newer.id, rejected_by=store_manager.id)
    third = stock_requests.create_request(
        db_session,
        hotel_id=hotel.id,
        requested_by=hotel_manager.id,
        lines=[stock_requests.RequestLineInput(item_id=rice.id, quantity=Decimal("1"))],
    )
    db_session.commit()

    assert [r.id for r in stock_requests.pending_requests(db_session)] == [open_request.id, third.id]


def test_unknown_request(db_session):
    with pytest.raises(NotFoundError):
        stock_requests.get_request(db_session, 999_999)


# ---------- API ----------
def test_api_request_fulfil_flow(client, auth, hotel, rice, hotel_manager, store_manager, receive):
    receive(rice, 20)

    r = client.post(
        "/v1/stock-requests",
        json={"items": [{"item_id": rice.id, "quantity": "5"}], "remarks": "Dinner service"},
        headers=auth(hotel_manager),
    )
    assert r.status_code == 201, r.text
    request_id = r.json()["id"]
    assert r.json()["hotel_id"] == hotel.id
    assert r.json()["status"] == "pending"

    r = client.get("/v1/stock-requests/pending", headers=auth(store_manager))
    assert [x["id"] for x in r.json()] == [request_id]

    r = client.patch(
        f"/v1/stock-requests/{request_id}/fulfill",
        json={"items": [{"item_id": rice.id, "quantity": "5"}]},
        headers=auth(store_manager),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["request"]["status"] == "fulfilled"
    assert body["issue"]["request_type"] == "system-request"

    r = client.get("/v1/stock-requests/mine", headers=auth(hotel_manager))
    assert r.json()[0]["items"][0]["status"] == "fulfilled"

    r = client.patch(
        f"/v1/stock-requests/{request_id}/fulfill",
        json={"items": [{"item_id": rice.id, "quantity": "1"}]},
        headers=auth(store_manager),
    )
    assert r.status_code == 409


def test_api_request_permissions(client, auth, other_hotel, rice, hotel_manager, store_manager, make_user):
    r = client.post(
        "/v1/stock-requests",
        json={"items": [{"item_id": rice.id, "quantity": "1"}]},
        headers=auth(store_manager),
    )
    assert r.status_code == 403

    r = client.post(
        "/v1/stock-requests",
        json={"items": [{"item_id": rice.id, "quantity": "1"}]},
        headers=auth(hotel_manager),
    )
    request_id = r.json()["id"]

    stranger = make_user(hotel_manager.role, other_hotel)
    r = client.get(f"/v1/stock-requests/{request_id}", headers=auth(stranger))
    assert r.status_code == 403

    r = client.patch(f"/v1/stock-requests/{request_id}/reject", json={}, headers=auth(hotel_manager))
    assert r.status_code == 403

    r = client.patch(f"/v1/stock-requests/{request_id}/reject", json={"reason": "No budget"}, headers=auth(store_manager))
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"
