from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from backend.app.db.models.models_v1 import ExpectedConsumption, Recipe, RecipeIngredient
from backend.services import consumption, inventory
from backend.services.errors import DomainValidationError


def _issue(db_session, hotel, item, qty, user, on):
    inventory.issue_stock(
        db_session,
        hotel_id=hotel.id,
        issued_by=user.id,
        issue_date=on,
        lines=[inventory.IssueLineInput(item_id=item.id, quantity=Decimal(str(qty)))],
    )
    db_session.commit()


def test_consumption_opening_and_closing(db_session, hotel, rice, store_manager, hotel_manager, receive):
    """
    GIVEN
    - 10 kg rice issued to the hotel on day 1
    - 3 kg consumed on day 2
    WHEN
    - 2000 g consumed on day 3
    THEN
    - opening = 7 kg, closing = 5 kg, stored in kg
    """
    # ---------- ARRANGE ----------
    receive(rice, 50)
    _issue(db_session, hotel, rice, 10, store_manager, date(2026, 4, 1))
    consumption.record_consumption(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 4, 2),
        reported_by=hotel_manager.id,
        lines=[consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("3"))],
    )
    db_session.commit()

    # ---------- ACT ----------
    entry, over = consumption.record_consumption(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 4, 3),
        reported_by=hotel_manager.id,
        lines=[consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("2000"), unit="g")],
    )
    db_session.commit()

    # ---------- ASSERT ----------
    line = entry.lines[0]
    assert over is False
    assert line.unit == "kg"
    assert line.quantity_consumed == Decimal("2")
    assert line.opening_balance == Decimal("7")
    assert line.closing_balance == line.opening_balance - line.quantity_consumed == Decimal("5")


def test_issues_after_the_date_are_not_in_opening(db_session, hotel, rice, store_manager, hotel_manager, receive):
    receive(rice, 50)
    _issue(db_session, hotel, rice, 4, store_manager, date(2026, 4, 1))
    _issue(db_session, hotel, rice, 6, store_manager, date(2026, 4, 10))

    entry, _ = consumption.record_consumption(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 4, 5),
        reported_by=hotel_manager.id,
        lines=[consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("1"))],
    )
    assert entry.lines[0].opening_balance == Decimal("4")


def test_over_consumption_is_recorded_and_flagged(db_session, hotel, rice, store_manager, hotel_manager, receive):
    receive(rice, 5)
    _issue(db_session, hotel, rice, 2, store_manager, date(2026, 4, 1))

    entry, over = consumption.record_consumption(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 4, 2),
        reported_by=hotel_manager.id,
        lines=[consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("3"))],
    )
    db_session.commit()

    assert over is True
    assert entry.id is not None
    assert entry.lines[0].closing_balance == Decimal("-1")


def test_consumption_rejects_duplicate_items(db_session, hotel, rice, hotel_manager):
    with pytest.raises(DomainValidationError):
        consumption.record_consumption(
            db_session,
            hotel_id=hotel.id,
            entry_date=date(2026, 4, 2),
            reported_by=hotel_manager.id,
            lines=[
                consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("1")),
                consumption.ConsumptionLineInput(item_id=rice.id, quantity=Decimal("1")),
            ],
        )


def test_sales_compute_amounts_and_expected_consumption(db_session, hotel, rice, oil, md, hotel_manager):
    """
    GIVEN
    - Fried Rice needs 200 g rice and 0.02 l oil
    WHEN
    - 10 plates are sold, then 5 more the same day
    THEN
    - total amount = quantity * price per entry
    - expected consumption accumulates in base units: 3000 g rice, 300 ml oil
    """
    # ---------- ARRANGE ----------
    recipe = Recipe(dish_name="Fried Rice", created_by=md.id)
    recipe.ingredients = [
        RecipeIngredient(item_id=rice.id, quantity_required=Decimal("200"), unit="g"),
        RecipeIngredient(item_id=oil.id, quantity_required=Decimal("0.02"), unit="l"),
    ]
    db_session.add(recipe)
    db_session.commit()

    # ---------- ACT ----------
    entry = consumption.record_sales(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 4, 2),
        reported_by=hotel_manager.id,
        lines=[
            consumption.SaleLineInput(dish_name="Fried Rice", quantity_sold=Decimal("10"), price_per_unit=Decimal("150")),
            consumption.SaleLineInput(dish_name="Masala Tea", quantity_sold=Decimal("4"), price_per_unit=Decimal("20")),
        ],
    )
    db_session.commit()
    consumption.record_sales(
        db_session,
        hotel_id=hotel.id,
        entry_date=date(2026, 4, 2),
        reported_by=hotel_manager.id,
        lines=[consumption.SaleLineInput(dish_name="Fried Rice", quantity_sold=Decimal("5"), price_per_unit=Decimal("150"))],
    )
    db_session.commit()

    # ---------- ASSERT ----------
    assert entry.total_sales_amount == Decimal("1580.00")
    rows = {
        r.item_id: r
        for r in db_session.execute(select(ExpectedConsumption).where(ExpectedConsumption.hotel_id == hotel.id)).scalars()
    }
    assert rows[rice.id].expected_quantity == Decimal("3000")
    assert rows[rice.id].base_unit == "g"
    assert rows[oil.id].expected_quantity == Decimal("300")
    assert rows[oil.id].base_unit == "ml"


# ---------- API ----------
def test_api_hotel_manager_only_for_own_hotel(client, auth, hotel, other_hotel, rice, hotel_manager):
    r = client.post(
        "/v1/consumption",
        json={"hotel_id": other_hotel.id, "entry_date": "2026-04-02", "items": [{"item_id": rice.id, "quantity": "1"}]},
        headers=auth(hotel_manager),
    )
    assert r.status_code == 403

    r = client.post(
        "/v1/sales",
        json={"hotel_id": other_hotel.id, "entry_date": "2026-04-02", "sales": [{"dish_name": "Tea", "quantity_sold": "1"}]},
        headers=auth(hotel_manager),
    )
    assert r.status_code == 403


def test_api_record_consumption(client, auth, hotel, rice, hotel_manager):
    r = client.post(
        "/v1/consumption",
        json={"hotel_id": hotel.id, "entry_date": "2026-04-02", "items": [{"item_id": rice.id, "quantity": "1"}]},
        headers=auth(hotel_manager),
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["over_consumption"] is True
    assert float(body["consumption"]["items"][0]["closing_balance"]) == -1.0

    r = client.get("/v1/consumption", headers=auth(hotel_manager))
    assert r.status_code == 200
    assert len(r.json()) == 1
