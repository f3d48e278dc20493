from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import (
    ConsumptionEntry,
    ConsumptionLine,
    ExpectedConsumption,
    Hotel,
    Item,
    Recipe,
    SalesEntry,
    SalesLine,
)
from backend.services import inventory, units
from backend.services.errors import DomainValidationError, NotFoundError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ConsumptionLineInput:
    item_id: int
    quantity: Decimal
    unit: str | None = None


@dataclass(frozen=True)
class SaleLineInput:
    dish_name: str
    quantity_sold: Decimal
    price_per_unit: Decimal = Decimal("0")


def _require_hotel(db: Session, hotel_id: int) -> Hotel:
    hotel = db.get(Hotel, hotel_id)
    if not hotel or not hotel.is_active:
        raise NotFoundError("Hotel not found")
    return hotel


# ---------- CONSUMPTION ----------
def record_consumption(
    db: Session,
    *,
    hotel_id: int,
    entry_date: date,
    lines: Sequence[ConsumptionLineInput],
    reported_by: int,
    remarks: str | None = None,
) -> tuple[ConsumptionEntry, bool]:
    """
    Record what a hotel consumed on a date.

    Per line, in the item's unit:
        opening = issued up to the date - consumed up to the date (other entries)
        closing = opening - consumed

    A negative closing balance is kept and reported as over-consumption.
    Returns (entry, over_consumption).
    """
    _require_hotel(db, hotel_id)
    if not lines:
        raise DomainValidationError("At least one item is required")

    entry = ConsumptionEntry(
        hotel_id=hotel_id,
        entry_date=entry_date,
        reported_by=reported_by,
        remarks=remarks,
    )
    db.add(entry)
    db.flush()

    seen: set[int] = set()
    over_consumption = False
    for ln in lines:
        if ln.item_id in seen:
            raise DomainValidationError(f"Item {ln.item_id} appears more than once")
        seen.add(ln.item_id)

        item = db.get(Item, ln.item_id)
        if not item:
            raise DomainValidationError(f"Invalid item_id {ln.item_id}")
        if Decimal(ln.quantity) < 0:
            raise DomainValidationError(f"Quantity for item {ln.item_id} cannot be negative")

        qty = inventory.to_item_unit(item, ln.quantity, ln.unit)
        opening = inventory.hotel_item_balance(
            db,
            hotel_id=hotel_id,
            item_id=item.id,
            as_of=entry_date,
            exclude_consumption_id=entry.id,
        )
        closing = opening - qty
        if closing < 0:
            over_consumption = True
            logger.warning(
                "Over-consumption hotel=%s item=%s opening=%s consumed=%s",
                hotel_id, item.id, opening, qty,
            )

        entry.lines.append(
            ConsumptionLine(
                item_id=item.id,
                quantity_consumed=qty,
                unit=item.unit,
                opening_balance=opening,
                closing_balance=closing,
            )
        )

    db.flush()
    logger.info("Consumption entry %s hotel=%s date=%s lines=%d", entry.id, hotel_id, entry_date, len(lines))
    return entry, over_consumption


def list_consumption(
    db: Session,
    *,
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[ConsumptionEntry]:
    stmt = select(ConsumptionEntry).order_by(ConsumptionEntry.entry_date.desc(), ConsumptionEntry.id.desc())
    if hotel_id is not None:
        stmt = stmt.where(ConsumptionEntry.hotel_id == hotel_id)
    if date_from is not None:
        stmt = stmt.where(ConsumptionEntry.entry_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(ConsumptionEntry.entry_date <= date_to)
    return list(db.execute(stmt).scalars().all())


# ---------- SALES ----------
def _accumulate_expected(
    db: Session,
    *,
    hotel_id: int,
    entry_date: date,
    sales: Sequence[SalesLine],
) -> int:
    """Add recipe-derived ingredient usage (base units) to the day's expected consumption."""
    totals: dict[int, tuple[Decimal, str]] = {}
    for sale in sales:
        recipe = db.execute(
            select(Recipe).where(Recipe.dish_name == sale.dish_name)
        ).scalar_one_or_none()
        if recipe is None:
            logger.debug("No recipe for dish %r, skipping", sale.dish_name)
            continue
        for ing in recipe.ingredients:
            per_dish = units.to_base_unit(ing.quantity_required, ing.unit)
            qty, base = totals.get(ing.item_id, (Decimal("0"), units.get_base_unit(ing.unit)))
            totals[ing.item_id] = (qty + Decimal(sale.quantity_sold) * per_dish, base)

    for item_id, (qty, base) in totals.items():
        row = db.execute(
            select(ExpectedConsumption)
            .where(ExpectedConsumption.hotel_id == hotel_id)
            .where(ExpectedConsumption.entry_date == entry_date)
            .where(ExpectedConsumption.item_id == item_id)
            .with_for_update()
        ).scalar_one_or_none()
        if row is None:
            db.add(
                ExpectedConsumption(
                    hotel_id=hotel_id,
                    entry_date=entry_date,
                    item_id=item_id,
                    expected_quantity=qty,
                    base_unit=base,
                )
            )
        else:
            row.expected_quantity = Decimal(row.expected_quantity) + qty
    return len(totals)


def record_sales(
    db: Session,
    *,
    hotel_id: int,
    entry_date: date,
    lines: Sequence[SaleLineInput],
    reported_by: int,
    remarks: str | None = None,
) -> SalesEntry:
    _require_hotel(db, hotel_id)
    if not lines:
        raise DomainValidationError("At least one dish is required")

    entry = SalesEntry(
        hotel_id=hotel_id,
        entry_date=entry_date,
        reported_by=reported_by,
        remarks=remarks,
    )
    total = Decimal("0.00")
    for ln in lines:
        qty = Decimal(ln.quantity_sold)
        price = Decimal(ln.price_per_unit)
        if qty < 0 or price < 0:
            raise DomainValidationError(f"Quantity and price for {ln.dish_name!r} cannot be negative")
        amount = (qty * price).quantize(CENT, rounding=ROUND_HALF_UP)
        total += amount
        entry.lines.append(
            SalesLine(
                dish_name=ln.dish_name.strip(),
                quantity_sold=qty,
                price_per_unit=price,
                amount=amount,
            )
        )
    entry.total_sales_amount = total
    db.add(entry)
    db.flush()

    touched = _accumulate_expected(db, hotel_id=hotel_id, entry_date=entry_date, sales=entry.lines)
    db.flush()
    logger.info(
        "Sales entry %s hotel=%s date=%s total=%s expected_items=%d",
        entry.id, hotel_id, entry_date, total, touched,
    )
    return entry


def list_sales(
    db: Session,
    *,
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[SalesEntry]:
    stmt = select(SalesEntry).order_by(SalesEntry.entry_date.desc(), SalesEntry.id.desc())
    if hotel_id is not None:
        stmt = stmt.where(SalesEntry.hotel_id == hotel_id)
    if date_from is not None:
        stmt = stmt.where(SalesEntry.entry_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(SalesEntry.entry_date <= date_to)
    return list(db.execute(stmt).scalars().all())
