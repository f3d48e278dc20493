from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.db.models.models_v1 import (
    CentralStoreStock,
    ConsumptionEntry,
    ConsumptionLine,
    Hotel,
    Item,
    StockIssue,
    StockIssueLine,
    StockLedgerEntry,
    User,
)
from backend.app.db.models.core_types import IssueRequestType, LedgerDirection
from backend.services import units
from backend.services.errors import (
    ConflictError,
    DomainValidationError,
    InsufficientStockError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

ISSUE_NUMBER_ATTEMPTS = 3


@dataclass(frozen=True)
class IssueLineInput:
    item_id: int
    quantity: Decimal


def get_or_create_store_stock(db: Session, item_id: int) -> CentralStoreStock:
    """Central store row for an item, locked FOR UPDATE; created empty if missing."""
    stock = (
        db.execute(
            select(CentralStoreStock)
            .where(CentralStoreStock.item_id == item_id)
            .with_for_update()
        )
        .scalar_one_or_none()
    )
    if stock:
        return stock

    stock = CentralStoreStock(
        item_id=item_id,
        quantity_on_hand=Decimal("0"),
        previous_max_stock=Decimal("0"),
        reorder_level_percent=settings.reorder_level_percent,
        minimum_stock_level=Decimal("0"),
    )
    db.add(stock)
    db.flush()
    return stock


def to_item_unit(item: Item, quantity, unit: str | None) -> Decimal:
    """Express a quantity in the item's catalog unit."""
    if not unit:
        return Decimal(quantity)
    if not units.are_units_compatible(unit, item.unit):
        raise DomainValidationError(
            f"Unit '{unit}' is not compatible with unit '{item.unit}' of item {item.name}"
        )
    return units.convert(quantity, unit, item.unit)


def _require_item(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    return item


def post_inward(
    db: Session,
    *,
    item_id: int,
    quantity,
    unit: str,
    entry_date: date,
    source_vendor: str | None = None,
    order_id: int | None = None,
    created_by: int | None = None,
) -> StockLedgerEntry:
    """
    Receive stock into the central store.

        closing_balance = opening_balance + quantity
    """
    item = _require_item(db, item_id)
    qty = to_item_unit(item, quantity, unit)
    if qty <= 0:
        raise DomainValidationError("Inward quantity must be positive")

    stock = get_or_create_store_stock(db, item_id)
    opening = Decimal(stock.quantity_on_hand)
    closing = opening + qty

    stock.quantity_on_hand = closing
    if closing > Decimal(stock.previous_max_stock or 0):
        stock.previous_max_stock = closing

    entry = StockLedgerEntry(
        item_id=item_id,
        direction=LedgerDirection.inward,
        quantity=qty,
        unit=item.unit,
        entry_date=entry_date,
        source_vendor=source_vendor,
        order_id=order_id,
        opening_balance=opening,
        closing_balance=closing,
        created_by=created_by,
    )
    db.add(entry)
    logger.info("Inward item=%s qty=%s %s opening=%s closing=%s", item_id, qty, item.unit, opening, closing)
    return entry


def post_outward(
    db: Session,
    *,
    item_id: int,
    quantity,
    unit: str,
    entry_date: date,
    destination_hotel_id: int | None = None,
    issue_id: int | None = None,
    created_by: int | None = None,
) -> StockLedgerEntry:
    """
    Take stock out of the central store.

        closing_balance = opening_balance - quantity

    The central store never goes negative: InsufficientStockError instead.
    """
    item = _require_item(db, item_id)
    qty = to_item_unit(item, quantity, unit)
    if qty <= 0:
        raise DomainValidationError("Outward quantity must be positive")

    stock = get_or_create_store_stock(db, item_id)
    opening = Decimal(stock.quantity_on_hand)
    if opening < qty:
        raise InsufficientStockError(
            f"Insufficient stock for {item.name}. Available: {opening}, Requested: {qty}"
        )
    closing = opening - qty
    stock.quantity_on_hand = closing

    entry = StockLedgerEntry(
        item_id=item_id,
        direction=LedgerDirection.outward,
        quantity=qty,
        unit=item.unit,
        entry_date=entry_date,
        destination_hotel_id=destination_hotel_id,
        issue_id=issue_id,
        opening_balance=opening,
        closing_balance=closing,
        created_by=created_by,
    )
    db.add(entry)
    logger.info("Outward item=%s qty=%s %s opening=%s closing=%s", item_id, qty, item.unit, opening, closing)
    return entry


def _next_issue_number(db: Session, issue_date: date) -> str:
    """Next ISSUE-YYYYMMDD-NNNN for the day; the day's latest issue row is locked."""
    prefix = f"ISSUE-{issue_date:%Y%m%d}-"
    last = db.execute(
        select(StockIssue.issue_number)
        .where(StockIssue.issue_number.like(f"{prefix}%"))
        .order_by(StockIssue.issue_number.desc())
        .limit(1)
        .with_for_update()
    ).scalar_one_or_none()
    seq = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{seq:04d}"


def _insert_issue(db: Session, **fields) -> StockIssue:
    """
    Insert the issue header under a fresh number.

    Two issues created at once can still pick the same number; the loser's
    savepoint is rolled back and it takes the next one.
    """
    issue_date = fields["issue_date"]
    for attempt in range(1, ISSUE_NUMBER_ATTEMPTS + 1):
        issue = StockIssue(issue_number=_next_issue_number(db, issue_date), **fields)
        savepoint = db.begin_nested()
        try:
            db.add(issue)
            db.flush()
            savepoint.commit()
            return issue
        except IntegrityError:
            savepoint.rollback()
            logger.warning("Issue number %s already taken (attempt %d)", issue.issue_number, attempt)
    raise ConflictError("Could not allocate an issue number, please retry")


def _merge_lines(lines: Iterable[IssueLineInput]) -> dict[int, Decimal]:
    merged: dict[int, Decimal] = {}
    for ln in lines:
        qty = Decimal(ln.quantity)
        if qty <= 0:
            raise DomainValidationError(f"Quantity for item {ln.item_id} must be positive")
        merged[int(ln.item_id)] = merged.get(int(ln.item_id), Decimal("0")) + qty
    return merged


def issue_stock(
    db: Session,
    *,
    hotel_id: int,
    lines: Sequence[IssueLineInput],
    issued_by: int,
    request_type: IssueRequestType = IssueRequestType.manual,
    approved_by: int | None = None,
    remarks: str | None = None,
    issue_date: date | None = None,
    stock_request_id: int | None = None,
) -> StockIssue:
    """
    Issue stock from the central store to a hotel.

    Every line is checked against the locked store rows before anything is
    written, so a refused issue leaves stock untouched.
    """
    hotel = db.get(Hotel, hotel_id)
    if not hotel or not hotel.is_active:
        raise NotFoundError("Hotel not found")
    if not lines:
        raise DomainValidationError("At least one item is required")
    if approved_by is not None:
        approver = db.get(User, approved_by)
        if not approver or not approver.is_active:
            raise DomainValidationError(f"Invalid approved_by {approved_by}")

    merged = _merge_lines(lines)
    issue_date = issue_date or date.today()

    # ---------- CHECK ----------
    items: dict[int, Item] = {}
    for item_id, qty in merged.items():
        item = _require_item(db, item_id)
        stock = get_or_create_store_stock(db, item_id)
        if Decimal(stock.quantity_on_hand) < qty:
            raise InsufficientStockError(
                f"Insufficient stock for {item.name}. "
                f"Available: {Decimal(stock.quantity_on_hand)}, Requested: {qty}"
            )
        items[item_id] = item

    # ---------- WRITE ----------
    issue = _insert_issue(
        db,
        hotel_id=hotel_id,
        request_type=request_type,
        issue_date=issue_date,
        issued_by=issued_by,
        approved_by=approved_by,
        remarks=remarks,
        stock_request_id=stock_request_id,
    )

    for item_id, qty in merged.items():
        item = items[item_id]
        entry = post_outward(
            db,
            item_id=item_id,
            quantity=qty,
            unit=item.unit,
            entry_date=issue_date,
            destination_hotel_id=hotel_id,
            issue_id=issue.id,
            created_by=issued_by,
        )
        issue.lines.append(
            StockIssueLine(
                item_id=item_id,
                quantity_issued=qty,
                unit=item.unit,
                stock_after_issue=entry.closing_balance,
            )
        )

    db.flush()
    logger.info("Stock issue %s to hotel=%s lines=%d", issue.issue_number, hotel_id, len(merged))
    return issue


def hotel_item_balance(
    db: Session,
    *,
    hotel_id: int,
    item_id: int,
    as_of: date | None = None,
    exclude_consumption_id: int | None = None,
) -> Decimal:
    """
    Stock held by a hotel for one item:

        SUM(issued to the hotel) - SUM(consumed by the hotel)

    restricted to entries dated on or before ``as_of`` when given.
    """
    issued_stmt = (
        select(func.coalesce(func.sum(StockIssueLine.quantity_issued), 0))
        .join(StockIssue, StockIssue.id == StockIssueLine.issue_id)
        .where(StockIssue.hotel_id == hotel_id)
        .where(StockIssueLine.item_id == item_id)
    )
    consumed_stmt = (
        select(func.coalesce(func.sum(ConsumptionLine.quantity_consumed), 0))
        .join(ConsumptionEntry, ConsumptionEntry.id == ConsumptionLine.entry_id)
        .where(ConsumptionEntry.hotel_id == hotel_id)
        .where(ConsumptionLine.item_id == item_id)
    )
    if as_of is not None:
        issued_stmt = issued_stmt.where(StockIssue.issue_date <= as_of)
        consumed_stmt = consumed_stmt.where(ConsumptionEntry.entry_date <= as_of)
    if exclude_consumption_id is not None:
        consumed_stmt = consumed_stmt.where(ConsumptionEntry.id != exclude_consumption_id)

    issued = Decimal(db.execute(issued_stmt).scalar_one())
    consumed = Decimal(db.execute(consumed_stmt).scalar_one())
    return issued - consumed


def hotel_balances(db: Session, *, hotel_id: int) -> list[dict]:
    """Per-item issued, consumed and balance for one hotel."""
    issued_rows = db.execute(
        select(
            StockIssueLine.item_id,
            func.coalesce(func.sum(StockIssueLine.quantity_issued), 0).label("issued_qty"),
        )
        .join(StockIssue, StockIssue.id == StockIssueLine.issue_id)
        .where(StockIssue.hotel_id == hotel_id)
        .group_by(StockIssueLine.item_id)
    ).all()
    consumed_rows = db.execute(
        select(
            ConsumptionLine.item_id,
            func.coalesce(func.sum(ConsumptionLine.quantity_consumed), 0).label("consumed_qty"),
        )
        .join(ConsumptionEntry, ConsumptionEntry.id == ConsumptionLine.entry_id)
        .where(ConsumptionEntry.hotel_id == hotel_id)
        .group_by(ConsumptionLine.item_id)
    ).all()

    issued = {int(iid): Decimal(qty) for iid, qty in issued_rows}
    consumed = {int(iid): Decimal(qty) for iid, qty in consumed_rows}

    item_ids = sorted(set(issued) | set(consumed))
    names = {
        int(i.id): (i.name, i.unit)
        for i in db.execute(select(Item).where(Item.id.in_(item_ids))).scalars()
    } if item_ids else {}

    rows = []
    for iid in item_ids:
        name, unit = names.get(iid, ("Unknown Item", ""))
        rows.append(
            {
                "item_id": iid,
                "item_name": name,
                "unit": unit,
                "issued": issued.get(iid, Decimal("0")),
                "consumed": consumed.get(iid, Decimal("0")),
                "balance": issued.get(iid, Decimal("0")) - consumed.get(iid, Decimal("0")),
            }
        )
    return rows
