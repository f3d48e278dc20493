"""
Issued / consumed / sold aggregations.

All quantities are summed in SQL per (key, unit) and converted to base units
(g, ml, piece) in Python before being combined. Date bounds are inclusive and
apply independently.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import (
    ConsumptionEntry,
    ConsumptionLine,
    ExpectedConsumption,
    Hotel,
    Item,
    LeakageAlert,
    PaymentEntry,
    ProcurementOrder,
    SalesEntry,
    SalesLine,
    StockIssue,
    StockIssueLine,
)
from backend.app.db.models.core_types import AlertStatus, OrderStatus
from backend.services import units
from backend.services.errors import DomainValidationError, NotFoundError

logger = logging.getLogger(__name__)

GROUP_BY_CHOICES = ("hotel", "item")
TREND_RANGES = ("daily", "monthly")
ZERO = Decimal("0")

# Insight thresholds.
HIGH_LEAKAGE_PERCENT = 10.0
HIGH_PENDING_AMOUNT = Decimal("10000")
OVER_CONSUMPTION_FACTOR = Decimal("1.5")


def percent(part, whole) -> float:
    """round(part / whole * 100, 2), 0 when whole is zero."""
    whole = Decimal(whole)
    if whole == 0:
        return 0.0
    return float((Decimal(part) / whole * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _date_range(date_from: date | None, date_to: date | None) -> dict:
    return {
        "from": date_from.isoformat() if date_from else None,
        "to": date_to.isoformat() if date_to else None,
    }


def _sum_by(rows) -> dict:
    out: dict = {}
    for key, unit, qty in rows:
        out[key] = out.get(key, ZERO) + units.to_base_unit(qty or 0, unit)
    return out


# ---------- RAW AGGREGATES ----------
def issued_totals(
    db: Session,
    *,
    key: str = "item",
    hotel_id: int | None = None,
    item_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict[int, Decimal]:
    key_col = StockIssue.hotel_id if key == "hotel" else StockIssueLine.item_id
    stmt = (
        select(key_col, StockIssueLine.unit, func.sum(StockIssueLine.quantity_issued))
        .join(StockIssue, StockIssue.id == StockIssueLine.issue_id)
        .group_by(key_col, StockIssueLine.unit)
    )
    if hotel_id is not None:
        stmt = stmt.where(StockIssue.hotel_id == hotel_id)
    if item_id is not None:
        stmt = stmt.where(StockIssueLine.item_id == item_id)
    if date_from is not None:
        stmt = stmt.where(StockIssue.issue_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(StockIssue.issue_date <= date_to)
    return _sum_by(db.execute(stmt).all())


def consumed_totals(
    db: Session,
    *,
    key: str = "item",
    hotel_id: int | None = None,
    item_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict[int, Decimal]:
    key_col = ConsumptionEntry.hotel_id if key == "hotel" else ConsumptionLine.item_id
    stmt = (
        select(key_col, ConsumptionLine.unit, func.sum(ConsumptionLine.quantity_consumed))
        .join(ConsumptionEntry, ConsumptionEntry.id == ConsumptionLine.entry_id)
        .group_by(key_col, ConsumptionLine.unit)
    )
    if hotel_id is not None:
        stmt = stmt.where(ConsumptionEntry.hotel_id == hotel_id)
    if item_id is not None:
        stmt = stmt.where(ConsumptionLine.item_id == item_id)
    if date_from is not None:
        stmt = stmt.where(ConsumptionEntry.entry_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(ConsumptionEntry.entry_date <= date_to)
    return _sum_by(db.execute(stmt).all())


def expected_totals(
    db: Session,
    *,
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict[int, Decimal]:
    # already stored in base units
    stmt = (
        select(ExpectedConsumption.item_id, func.sum(ExpectedConsumption.expected_quantity))
        .group_by(ExpectedConsumption.item_id)
    )
    if hotel_id is not None:
        stmt = stmt.where(ExpectedConsumption.hotel_id == hotel_id)
    if date_from is not None:
        stmt = stmt.where(ExpectedConsumption.entry_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(ExpectedConsumption.entry_date <= date_to)
    return {int(iid): Decimal(qty or 0) for iid, qty in db.execute(stmt).all()}


def _item_names(db: Session, ids) -> dict[int, str]:
    ids = list(ids)
    if not ids:
        return {}
    return {int(i.id): i.name for i in db.execute(select(Item).where(Item.id.in_(ids))).scalars()}


def _hotel_names(db: Session, ids) -> dict[int, str]:
    ids = list(ids)
    if not ids:
        return {}
    return {int(h.id): h.display_name for h in db.execute(select(Hotel).where(Hotel.id.in_(ids))).scalars()}


# ---------- REPORTS ----------
def issued_vs_consumed(
    db: Session,
    *,
    hotel_id: int | None = None,
    item_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    filters = dict(hotel_id=hotel_id, item_id=item_id, date_from=date_from, date_to=date_to)
    issued = sum(issued_totals(db, **filters).values(), ZERO)
    consumed = sum(consumed_totals(db, **filters).values(), ZERO)

    hotel_name = None
    if hotel_id is not None:
        hotel = db.get(Hotel, hotel_id)
        hotel_name = hotel.name if hotel else "Unknown Hotel"

    return {
        "issued": issued,
        "consumed": consumed,
        "leakage": issued - consumed,
        "hotel_id": hotel_id,
        "hotel_name": hotel_name,
        "item_id": item_id,
        "date_range": _date_range(date_from, date_to),
    }


def consumed_vs_sales(
    db: Session,
    *,
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    consumed = sum(
        consumed_totals(db, hotel_id=hotel_id, date_from=date_from, date_to=date_to).values(),
        ZERO,
    )

    stmt = (
        select(func.coalesce(func.sum(SalesLine.quantity_sold), 0))
        .join(SalesEntry, SalesEntry.id == SalesLine.entry_id)
    )
    if hotel_id is not None:
        stmt = stmt.where(SalesEntry.hotel_id == hotel_id)
    if date_from is not None:
        stmt = stmt.where(SalesEntry.entry_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(SalesEntry.entry_date <= date_to)
    sales = Decimal(db.execute(stmt).scalar_one())

    hotel_name = None
    if hotel_id is not None:
        hotel = db.get(Hotel, hotel_id)
        hotel_name = hotel.name if hotel else "Unknown Hotel"

    return {
        "consumed": consumed,
        "sales": sales,
        "difference": consumed - sales,
        "hotel_id": hotel_id,
        "hotel_name": hotel_name,
        "date_range": _date_range(date_from, date_to),
    }


def leakage_report(
    db: Session,
    *,
    group_by: str = "hotel",
    hotel_id: int | None = None,
    item_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    """
    Leakage per hotel or per item:

        leakage            = issued - consumed
        percent_difference = round(leakage / issued * 100, 2)   (0 if nothing issued)

    Rows are sorted by leakage, largest first.
    """
    if group_by not in GROUP_BY_CHOICES:
        raise DomainValidationError("Invalid groupBy parameter. Use 'hotel' or 'item'")

    filters = dict(key=group_by, hotel_id=hotel_id, item_id=item_id, date_from=date_from, date_to=date_to)
    issued = issued_totals(db, **filters)
    consumed = consumed_totals(db, **filters)

    keys = set(issued) | set(consumed)
    names = _hotel_names(db, keys) if group_by == "hotel" else _item_names(db, keys)
    fallback = "Unknown Hotel" if group_by == "hotel" else "Unknown Item"

    rows = []
    for key in keys:
        i = issued.get(key, ZERO)
        c = consumed.get(key, ZERO)
        leakage = i - c
        rows.append(
            {
                f"{group_by}_id": int(key),
                f"{group_by}_name": names.get(int(key), fallback),
                "issued": i,
                "consumed": c,
                "leakage": leakage,
                "percent_difference": percent(leakage, i),
            }
        )
    rows.sort(key=lambda r: r["leakage"], reverse=True)

    return {
        "data": rows,
        "group_by": group_by,
        "date_range": _date_range(date_from, date_to),
    }


def expected_vs_actual(
    db: Session,
    *,
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    filters = dict(hotel_id=hotel_id, date_from=date_from, date_to=date_to)
    expected = expected_totals(db, **filters)
    actual = consumed_totals(db, **filters)
    issued = issued_totals(db, **filters)

    ids = sorted(set(expected) | set(actual) | set(issued))
    names = _item_names(db, ids)
    rows = []
    for iid in ids:
        e = expected.get(iid, ZERO)
        a = actual.get(iid, ZERO)
        rows.append(
            {
                "item_id": iid,
                "item_name": names.get(iid, "Unknown Item"),
                "expected_consumed": e,
                "actual_consumed": a,
                "issued": issued.get(iid, ZERO),
                "leakage": a - e,
            }
        )
    return {"data": rows, "hotel_id": hotel_id, "date_range": _date_range(date_from, date_to)}


def wastage(
    db: Session,
    *,
    hotel_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    """Items consumed beyond what recipes account for, largest wastage first."""
    filters = dict(hotel_id=hotel_id, date_from=date_from, date_to=date_to)
    expected = expected_totals(db, **filters)
    actual = consumed_totals(db, **filters)

    ids = set(expected) | set(actual)
    names = _item_names(db, ids)
    rows = []
    for iid in ids:
        e = expected.get(iid, ZERO)
        a = actual.get(iid, ZERO)
        waste = a - e
        if waste <= 0:
            continue
        rows.append(
            {
                "item_id": iid,
                "item_name": names.get(iid, "Unknown Item"),
                "expected_consumed": e,
                "actual_consumed": a,
                "wastage": waste,
                "wastage_percentage": percent(waste, e),
            }
        )
    rows.sort(key=lambda r: r["wastage"], reverse=True)
    return {"data": rows, "hotel_id": hotel_id, "date_range": _date_range(date_from, date_to)}


# ---------- MD DASHBOARD ----------
def _month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _day_start(d: date) -> datetime:
    return datetime(d.year, d.month, d.day)


def _procured_amount(db: Session, *, created_from: date | None = None, created_to: date | None = None) -> Decimal:
    """Order value raised in the window (rejected orders excluded), by created_at."""
    stmt = (
        select(func.coalesce(func.sum(ProcurementOrder.final_amount), 0))
        .where(ProcurementOrder.status != OrderStatus.rejected)
    )
    if created_from is not None:
        stmt = stmt.where(ProcurementOrder.created_at >= _day_start(created_from))
    if created_to is not None:
        stmt = stmt.where(ProcurementOrder.created_at < _day_start(created_to + timedelta(days=1)))
    return Decimal(db.execute(stmt).scalar_one())


def _paid_amount(db: Session, *, date_from: date | None = None, date_to: date | None = None) -> Decimal:
    stmt = select(func.coalesce(func.sum(PaymentEntry.amount_paid), 0))
    if date_from is not None:
        stmt = stmt.where(PaymentEntry.payment_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(PaymentEntry.payment_date <= date_to)
    return Decimal(db.execute(stmt).scalar_one())


def outstanding_amount(db: Session) -> Decimal:
    """Value of every live order that is not paid yet."""
    stmt = (
        select(func.coalesce(func.sum(ProcurementOrder.final_amount), 0))
        .where(ProcurementOrder.status.notin_((OrderStatus.rejected, OrderStatus.paid)))
    )
    return Decimal(db.execute(stmt).scalar_one())


def _sales_amount(db: Session, *, date_from: date | None = None, date_to: date | None = None) -> Decimal:
    stmt = select(func.coalesce(func.sum(SalesEntry.total_sales_amount), 0))
    if date_from is not None:
        stmt = stmt.where(SalesEntry.entry_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(SalesEntry.entry_date <= date_to)
    return Decimal(db.execute(stmt).scalar_one())


def dashboard_summary(db: Session, *, today: date | None = None) -> dict:
    """
    Headline figures for the current calendar month.

        leakage_percentage = (issued - consumed) / issued * 100
        wastage_percentage = (consumed - expected) / expected * 100

    Quantities are combined in base units; pending_amount is all-time.
    """
    today = today or date.today()
    start, end = _month_bounds(today.year, today.month)
    window = dict(date_from=start, date_to=end)

    issued = sum(issued_totals(db, **window).values(), ZERO)
    consumed = sum(consumed_totals(db, **window).values(), ZERO)
    expected = sum(expected_totals(db, **window).values(), ZERO)
    active_alerts = db.execute(
        select(func.count(LeakageAlert.id)).where(LeakageAlert.status == AlertStatus.active)
    ).scalar_one()

    return {
        "total_procurement_this_month": _procured_amount(db, created_from=start, created_to=end),
        "total_payments_this_month": _paid_amount(db, **window),
        "total_pending_amount": outstanding_amount(db),
        "total_leakage_percentage": percent(issued - consumed, issued),
        "total_wastage_percentage": percent(consumed - expected, expected),
        "total_sales_this_month": _sales_amount(db, **window),
        "active_alerts": int(active_alerts),
        "month": start.strftime("%Y-%m"),
    }


def procurement_vs_payments(db: Session, *, year: int) -> list[dict]:
    """Twelve months of order value raised against money paid out."""
    start, end = date(year, 1, 1), date(year, 12, 31)
    procured = [ZERO] * 13  # indexed by month number
    paid = [ZERO] * 13

    order_rows = db.execute(
        select(ProcurementOrder.created_at, ProcurementOrder.final_amount)
        .where(ProcurementOrder.status != OrderStatus.rejected)
        .where(ProcurementOrder.created_at >= _day_start(start))
        .where(ProcurementOrder.created_at < _day_start(end + timedelta(days=1)))
    ).all()
    for created_at, amount in order_rows:
        procured[created_at.month] += Decimal(amount or 0)

    payment_rows = db.execute(
        select(PaymentEntry.payment_date, PaymentEntry.amount_paid)
        .where(PaymentEntry.payment_date >= start)
        .where(PaymentEntry.payment_date <= end)
    ).all()
    for payment_date, amount in payment_rows:
        paid[payment_date.month] += Decimal(amount or 0)

    return [
        {"month": calendar.month_abbr[m], "procurement": procured[m], "payments": paid[m]}
        for m in range(1, 13)
    ]


def item_consumption_trend(
    db: Session,
    *,
    item_id: int,
    range_: str = "daily",
    today: date | None = None,
) -> list[dict]:
    """
    Consumption of one item across all hotels, in the item's unit.

    daily:   last 30 days, one point per day with consumption
    monthly: last 12 calendar months, one point per month
    """
    if range_ not in TREND_RANGES:
        raise DomainValidationError("Invalid range parameter. Use 'daily' or 'monthly'")
    item = db.get(Item, item_id)
    if not item:
        raise NotFoundError(f"Item {item_id} not found")

    today = today or date.today()
    if range_ == "monthly":
        month_index = today.year * 12 + today.month - 1 - 11
        start = date(month_index // 12, month_index % 12 + 1, 1)
        fmt = "%Y-%m"
    else:
        start = today - timedelta(days=30)
        fmt = "%Y-%m-%d"

    rows = db.execute(
        select(ConsumptionEntry.entry_date, ConsumptionLine.unit, ConsumptionLine.quantity_consumed)
        .join(ConsumptionEntry, ConsumptionEntry.id == ConsumptionLine.entry_id)
        .where(ConsumptionLine.item_id == item_id)
        .where(ConsumptionEntry.entry_date >= start)
        .where(ConsumptionEntry.entry_date <= today)
    ).all()

    buckets: dict[str, Decimal] = {}
    for entry_date, unit, qty in rows:
        key = entry_date.strftime(fmt)
        buckets[key] = buckets.get(key, ZERO) + units.convert(qty or 0, unit, item.unit)

    return [
        {"date": key, "consumption": buckets[key], "unit": item.unit}
        for key in sorted(buckets)
    ]


def expected_vs_actual_top_items(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 5,
) -> list[dict]:
    """Items whose consumption strays furthest from recipe expectations, either way."""
    window = dict(date_from=date_from, date_to=date_to)
    expected = expected_totals(db, **window)
    actual = consumed_totals(db, **window)

    ids = set(expected) | set(actual)
    names = _item_names(db, ids)
    rows = []
    for iid in ids:
        e = expected.get(iid, ZERO)
        a = actual.get(iid, ZERO)
        rows.append(
            {
                "item_id": iid,
                "item_name": names.get(iid, "Unknown Item"),
                "expected": e,
                "actual": a,
                "leakage": a - e,
            }
        )
    rows.sort(key=lambda r: (-abs(r["leakage"]), r["item_id"]))
    return rows[:limit]


def vendor_performance(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[dict]:
    """Per vendor: order value raised, money paid and what is still owed."""
    procured_stmt = (
        select(ProcurementOrder.vendor_name, func.sum(ProcurementOrder.final_amount))
        .where(ProcurementOrder.status != OrderStatus.rejected)
        .group_by(ProcurementOrder.vendor_name)
    )
    paid_stmt = (
        select(PaymentEntry.vendor_name, func.sum(PaymentEntry.amount_paid))
        .group_by(PaymentEntry.vendor_name)
    )
    if date_from is not None:
        procured_stmt = procured_stmt.where(ProcurementOrder.bill_date >= date_from)
        paid_stmt = paid_stmt.where(PaymentEntry.payment_date >= date_from)
    if date_to is not None:
        procured_stmt = procured_stmt.where(ProcurementOrder.bill_date <= date_to)
        paid_stmt = paid_stmt.where(PaymentEntry.payment_date <= date_to)

    procured = {name: Decimal(total or 0) for name, total in db.execute(procured_stmt).all()}
    paid = {name: Decimal(total or 0) for name, total in db.execute(paid_stmt).all()}

    rows = []
    for name in sorted(set(procured) | set(paid)):
        p = procured.get(name, ZERO)
        q = paid.get(name, ZERO)
        rows.append({"vendor_name": name, "total_procured": p, "total_paid": q, "pending_amount": p - q})
    return rows


def insights(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[str]:
    """Plain-language observations for the MD, most urgent first."""
    window = dict(date_from=date_from, date_to=date_to)
    out: list[str] = []

    leaky = [
        r for r in leakage_report(db, group_by="item", **window)["data"]
        if r["percent_difference"] > HIGH_LEAKAGE_PERCENT
    ]
    leaky.sort(key=lambda r: r["percent_difference"], reverse=True)
    if leaky:
        names = ", ".join(r["item_name"] for r in leaky[:3])
        out.append(f"High leakage detected in items: {names}. Consider reviewing inventory management.")

    pending = outstanding_amount(db)
    if pending > HIGH_PENDING_AMOUNT:
        out.append(f"High pending payments amounting to ₹{pending}. Review payment schedules.")

    consumed = sum(consumed_totals(db, **window).values(), ZERO)
    expected = sum(expected_totals(db, **window).values(), ZERO)
    if expected > 0 and consumed > expected * OVER_CONSUMPTION_FACTOR:
        out.append(
            "Consumption significantly higher than recipes account for. "
            "Possible wastage or unrecorded sales."
        )

    sales_stmt = (
        select(SalesEntry.hotel_id, func.sum(SalesEntry.total_sales_amount).label("total"))
        .group_by(SalesEntry.hotel_id)
        .order_by(func.sum(SalesEntry.total_sales_amount).desc())
        .limit(3)
    )
    if date_from is not None:
        sales_stmt = sales_stmt.where(SalesEntry.entry_date >= date_from)
    if date_to is not None:
        sales_stmt = sales_stmt.where(SalesEntry.entry_date <= date_to)
    top = db.execute(sales_stmt).all()
    if top:
        names = _hotel_names(db, (int(hid) for hid, _ in top))
        out.append(
            "Top performing hotels: " + ", ".join(names.get(int(hid), "Unknown") for hid, _ in top) + "."
        )

    logger.debug("Generated %d insights", len(out))
    return out
