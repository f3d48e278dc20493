from __future__ import annotations

import calendar
import logging
import math
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.db.models.models_v1 import (
    ConsumptionEntry,
    ConsumptionLine,
    Item,
    LeakageAlert,
    LeakageAlertNote,
    StockIssue,
    StockIssueLine,
    User,
)
from backend.app.db.models.core_types import AlertLevel, AlertPeriod, AlertStatus, AlertType
from backend.services.errors import DomainValidationError, NotFoundError

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AlertStatus.active, AlertStatus.investigating)


def alert_window(period: AlertPeriod, today: date | None = None) -> tuple[date, date]:
    """Inclusive (start, end) of the current day, Sunday-based week or month."""
    today = today or date.today()
    if period == AlertPeriod.daily:
        return today, today
    if period == AlertPeriod.weekly:
        # date.weekday(): Monday=0 .. Sunday=6
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def classify(leakage_percentage: float) -> tuple[AlertType, AlertLevel]:
    if leakage_percentage > settings.leakage_red_threshold:
        return AlertType.red, AlertLevel.critical
    if leakage_percentage > settings.leakage_yellow_threshold:
        return AlertType.yellow, AlertLevel.warning
    return AlertType.green, AlertLevel.normal


def _pair_totals(db: Session, start: date, end: date) -> tuple[dict, dict]:
    issued_rows = db.execute(
        select(StockIssue.hotel_id, StockIssueLine.item_id, func.sum(StockIssueLine.quantity_issued))
        .join(StockIssue, StockIssue.id == StockIssueLine.issue_id)
        .where(StockIssue.issue_date >= start, StockIssue.issue_date <= end)
        .group_by(StockIssue.hotel_id, StockIssueLine.item_id)
    ).all()
    consumed_rows = db.execute(
        select(ConsumptionEntry.hotel_id, ConsumptionLine.item_id, func.sum(ConsumptionLine.quantity_consumed))
        .join(ConsumptionEntry, ConsumptionEntry.id == ConsumptionLine.entry_id)
        .where(ConsumptionEntry.entry_date >= start, ConsumptionEntry.entry_date <= end)
        .group_by(ConsumptionEntry.hotel_id, ConsumptionLine.item_id)
    ).all()
    issued = {(int(h), int(i)): Decimal(q or 0) for h, i, q in issued_rows}
    consumed = {(int(h), int(i)): Decimal(q or 0) for h, i, q in consumed_rows}
    return issued, consumed


def generate_alerts(
    db: Session,
    *,
    period: AlertPeriod = AlertPeriod.monthly,
    start_date: date | None = None,
    end_date: date | None = None,
    today: date | None = None,
) -> dict:
    """
    Create one alert per (hotel, item) that received stock in the window.

    Quantities are in the item's unit, so the estimated loss is
    leakage * last procured price. An active or investigating alert for the
    same hotel, item and window is never duplicated.
    """
    if (start_date is None) != (end_date is None):
        raise DomainValidationError("start_date and end_date must be given together")
    if start_date is not None:
        if start_date > end_date:
            raise DomainValidationError("start_date must not be after end_date")
        start, end = start_date, end_date
    else:
        start, end = alert_window(period, today)

    issued, consumed = _pair_totals(db, start, end)
    created: list[LeakageAlert] = []

    for (hotel_id, item_id), issued_qty in sorted(issued.items()):
        if issued_qty <= 0:
            continue
        consumed_qty = consumed.get((hotel_id, item_id), Decimal("0"))
        leakage = issued_qty - consumed_qty
        pct = float((leakage / issued_qty * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
        alert_type, alert_level = classify(pct)

        existing = db.execute(
            select(LeakageAlert.id)
            .where(LeakageAlert.hotel_id == hotel_id)
            .where(LeakageAlert.item_id == item_id)
            .where(LeakageAlert.period == period)
            .where(LeakageAlert.start_date == start)
            .where(LeakageAlert.end_date == end)
            .where(LeakageAlert.status.in_(OPEN_STATUSES))
        ).first()
        if existing:
            continue

        item = db.get(Item, item_id)
        price = Decimal(item.last_procured_price or 0) if item else Decimal("0")
        alert = LeakageAlert(
            alert_type=alert_type,
            alert_level=alert_level,
            hotel_id=hotel_id,
            item_id=item_id,
            leakage_percentage=pct,
            issued_quantity=issued_qty,
            consumed_quantity=consumed_qty,
            period=period,
            start_date=start,
            end_date=end,
            status=AlertStatus.active,
            estimated_loss=(leakage * price).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        )
        db.add(alert)
        created.append(alert)

    db.flush()
    logger.info("Generated %d leakage alerts period=%s window=%s..%s", len(created), period.value, start, end)
    return {
        "created": len(created),
        "alerts": created,
        "period": period,
        "start_date": start,
        "end_date": end,
    }


def list_alerts(
    db: Session,
    *,
    status: AlertStatus | None = AlertStatus.active,
    alert_type: AlertType | None = None,
    hotel_id: int | None = None,
    assigned_to: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    if page < 1 or limit < 1:
        raise DomainValidationError("page and limit must be positive")

    stmt = select(LeakageAlert)
    count_stmt = select(func.count(LeakageAlert.id))
    conditions = []
    if status is not None:
        conditions.append(LeakageAlert.status == status)
    if alert_type is not None:
        conditions.append(LeakageAlert.alert_type == alert_type)
    if hotel_id is not None:
        conditions.append(LeakageAlert.hotel_id == hotel_id)
    if assigned_to is not None:
        conditions.append(LeakageAlert.assigned_to == assigned_to)
    for cond in conditions:
        stmt = stmt.where(cond)
        count_stmt = count_stmt.where(cond)

    total = int(db.execute(count_stmt).scalar_one())
    alerts = list(
        db.execute(
            stmt.order_by(LeakageAlert.created_at.desc(), LeakageAlert.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        ).scalars().all()
    )
    return {
        "alerts": alerts,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


def update_alert_status(
    db: Session,
    alert_id: int,
    *,
    status: AlertStatus,
    updated_by: int,
    assigned_to: int | None = None,
    note: str | None = None,
) -> LeakageAlert:
    alert = db.execute(
        select(LeakageAlert).where(LeakageAlert.id == alert_id).with_for_update()
    ).scalar_one_or_none()
    if not alert:
        raise NotFoundError("Alert not found")

    if assigned_to is not None:
        if not db.get(User, assigned_to):
            raise DomainValidationError(f"Invalid assigned_to {assigned_to}")
        alert.assigned_to = assigned_to

    alert.status = status
    if status == AlertStatus.resolved:
        alert.resolved_at = datetime.utcnow()
        alert.resolved_by = updated_by

    if note:
        alert.notes.append(LeakageAlertNote(note=note, added_by=updated_by))

    db.flush()
    logger.info("Alert %s -> %s by user=%s", alert.id, status.value, updated_by)
    return alert


def alert_statistics(db: Session) -> list[dict]:
    """Counts and estimated loss per alert type, broken down by status."""
    rows = db.execute(
        select(
            LeakageAlert.alert_type,
            LeakageAlert.status,
            func.count(LeakageAlert.id),
            func.coalesce(func.sum(LeakageAlert.estimated_loss), 0),
        ).group_by(LeakageAlert.alert_type, LeakageAlert.status)
    ).all()

    by_type: dict[AlertType, dict] = {}
    for alert_type, status, count, loss in rows:
        bucket = by_type.setdefault(
            alert_type,
            {"alert_type": alert_type, "statuses": [], "total_count": 0, "total_loss": Decimal("0")},
        )
        bucket["statuses"].append({"status": status, "count": int(count), "total_loss": Decimal(loss)})
        bucket["total_count"] += int(count)
        bucket["total_loss"] += Decimal(loss)
    return sorted(by_type.values(), key=lambda b: b["alert_type"].value)
