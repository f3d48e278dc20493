from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_roles
from backend.app.db.models.models_v1 import LeakageAlert, User
from backend.app.db.models.core_types import AlertPeriod, AlertStatus, AlertType, Role
from backend.services import alerts

router = APIRouter(prefix="/leakage-alerts")

analysts = require_roles(Role.md, Role.superadmin)


class StatusUpdate(BaseModel):
    status: AlertStatus
    assigned_to: int | None = None
    note: str | None = Field(default=None, min_length=1)


def alert_out(a: LeakageAlert) -> dict:
    return {
        "id": a.id,
        "alert_type": a.alert_type,
        "alert_level": a.alert_level,
        "hotel_id": a.hotel_id,
        "hotel_name": a.hotel.display_name if a.hotel else None,
        "item_id": a.item_id,
        "item_name": a.item.name if a.item else None,
        "leakage_percentage": a.leakage_percentage,
        "issued_quantity": a.issued_quantity,
        "consumed_quantity": a.consumed_quantity,
        "period": a.period,
        "start_date": a.start_date,
        "end_date": a.end_date,
        "status": a.status,
        "assigned_to": a.assigned_to,
        "resolved_at": a.resolved_at,
        "resolved_by": a.resolved_by,
        "estimated_loss": a.estimated_loss,
        "notes": [
            {"note": n.note, "added_by": n.added_by, "created_at": n.created_at}
            for n in a.notes
        ],
        "created_at": a.created_at,
    }


@router.post("/generate")
def generate(
    period: AlertPeriod = AlertPeriod.monthly,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    result = alerts.generate_alerts(db, period=period, start_date=start_date, end_date=end_date)
    db.commit()
    return {
        "message": f"Generated {result['created']} leakage alerts",
        "created": result["created"],
        "period": result["period"],
        "date_range": {"start": result["start_date"], "end": result["end_date"]},
    }


@router.get("")
def list_alerts(
    status: AlertStatus | None = AlertStatus.active,
    alert_type: AlertType | None = None,
    hotel_id: int | None = None,
    assigned_to: int | None = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    result = alerts.list_alerts(
        db,
        status=status,
        alert_type=alert_type,
        hotel_id=hotel_id,
        assigned_to=assigned_to,
        page=page,
        limit=limit,
    )
    return {"alerts": [alert_out(a) for a in result["alerts"]], "pagination": result["pagination"]}


@router.get("/statistics")
def statistics(db: Session = Depends(get_db), current: User = Depends(analysts)):
    return {"statistics": alerts.alert_statistics(db)}


@router.patch("/{alert_id}/status")
def update_status(
    alert_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(analysts),
):
    alert = alerts.update_alert_status(
        db,
        alert_id,
        status=payload.status,
        updated_by=current.id,
        assigned_to=payload.assigned_to,
        note=payload.note,
    )
    db.commit()
    db.refresh(alert)
    return alert_out(alert)
