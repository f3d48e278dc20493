"""
Hotel stock requests.

A hotel manager asks the central store for items; the store manager fulfils
the request in one or more issues, or rejects it while nothing has been issued.

    pending --fulfil part--> partially_issued --fulfil rest--> fulfilled
       |
       +--reject--> rejected

Every fulfilment goes through inventory.issue_stock as a system-request issue,
so the central store and ledger rules are the same as for manual issues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import (
    Hotel,
    Item,
    StockIssue,
    StockRequest,
    StockRequestLine,
)
from backend.app.db.models.core_types import IssueRequestType, StockRequestStatus
from backend.services import inventory
from backend.services.errors import (
    DomainValidationError,
    InvalidTransitionError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (StockRequestStatus.pending, StockRequestStatus.partially_issued)


@dataclass(frozen=True)
class RequestLineInput:
    item_id: int
    quantity: Decimal
    unit: str | None = None


def create_request(
    db: Session,
    *,
    hotel_id: int,
    requested_by: int,
    lines: Sequence[RequestLineInput],
    remarks: str | None = None,
    request_date: date | None = None,
) -> StockRequest:
    hotel = db.get(Hotel, hotel_id)
    if not hotel or not hotel.is_active:
        raise NotFoundError("Hotel not found")
    if not lines:
        raise DomainValidationError("At least one item is required")

    request = StockRequest(
        hotel_id=hotel_id,
        requested_by=requested_by,
        request_date=request_date or date.today(),
        status=StockRequestStatus.pending,
        remarks=remarks,
    )

    seen: set[int] = set()
    for ln in lines:
        if ln.item_id in seen:
            raise DomainValidationError(f"Item {ln.item_id} appears more than once")
        seen.add(ln.item_id)

        item = db.get(Item, ln.item_id)
        if not item or not item.is_active:
            raise DomainValidationError(f"Invalid item_id {ln.item_id}")
        qty = inventory.to_item_unit(item, ln.quantity, ln.unit)
        if qty <= 0:
            raise DomainValidationError(f"Quantity for item {ln.item_id} must be positive")

        request.lines.append(
            StockRequestLine(
                item_id=item.id,
                requested_quantity=qty,
                unit=item.unit,
                issued_quantity=Decimal("0"),
                status=StockRequestStatus.pending,
            )
        )

    db.add(request)
    db.flush()
    logger.info("Stock request %s from hotel=%s lines=%d", request.id, hotel_id, len(lines))
    return request


def list_requests(
    db: Session,
    *,
    hotel_id: int | None = None,
    status: StockRequestStatus | None = None,
) -> list[StockRequest]:
    stmt = select(StockRequest).order_by(StockRequest.created_at.desc(), StockRequest.id.desc())
    if hotel_id is not None:
        stmt = stmt.where(StockRequest.hotel_id == hotel_id)
    if status is not None:
        stmt = stmt.where(StockRequest.status == status)
    return list(db.execute(stmt).scalars().all())


def pending_requests(db: Session) -> list[StockRequest]:
    """Requests the store still has to act on, oldest first."""
    stmt = (
        select(StockRequest)
        .where(StockRequest.status.in_(OPEN_STATUSES))
        .order_by(StockRequest.created_at.asc(), StockRequest.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def get_request(db: Session, request_id: int, *, for_update: bool = False) -> StockRequest:
    stmt = select(StockRequest).where(StockRequest.id == request_id)
    if for_update:
        stmt = stmt.with_for_update()
    request = db.execute(stmt).scalar_one_or_none()
    if not request:
        raise NotFoundError("Stock request not found")
    return request


def fulfill_request(
    db: Session,
    request_id: int,
    *,
    lines: Sequence[inventory.IssueLineInput],
    fulfilled_by: int,
    issue_date: date | None = None,
) -> tuple[StockRequest, StockIssue]:
    """
    Issue part or all of an open request.

    Quantities are in the item's unit. Lines already fulfilled are skipped;
    a line may not be issued beyond what is still outstanding on it.
    Returns (request, issue).
    """
    request = get_request(db, request_id, for_update=True)
    if request.status not in OPEN_STATUSES:
        raise InvalidTransitionError(
            f"Stock request {request.id} is already {StockRequestStatus(request.status).value}"
        )
    if not lines:
        raise DomainValidationError("At least one item is required")

    by_item = {ln.item_id: ln for ln in request.lines}
    to_issue: dict[int, Decimal] = {}
    for ln in lines:
        line = by_item.get(ln.item_id)
        if line is None:
            raise DomainValidationError(f"Item {ln.item_id} is not part of stock request {request.id}")
        if line.status == StockRequestStatus.fulfilled:
            logger.debug("Request %s item %s already fulfilled, skipping", request.id, ln.item_id)
            continue
        qty = Decimal(ln.quantity)
        if qty <= 0:
            raise DomainValidationError(f"Quantity for item {ln.item_id} must be positive")
        to_issue[ln.item_id] = to_issue.get(ln.item_id, Decimal("0")) + qty

    if not to_issue:
        raise DomainValidationError("Nothing left to issue on this request")

    for item_id, qty in to_issue.items():
        line = by_item[item_id]
        outstanding = Decimal(line.requested_quantity) - Decimal(line.issued_quantity)
        if qty > outstanding:
            raise DomainValidationError(
                f"Only {outstanding} {line.unit} of item {item_id} is outstanding on stock request {request.id}"
            )

    issue = inventory.issue_stock(
        db,
        hotel_id=request.hotel_id,
        lines=[inventory.IssueLineInput(item_id=iid, quantity=qty) for iid, qty in to_issue.items()],
        issued_by=fulfilled_by,
        request_type=IssueRequestType.system_request,
        remarks=f"Fulfilled stock request #{request.id}",
        issue_date=issue_date,
        stock_request_id=request.id,
    )

    for item_id, qty in to_issue.items():
        line = by_item[item_id]
        line.issued_quantity = Decimal(line.issued_quantity) + qty
        if line.issued_quantity >= Decimal(line.requested_quantity):
            line.status = StockRequestStatus.fulfilled
        else:
            line.status = StockRequestStatus.partially_issued

    if all(ln.status == StockRequestStatus.fulfilled for ln in request.lines):
        request.status = StockRequestStatus.fulfilled
        request.fulfilled_by = fulfilled_by
        request.fulfilled_at = datetime.utcnow()
    else:
        request.status = StockRequestStatus.partially_issued

    db.flush()
    logger.info(
        "Stock request %s fulfilled by user=%s via %s, status=%s",
        request.id, fulfilled_by, issue.issue_number, StockRequestStatus(request.status).value,
    )
    return request, issue


def reject_request(
    db: Session,
    request_id: int,
    *,
    rejected_by: int,
    reason: str | None = None,
) -> StockRequest:
    request = get_request(db, request_id, for_update=True)
    if request.status != StockRequestStatus.pending:
        raise InvalidTransitionError(
            f"Only pending requests can be rejected, stock request {request.id} is "
            f"{StockRequestStatus(request.status).value}"
        )

    request.status = StockRequestStatus.rejected
    for line in request.lines:
        line.status = StockRequestStatus.rejected
    if reason:
        request.remarks = f"{request.remarks}\nRejected: {reason}" if request.remarks else f"Rejected: {reason}"

    db.flush()
    logger.info("Stock request %s rejected by user=%s", request.id, rejected_by)
    return request
