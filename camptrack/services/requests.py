from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import UTC, date, datetime
from uuid import uuid4

from camptrack.domain import rules
from camptrack.domain.models import LifecycleResult, RoleBundle, WorkRequest
from camptrack.domain.stages import Urgency, WorkRequestStatus
from camptrack.services import lifecycle, visibility
from camptrack.services.utils import utc_now
from camptrack.store.campaigns import CampaignStore, NotFoundError
from camptrack.store.sqlite import SqliteStore

logger = logging.getLogger(__name__)


class RequestError(RuntimeError):
    pass


def submit_work_request(
    store: SqliteStore,
    role: RoleBundle,
    submission_enabled: bool,
    title: str,
    urgency: str,
    target_date: date | None,
    description: str | None = None,
    requester_email: str | None = None,
) -> WorkRequest:
    if not visibility.can_request_work(role, submission_enabled):
        raise RequestError("This session may not submit work requests.")
    rules.require(title, "title")
    rules.require(target_date, "target date")
    rules.validate_enum(urgency, [u.value for u in Urgency], "urgency")

    request = WorkRequest(
        request_id=str(uuid4()),
        title=title.strip(),
        urgency=Urgency(urgency),
        target_date=target_date,
        description=description,
        department_id=role.home_department,
        requester_email=requester_email,
        status=WorkRequestStatus.PENDING,
        created_at=utc_now(),
    )
    store.execute(
        "INSERT INTO work_requests (request_id, title, urgency, target_date, description, department_id, "
        "requester_email, status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            request.request_id,
            request.title,
            request.urgency.value,
            request.target_date.isoformat(),
            request.description,
            request.department_id,
            request.requester_email,
            request.status.value,
            request.created_at.isoformat(),
        ),
    )
    logger.info("Work request %s submitted by department %s", request.request_id, role.home_department)
    return request


def get_work_request(store: SqliteStore, request_id: str) -> WorkRequest:
    row = store.fetch_one("SELECT * FROM work_requests WHERE request_id = ?", (request_id,))
    if row is None:
        raise NotFoundError(f"Work request not found: {request_id}")
    return _row_to_request(row)


def list_work_requests(store: SqliteStore, status: str | None = None) -> list[WorkRequest]:
    params: list[str] = []
    where = ""
    if status:
        rules.validate_enum(status, [s.value for s in WorkRequestStatus], "status")
        where = "WHERE status = ?"
        params.append(status)
    rows = store.fetch_all(f"SELECT * FROM work_requests {where} ORDER BY created_at DESC", params)
    return [_row_to_request(row) for row in rows]


def approve_work_request(
    campaigns: CampaignStore,
    request_id: str,
    assignee_id: str | None = None,
    actor: str | None = None,
    holidays: Collection[date] = (),
) -> LifecycleResult:
    request = _pending(campaigns.store, request_id)
    target = request.target_date
    result = lifecycle.create_campaign(
        campaigns,
        title=request.title,
        scheduled_at=datetime(target.year, target.month, target.day, tzinfo=UTC),
        urgency=request.urgency,
        assignee_id=assignee_id,
        department_id=request.department_id,
        description=request.description,
        actor=actor,
        holidays=holidays,
    )
    _set_status(campaigns.store, request_id, WorkRequestStatus.APPROVED)
    return result


def reject_work_request(store: SqliteStore, request_id: str) -> WorkRequest:
    _pending(store, request_id)
    _set_status(store, request_id, WorkRequestStatus.REJECTED)
    return get_work_request(store, request_id)


def _pending(store: SqliteStore, request_id: str) -> WorkRequest:
    request = get_work_request(store, request_id)
    if request.status != WorkRequestStatus.PENDING:
        raise RequestError(f"Work request {request_id} is already {request.status.value}.")
    return request


def _set_status(store: SqliteStore, request_id: str, status: WorkRequestStatus) -> None:
    store.execute(
        "UPDATE work_requests SET status = ? WHERE request_id = ?", (status.value, request_id)
    )
    logger.info("Work request %s %s", request_id, status.value)


def _row_to_request(row) -> WorkRequest:
    return WorkRequest(
        request_id=row["request_id"],
        title=row["title"],
        urgency=Urgency(row["urgency"]),
        target_date=date.fromisoformat(row["target_date"]),
        description=row["description"],
        department_id=row["department_id"],
        requester_email=row["requester_email"],
        status=WorkRequestStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
