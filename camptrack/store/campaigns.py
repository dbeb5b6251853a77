from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from camptrack.domain.models import Campaign, History
from camptrack.domain.rules import as_utc, isoformat_utc
from camptrack.domain.stages import CampaignStatus, Difficulty, Urgency
from camptrack.store.sqlite import SqliteStore

logger = logging.getLogger(__name__)

COLUMNS = (
    "campaign_id",
    "title",
    "scheduled_at",
    "urgency",
    "difficulty",
    "assignee_id",
    "department_id",
    "status",
    "note",
    "description",
    "requires_report",
    "report_due_date",
    "original_date",
    "history",
    "created_at",
    "updated_at",
)
UPDATABLE = frozenset(COLUMNS) - {"campaign_id", "created_at"}


class NotFoundError(LookupError):
    pass


class WriteFailedError(RuntimeError):
    pass


@dataclass(frozen=True)
class CampaignFilter:
    start: datetime | None = None
    end: datetime | None = None
    status: CampaignStatus | None = None
    assignee_id: str | None = None
    department_id: str | None = None

    def where(self) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if self.start is not None:
            clauses.append("scheduled_at >= ?")
            params.append(isoformat_utc(self.start))
        if self.end is not None:
            clauses.append("scheduled_at <= ?")
            params.append(isoformat_utc(self.end))
        if self.status is not None:
            clauses.append("status = ?")
            params.append(self.status.value)
        if self.assignee_id is not None:
            clauses.append("assignee_id = ?")
            params.append(self.assignee_id)
        if self.department_id is not None:
            clauses.append("department_id = ?")
            params.append(self.department_id)
        if not clauses:
            return "", params
        return "WHERE " + " AND ".join(clauses), params


Subscriber = Callable[[list[Campaign]], None]


class CampaignStore:
    """Document-style access to campaign records.

    Each write is one statement in one transaction: a campaign's status and
    its history always land together or not at all.
    """

    def __init__(self, store: SqliteStore) -> None:
        self.store = store
        self._subscribers: list[tuple[CampaignFilter, Subscriber]] = []

    def get(self, campaign_id: str) -> Campaign:
        row = self.store.fetch_one("SELECT * FROM campaigns WHERE campaign_id = ?", (campaign_id,))
        if row is None:
            raise NotFoundError(f"Campaign not found: {campaign_id}")
        return row_to_campaign(row)

    def create(self, campaign: Campaign) -> Campaign:
        values = [_serialize(getattr(campaign, column)) for column in COLUMNS]
        placeholders = ", ".join("?" for _ in COLUMNS)
        query = f"INSERT INTO campaigns ({', '.join(COLUMNS)}) VALUES ({placeholders})"
        self._write(query, values)
        logger.debug("Created campaign %s", campaign.campaign_id)
        self._publish()
        return campaign

    def update(self, campaign_id: str, fields: Mapping[str, Any]) -> Campaign:
        unknown = set(fields) - UPDATABLE
        if unknown:
            raise WriteFailedError(f"Cannot update campaign fields: {', '.join(sorted(unknown))}")
        if not fields:
            return self.get(campaign_id)
        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = [_serialize(value) for value in fields.values()]
        params.append(campaign_id)
        rowcount = self._write(f"UPDATE campaigns SET {assignments} WHERE campaign_id = ?", params)
        if rowcount == 0:
            raise NotFoundError(f"Campaign not found: {campaign_id}")
        self._publish()
        return self.get(campaign_id)

    def delete(self, campaign_id: str) -> None:
        rowcount = self._write("DELETE FROM campaigns WHERE campaign_id = ?", (campaign_id,))
        if rowcount == 0:
            raise NotFoundError(f"Campaign not found: {campaign_id}")
        self._publish()

    def query(self, campaign_filter: CampaignFilter | None = None) -> list[Campaign]:
        where, params = (campaign_filter or CampaignFilter()).where()
        rows = self.store.fetch_all(
            f"SELECT * FROM campaigns {where} ORDER BY scheduled_at ASC, created_at ASC", params
        )
        return [row_to_campaign(row) for row in rows]

    def subscribe(
        self, campaign_filter: CampaignFilter, callback: Subscriber
    ) -> Callable[[], None]:
        entry = (campaign_filter, callback)
        self._subscribers.append(entry)
        callback(self.query(campaign_filter))

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def _write(self, query: str, params) -> int:
        try:
            with self.store.session() as session:
                return session.execute(query, params)
        except sqlite3.Error as exc:
            raise WriteFailedError(f"Campaign write failed: {exc}") from exc

    def _publish(self) -> None:
        # Writes are committed by now; subscriber failures are only logged.
        for campaign_filter, callback in list(self._subscribers):
            try:
                callback(self.query(campaign_filter))
            except Exception:
                logger.exception("Campaign subscriber %r failed", callback)


def row_to_campaign(row: sqlite3.Row) -> Campaign:
    difficulty = row["difficulty"]
    report_due = row["report_due_date"]
    original_date = row["original_date"]
    return Campaign(
        campaign_id=row["campaign_id"],
        title=row["title"],
        scheduled_at=_parse_dt(row["scheduled_at"]),
        urgency=Urgency(row["urgency"]),
        difficulty=Difficulty(difficulty) if difficulty else None,
        assignee_id=row["assignee_id"],
        department_id=row["department_id"],
        status=CampaignStatus(row["status"]),
        note=row["note"],
        description=row["description"],
        requires_report=bool(row["requires_report"]),
        report_due_date=date.fromisoformat(report_due) if report_due else None,
        original_date=_parse_dt(original_date) if original_date else None,
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
        history=History.from_list(json.loads(row["history"] or "[]")),
    )


def _parse_dt(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


def _serialize(value: Any) -> Any:
    if isinstance(value, History):
        return json.dumps(value.to_list())
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return isoformat_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value
