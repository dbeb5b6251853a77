from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import replace
from datetime import date, datetime
from uuid import uuid4

from camptrack.domain import rules
from camptrack.domain.models import (
    Campaign,
    EmailRequest,
    History,
    LifecycleResult,
    Notification,
    SideEffect,
    TransitionEntry,
)
from camptrack.domain.stages import (
    CampaignStatus,
    Difficulty,
    HistoryAction,
    NotificationKind,
    SideEffectKind,
    Urgency,
)
from camptrack.services import calendar
from camptrack.services.utils import strip_html, utc_now
from camptrack.store import directory
from camptrack.store.campaigns import CampaignStore, NotFoundError

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "System"
UNKNOWN_PERSON = "Unknown user"
URGENT_PREFIX = "URGENT: "

STATUS_NOTIFICATIONS = {
    CampaignStatus.COMPLETED: ("Campaign Completed", '"{title}" was completed.', NotificationKind.SUCCESS),
    CampaignStatus.CANCELLED: ("Campaign Cancelled", '"{title}" was cancelled.', NotificationKind.ALERT),
    CampaignStatus.PLANNED: (
        "Campaign Re-planned",
        '"{title}" was moved back to planned.',
        NotificationKind.WARNING,
    ),
}
DEFAULT_STATUS_NOTIFICATION = (
    "Campaign Status Changed",
    '"{title}" status changed to "{status}".',
    NotificationKind.INFO,
)


def create_campaign(
    campaigns: CampaignStore,
    title: str,
    scheduled_at: datetime | None,
    urgency: Urgency | str = Urgency.MEDIUM,
    difficulty: Difficulty | str | None = None,
    assignee_id: str | None = None,
    department_id: str | None = None,
    description: str | None = None,
    requires_report: bool = False,
    report_due_date: date | None = None,
    actor: str | None = None,
    holidays: Collection[date] = (),
    now: datetime | None = None,
) -> LifecycleResult:
    rules.require(title, "title")
    rules.require(scheduled_at, "date")
    urgency = _coerce(Urgency, urgency, "urgency")
    difficulty = _coerce(Difficulty, difficulty, "difficulty") if difficulty else None
    if assignee_id and directory.get_person(campaigns.store, assignee_id) is None:
        raise NotFoundError(f"Person not found: {assignee_id}")

    now = now or utc_now()
    scheduled_at = rules.as_utc(scheduled_at)
    if requires_report and report_due_date is None:
        report_due_date = calendar.report_due_date(scheduled_at.date(), holidays)

    history = History().append(
        TransitionEntry(
            timestamp=now,
            action=HistoryAction.CREATED,
            new_status=CampaignStatus.PLANNED,
            actor=actor or SYSTEM_ACTOR,
        )
    )
    campaign = Campaign(
        campaign_id=str(uuid4()),
        title=title.strip(),
        scheduled_at=scheduled_at,
        urgency=urgency,
        difficulty=difficulty,
        assignee_id=assignee_id,
        department_id=department_id,
        status=CampaignStatus.PLANNED,
        note=None,
        description=description,
        requires_report=requires_report,
        report_due_date=report_due_date if requires_report else None,
        original_date=None,
        created_at=now,
        updated_at=now,
        history=history,
    )
    campaigns.create(campaign)
    logger.info("Campaign %s created by %s", campaign.reference_code, actor or SYSTEM_ACTOR)

    effects: list[SideEffect] = []
    if assignee_id:
        effects.append(
            _notification(
                "New Task Assigned",
                f'"{campaign.title}" was assigned to you.',
                NotificationKind.EMAIL,
                recipient_id=assignee_id,
            )
        )
    return LifecycleResult(campaign=campaigns.get(campaign.campaign_id), effects=tuple(effects))


def transition(
    campaigns: CampaignStore,
    campaign_id: str,
    new_status: CampaignStatus | str,
    actor: str | None = None,
    now: datetime | None = None,
) -> LifecycleResult:
    new_status = _coerce(CampaignStatus, new_status, "status")
    current = campaigns.get(campaign_id)
    if new_status == current.status:
        return LifecycleResult(campaign=current)

    now = now or utc_now()
    history = current.history.append(
        TransitionEntry(
            timestamp=now,
            action=HistoryAction.STATUS_CHANGED,
            old_status=current.status,
            new_status=new_status,
            actor=actor or SYSTEM_ACTOR,
        )
    )
    # Status and history go out in a single write.
    updated = campaigns.update(
        campaign_id,
        {"status": new_status, "history": history, "updated_at": now},
    )
    logger.info(
        "Campaign %s moved %s -> %s by %s",
        current.reference_code,
        current.status.value,
        new_status.value,
        actor or SYSTEM_ACTOR,
    )

    title, message, kind = STATUS_NOTIFICATIONS.get(new_status, DEFAULT_STATUS_NOTIFICATION)
    notification = _notification(
        title,
        message.format(title=current.title, status=new_status.value),
        kind,
        recipient_id=current.assignee_id,
    )
    return LifecycleResult(campaign=updated, effects=(notification,))


def reassign(
    campaigns: CampaignStore,
    campaign_id: str,
    new_assignee_id: str,
    actor: str | None = None,
    cc: str | None = None,
    now: datetime | None = None,
) -> LifecycleResult:
    rules.require(new_assignee_id, "assignee")
    current = campaigns.get(campaign_id)
    if new_assignee_id == current.assignee_id:
        return LifecycleResult(campaign=current)

    store = campaigns.store
    new_assignee = directory.get_person(store, new_assignee_id)
    if new_assignee is None:
        raise NotFoundError(f"Person not found: {new_assignee_id}")
    old_assignee = directory.get_person(store, current.assignee_id)
    department = directory.get_department(store, current.department_id)

    updated = campaigns.update(
        campaign_id, {"assignee_id": new_assignee_id, "updated_at": now or utc_now()}
    )
    logger.info(
        "Campaign %s handed over to %s by %s",
        current.reference_code,
        new_assignee.name,
        actor or SYSTEM_ACTOR,
    )

    notification = _notification(
        "Task Assigned to You (Handover)",
        f'"{current.title}" was handed over to you.',
        NotificationKind.EMAIL,
        recipient_id=new_assignee_id,
    )
    fields = {
        "title": current.title,
        "old_assignee": old_assignee.name if old_assignee else UNKNOWN_PERSON,
        "new_assignee": new_assignee.name,
        "date": current.scheduled_at.date().isoformat(),
        "urgency": current.urgency.label,
        "difficulty": current.difficulty.label if current.difficulty else None,
        "description": strip_html(current.description) or None,
        "department": department.name if department else None,
        "reference": current.reference_code,
    }
    email = EmailRequest(
        to=new_assignee.email,
        cc=cc,
        subject=_assignment_subject(current),
        body=_assignment_body(fields),
        fields=fields,
    )
    return LifecycleResult(
        campaign=updated,
        effects=(notification, SideEffect(kind=SideEffectKind.EMAIL, payload=email)),
    )


def reschedule(
    campaigns: CampaignStore,
    campaign_id: str,
    new_date: datetime,
    holidays: Collection[date] = (),
    now: datetime | None = None,
) -> LifecycleResult:
    rules.require(new_date, "date")
    new_date = rules.as_utc(new_date)
    current = campaigns.get(campaign_id)
    if new_date == current.scheduled_at:
        return LifecycleResult(campaign=current)

    fields: dict[str, object] = {
        "scheduled_at": new_date,
        "original_date": current.original_date or current.scheduled_at,
        "updated_at": now or utc_now(),
    }
    if current.requires_report:
        fields["report_due_date"] = calendar.report_due_date(new_date.date(), holidays)
    updated = campaigns.update(campaign_id, fields)
    logger.info("Campaign %s moved to %s", current.reference_code, new_date.date().isoformat())
    return LifecycleResult(campaign=updated)


def delete_campaign(campaigns: CampaignStore, campaign_id: str) -> LifecycleResult:
    current = campaigns.get(campaign_id)
    assignee = directory.get_person(campaigns.store, current.assignee_id)
    campaigns.delete(campaign_id)
    logger.info("Campaign %s deleted", current.reference_code)
    assignee_name = assignee.name if assignee else UNKNOWN_PERSON
    notification = _notification(
        "Campaign Deleted",
        f'"{current.title}" assigned to {assignee_name} was deleted.',
        NotificationKind.ALERT,
    )
    return LifecycleResult(campaign=current, effects=(notification,))


def set_note(
    campaigns: CampaignStore, campaign_id: str, text: str, now: datetime | None = None
) -> LifecycleResult:
    rules.require(text, "note")
    updated = campaigns.update(
        campaign_id, {"note": text.strip(), "updated_at": now or utc_now()}
    )
    return LifecycleResult(campaign=updated)


def clear_note(
    campaigns: CampaignStore, campaign_id: str, now: datetime | None = None
) -> LifecycleResult:
    updated = campaigns.update(campaign_id, {"note": None, "updated_at": now or utc_now()})
    return LifecycleResult(campaign=updated)


def history_is_consistent(campaign: Campaign) -> bool:
    return campaign.status == campaign.history.current_status()


def _assignment_subject(campaign: Campaign) -> str:
    prefix = URGENT_PREFIX if campaign.urgency == Urgency.VERY_HIGH else ""
    return f"{prefix}{campaign.title} - Task Assignment (Update)"


def _assignment_body(fields: dict[str, str | None]) -> str:
    lines = [
        f"Hello {fields['new_assignee']},",
        "",
        f"You have been assigned to \"{fields['title']}\" (handover).",
        "",
        f"Handed over by: {fields['old_assignee']}",
        f"Date: {fields['date']}",
        f"Urgency: {fields['urgency']}",
    ]
    if fields["difficulty"]:
        lines.append(f"Difficulty: {fields['difficulty']}")
    if fields["description"]:
        lines.extend(["", "Description:", fields["description"]])
    if fields["department"]:
        lines.extend(["", f"Requesting department: {fields['department']}"])
    lines.extend(["", "----------------", f"Ref ID: {fields['reference']}"])
    return "\n".join(lines)


def _notification(
    title: str, message: str, kind: NotificationKind, recipient_id: str | None = None
) -> SideEffect:
    return SideEffect(
        kind=SideEffectKind.NOTIFICATION,
        payload=Notification(title=title, message=message, kind=kind, recipient_id=recipient_id),
    )


def _coerce(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    rules.validate_enum(value, [member.value for member in enum_cls], field)
    return enum_cls(value)
