from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

from camptrack.domain.stages import (
    CampaignStatus,
    Difficulty,
    HistoryAction,
    NotificationKind,
    SessionKind,
    SideEffectKind,
    Urgency,
    WorkRequestStatus,
)

DEACTIVATION_TIME = time(9, 0)


@dataclass(frozen=True)
class TransitionEntry:
    timestamp: datetime
    action: HistoryAction
    new_status: CampaignStatus
    actor: str
    old_status: CampaignStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "old_status": self.old_status.value if self.old_status else None,
            "new_status": self.new_status.value,
            "actor": self.actor,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransitionEntry:
        old_status = data.get("old_status")
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            action=HistoryAction(data["action"]),
            new_status=CampaignStatus(data["new_status"]),
            actor=data.get("actor") or "System",
            old_status=CampaignStatus(old_status) if old_status else None,
        )


class History:
    """Append-only audit trail of a campaign's status changes.

    Values are immutable: ``append`` returns a new ``History`` and leaves the
    receiver untouched, so a history can be shared freely between callers.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: tuple[TransitionEntry, ...] = ()) -> None:
        self._entries = tuple(entries)

    def append(self, entry: TransitionEntry) -> History:
        return History(self._entries + (entry,))

    def __iter__(self) -> Iterator[TransitionEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> TransitionEntry:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, History):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"History({list(self._entries)!r})"

    @property
    def first(self) -> TransitionEntry | None:
        return self._entries[0] if self._entries else None

    @property
    def last(self) -> TransitionEntry | None:
        return self._entries[-1] if self._entries else None

    def current_status(self) -> CampaignStatus:
        last = self.last
        return last.new_status if last else CampaignStatus.PLANNED

    def latest_entry_into(self, status: CampaignStatus) -> TransitionEntry | None:
        for entry in reversed(self._entries):
            if entry.new_status == status:
                return entry
        return None

    def to_list(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    @classmethod
    def from_list(cls, items: list[dict[str, Any]] | None) -> History:
        return cls(tuple(TransitionEntry.from_dict(item) for item in items or []))


@dataclass(frozen=True)
class Campaign:
    campaign_id: str
    title: str
    scheduled_at: datetime
    urgency: Urgency
    difficulty: Difficulty | None
    assignee_id: str | None
    department_id: str | None
    status: CampaignStatus
    note: str | None
    description: str | None
    requires_report: bool
    report_due_date: date | None
    original_date: datetime | None
    created_at: datetime
    updated_at: datetime
    history: History = field(default_factory=History)

    @property
    def reference_code(self) -> str:
        return f"#{self.campaign_id[:6].upper()}"


@dataclass(frozen=True)
class Person:
    person_id: str
    name: str
    email: str
    phone: str | None = None
    avatar: str | None = None


@dataclass(frozen=True)
class Department:
    department_id: str
    name: str


@dataclass(frozen=True)
class RoleBundle:
    """Permission-relevant facts about one session.

    Build it with ``owner()``, ``guest()`` or ``department_member()``; those
    are the only combinations the resolver understands.
    """

    session_kind: SessionKind
    is_owner_role: bool = False
    is_operator_role: bool = False
    home_department: str | None = None
    is_business_unit: bool = False

    @classmethod
    def owner(cls) -> RoleBundle:
        return cls(session_kind=SessionKind.OWNER, is_owner_role=True)

    @classmethod
    def guest(cls) -> RoleBundle:
        return cls(session_kind=SessionKind.GUEST)

    @classmethod
    def department_member(
        cls,
        home_department: str | None,
        *,
        is_owner_role: bool = False,
        is_operator_role: bool = False,
        is_business_unit: bool = False,
    ) -> RoleBundle:
        return cls(
            session_kind=SessionKind.DEPARTMENT_MEMBER,
            is_owner_role=is_owner_role,
            is_operator_role=is_operator_role,
            home_department=home_department,
            is_business_unit=is_business_unit,
        )


@dataclass(frozen=True)
class CapabilitySet:
    can_read_clear: bool = False
    can_read_blurred: bool = False
    can_edit: bool = False
    can_change_status: bool = False
    can_delete: bool = False
    can_create: bool = False
    can_annotate: bool = False

    @property
    def can_read(self) -> bool:
        return self.can_read_clear or self.can_read_blurred


@dataclass(frozen=True)
class Leaderboard:
    value: float | None
    winners: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "winners": list(self.winners)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Leaderboard:
        data = data or {}
        return cls(value=data.get("value"), winners=tuple(data.get("winners") or ()))


@dataclass(frozen=True)
class ChampionSnapshot:
    month: str
    completions: Leaderboard
    speed: Leaderboard
    difficulty: Leaderboard
    computed_at: datetime

    @property
    def has_winners(self) -> bool:
        return bool(self.completions.winners or self.speed.winners or self.difficulty.winners)

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "completions": self.completions.to_dict(),
            "speed": self.speed.to_dict(),
            "difficulty": self.difficulty.to_dict(),
            "computed_at": self.computed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChampionSnapshot:
        return cls(
            month=data["month"],
            completions=Leaderboard.from_dict(data.get("completions")),
            speed=Leaderboard.from_dict(data.get("speed")),
            difficulty=Leaderboard.from_dict(data.get("difficulty")),
            computed_at=datetime.fromisoformat(data["computed_at"]),
        )


@dataclass(frozen=True)
class ScheduleModeConfig:
    enabled: bool
    time: time
    deactivation: time = DEACTIVATION_TIME


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    kind: NotificationKind
    recipient_id: str | None = None


@dataclass(frozen=True)
class EmailRequest:
    to: str
    subject: str
    body: str
    cc: str | None = None
    fields: dict[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True)
class SideEffect:
    kind: SideEffectKind
    payload: Notification | EmailRequest


@dataclass(frozen=True)
class LifecycleResult:
    campaign: Campaign
    effects: tuple[SideEffect, ...] = ()


@dataclass(frozen=True)
class WorkRequest:
    request_id: str
    title: str
    urgency: Urgency
    target_date: date
    description: str | None
    department_id: str | None
    requester_email: str | None
    status: WorkRequestStatus
    created_at: datetime
