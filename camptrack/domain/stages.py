from __future__ import annotations

from enum import Enum


class CampaignStatus(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return _URGENCY_ORDER.index(self)

    @property
    def label(self) -> str:
        return _URGENCY_LABELS[self]


class Difficulty(str, Enum):
    SIMPLE = "simple"
    ABOVE_SIMPLE = "above_simple"
    MEDIUM = "medium"
    HARD = "hard"
    VERY_HARD = "very_hard"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    @property
    def label(self) -> str:
        return _DIFFICULTY_LABELS[self]

    @property
    def is_hard(self) -> bool:
        # The two hardest ordinal levels.
        return self.rank >= len(_DIFFICULTY_ORDER) - 2


class HistoryAction(str, Enum):
    CREATED = "created"
    STATUS_CHANGED = "status_changed"


class NotificationKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ALERT = "alert"
    WARNING = "warning"
    EMAIL = "email"


class SessionKind(str, Enum):
    OWNER = "owner"
    DEPARTMENT_MEMBER = "department_member"
    GUEST = "guest"


class SideEffectKind(str, Enum):
    NOTIFICATION = "notification"
    EMAIL = "email"


class WorkRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


_URGENCY_ORDER = [Urgency.LOW, Urgency.MEDIUM, Urgency.HIGH, Urgency.VERY_HIGH]
_URGENCY_LABELS = {
    Urgency.LOW: "Low",
    Urgency.MEDIUM: "Medium",
    Urgency.HIGH: "High",
    Urgency.VERY_HIGH: "Very High",
}

_DIFFICULTY_ORDER = [
    Difficulty.SIMPLE,
    Difficulty.ABOVE_SIMPLE,
    Difficulty.MEDIUM,
    Difficulty.HARD,
    Difficulty.VERY_HARD,
]
_DIFFICULTY_LABELS = {
    Difficulty.SIMPLE: "Simple",
    Difficulty.ABOVE_SIMPLE: "Above Simple",
    Difficulty.MEDIUM: "Medium",
    Difficulty.HARD: "Hard",
    Difficulty.VERY_HARD: "Very Hard",
}
