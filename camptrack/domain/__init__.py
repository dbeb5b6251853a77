from camptrack.domain.models import (
    Campaign,
    CapabilitySet,
    ChampionSnapshot,
    Department,
    History,
    Leaderboard,
    Person,
    RoleBundle,
    ScheduleModeConfig,
    TransitionEntry,
    WorkRequest,
)
from camptrack.domain.rules import ValidationError

__all__ = [
    "Campaign",
    "CapabilitySet",
    "ChampionSnapshot",
    "Department",
    "History",
    "Leaderboard",
    "Person",
    "RoleBundle",
    "ScheduleModeConfig",
    "TransitionEntry",
    "ValidationError",
    "WorkRequest",
]
