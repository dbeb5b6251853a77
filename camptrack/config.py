from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from pathlib import Path
from typing import Any

import yaml

from camptrack.domain import rules
from camptrack.domain.models import ScheduleModeConfig
from camptrack.domain.rules import ValidationError

WORKSPACES_DIR = Path("workspaces")
CURRENT_WORKSPACE_FILE = WORKSPACES_DIR / ".current"
WORKSPACE_FILENAME = "workspace.yaml"
DEFAULT_SCHEDULE_TIME = "20:00"


@dataclass(frozen=True)
class StoreConfig:
    sqlite_path: Path


@dataclass(frozen=True)
class RankingConfig:
    enabled: bool = True
    completion_threshold: int = 3
    speed_threshold: int = 3
    difficulty_threshold: int = 2


@dataclass(frozen=True)
class RequestsConfig:
    submission_enabled: bool = True


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = True
    cc: str | None = None


@dataclass(frozen=True)
class WorkspaceConfig:
    name: str
    store: StoreConfig
    path: Path
    ranking: RankingConfig = field(default_factory=RankingConfig)
    schedule_mode: ScheduleModeConfig = field(
        default_factory=lambda: ScheduleModeConfig(enabled=False, time=time(20, 0))
    )
    requests: RequestsConfig = field(default_factory=RequestsConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    holidays: frozenset[date] = frozenset()


class WorkspaceError(RuntimeError):
    pass


def ensure_workspaces_dir() -> None:
    WORKSPACES_DIR.mkdir(parents=True, exist_ok=True)


def set_current_workspace(name: str) -> None:
    ensure_workspaces_dir()
    CURRENT_WORKSPACE_FILE.write_text(f"{name}\n", encoding="utf-8")


def get_current_workspace_name() -> str:
    if not CURRENT_WORKSPACE_FILE.exists():
        raise WorkspaceError("No active workspace. Run `camptrack workspace use <name>`.")
    return CURRENT_WORKSPACE_FILE.read_text(encoding="utf-8").strip()


def workspace_path(name: str) -> Path:
    return WORKSPACES_DIR / name


def workspace_config_path(name: str) -> Path:
    return workspace_path(name) / WORKSPACE_FILENAME


def load_workspace(name: str | None = None) -> WorkspaceConfig:
    if name is None:
        name = get_current_workspace_name()
    return load_workspace_file(workspace_config_path(name), name)


def load_workspace_file(config_path: Path, name: str | None = None) -> WorkspaceConfig:
    if not config_path.exists():
        raise WorkspaceError(f"Workspace config not found: {config_path}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise WorkspaceError("Workspace config must be a mapping.")
    return WorkspaceConfig(
        name=name or data.get("workspace") or config_path.parent.name,
        store=_parse_store(data.get("store"), config_path),
        path=config_path.parent,
        ranking=_parse_ranking(data.get("ranking")),
        schedule_mode=_parse_schedule_mode(data.get("schedule_mode")),
        requests=_parse_requests(data.get("requests")),
        email=_parse_email(data.get("email")),
        holidays=_parse_holidays(data.get("holidays")),
    )


def write_workspace_config(name: str) -> Path:
    ensure_workspaces_dir()
    ws_dir = workspace_path(name)
    ws_dir.mkdir(parents=True, exist_ok=True)
    config = {
        "workspace": name,
        "store": {"sqlite_path": "./local.sqlite"},
        "ranking": {
            "enabled": True,
            "completion_threshold": 3,
            "speed_threshold": 3,
            "difficulty_threshold": 2,
        },
        "schedule_mode": {"enabled": False, "time": DEFAULT_SCHEDULE_TIME},
        "requests": {"submission_enabled": True},
        "email": {"enabled": True, "cc": None},
        "holidays": [],
    }
    config_path = workspace_config_path(name)
    config_path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return config_path


def _parse_store(store_data: Any, config_path: Path) -> StoreConfig:
    if not isinstance(store_data, dict):
        raise WorkspaceError("Invalid workspace store configuration.")
    sqlite_path_raw = store_data.get("sqlite_path")
    if not sqlite_path_raw:
        raise WorkspaceError("Workspace store.sqlite_path is required.")
    sqlite_path = _resolve_sqlite_path(sqlite_path_raw, config_path)
    if sqlite_path is None:
        raise WorkspaceError("Workspace store.sqlite_path must be a string.")
    return StoreConfig(sqlite_path=sqlite_path)


def _resolve_sqlite_path(sqlite_path_raw: Any, config_path: Path) -> Path | None:
    if not isinstance(sqlite_path_raw, str):
        return None
    raw_path = Path(sqlite_path_raw)
    if raw_path.is_absolute():
        return raw_path
    # Relative paths are anchored at the workspace directory.
    return (config_path.parent / raw_path).resolve()


def _parse_ranking(data: Any) -> RankingConfig:
    if data is None:
        return RankingConfig()
    if not isinstance(data, dict):
        raise WorkspaceError("Workspace ranking must be a mapping.")
    defaults = RankingConfig()
    values = {}
    for key in ("completion_threshold", "speed_threshold", "difficulty_threshold"):
        value = data.get(key, getattr(defaults, key))
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise WorkspaceError(f"Workspace ranking.{key} must be a positive integer.")
        values[key] = value
    return RankingConfig(enabled=bool(data.get("enabled", True)), **values)


def _parse_schedule_mode(data: Any) -> ScheduleModeConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise WorkspaceError("Workspace schedule_mode must be a mapping.")
    raw = data.get("time") or DEFAULT_SCHEDULE_TIME
    if isinstance(raw, int) and not isinstance(raw, bool):
        # PyYAML reads an unquoted 20:00 as the base-60 integer 1200.
        raw = f"{raw // 60:02d}:{raw % 60:02d}"
    try:
        start = rules.parse_time_of_day(str(raw), "schedule_mode.time")
    except ValidationError as exc:
        raise WorkspaceError(str(exc)) from exc
    return ScheduleModeConfig(enabled=bool(data.get("enabled", False)), time=start)


def _parse_requests(data: Any) -> RequestsConfig:
    if data is None:
        return RequestsConfig()
    if not isinstance(data, dict):
        raise WorkspaceError("Workspace requests must be a mapping.")
    return RequestsConfig(submission_enabled=bool(data.get("submission_enabled", True)))


def _parse_email(data: Any) -> EmailConfig:
    if data is None:
        return EmailConfig()
    if not isinstance(data, dict):
        raise WorkspaceError("Workspace email must be a mapping.")
    return EmailConfig(enabled=bool(data.get("enabled", True)), cc=data.get("cc") or None)


def _parse_holidays(data: Any) -> frozenset[date]:
    if data is None:
        return frozenset()
    if not isinstance(data, list):
        raise WorkspaceError("Workspace holidays must be a list of YYYY-MM-DD dates.")
    holidays = set()
    for item in data:
        # YAML already turns unquoted ISO dates into date objects.
        if isinstance(item, date):
            holidays.add(item)
            continue
        try:
            holidays.add(rules.parse_date(str(item), "holidays"))
        except ValidationError as exc:
            raise WorkspaceError(str(exc)) from exc
    return frozenset(holidays)
