from __future__ import annotations

from datetime import datetime, time, timedelta
from pathlib import Path

from camptrack.domain.models import ScheduleModeConfig

OVERRIDE_FILENAME = ".schedule_override"


def in_window(config: ScheduleModeConfig, moment: time) -> bool:
    start = _minutes(config.time)
    end = _minutes(config.deactivation)
    current = _minutes(moment)
    if start > end:
        # Night window, wraps past midnight.
        return current >= start or current < end
    return start <= current < end


def window_start(config: ScheduleModeConfig, now: datetime) -> datetime:
    """Start instant of the window occurrence that contains ``now``."""
    start = now.replace(hour=config.time.hour, minute=config.time.minute, second=0, microsecond=0)
    if _minutes(now.time()) < _minutes(config.time):
        start -= timedelta(days=1)
    return start


def inactive_start(config: ScheduleModeConfig, now: datetime) -> datetime:
    """Start instant of the inactive stretch that contains ``now``."""
    end = config.deactivation
    start = now.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
    if _minutes(now.time()) < _minutes(end):
        start -= timedelta(days=1)
    return start


def should_mode_be_active(
    config: ScheduleModeConfig,
    override_marker: datetime | None,
    now: datetime,
    current_mode_is_active: bool,
) -> bool:
    """Decide whether the scheduled presentation mode should be on at ``now``.

    A manual toggle made after the current window (or inactive stretch)
    began wins until the next boundary, so the current mode is kept. The
    caller re-evaluates this at least once a minute and applies the switch
    itself. Aware datetimes are compared as local wall-clock time.
    """
    if not config.enabled:
        return current_mode_is_active
    now = local_wall_clock(now)
    if override_marker is not None:
        override_marker = local_wall_clock(override_marker)

    if in_window(config, now.time()):
        boundary = window_start(config, now)
        desired = True
    else:
        boundary = inactive_start(config, now)
        desired = False

    if override_marker is not None and override_marker > boundary:
        return current_mode_is_active
    return desired


def read_override_marker(directory: Path) -> datetime | None:
    path = directory / OVERRIDE_FILENAME
    if not path.exists():
        return None
    raw = path.read_text(encoding="utf-8").strip()
    return local_wall_clock(datetime.fromisoformat(raw)) if raw else None


def write_override_marker(directory: Path, when: datetime) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / OVERRIDE_FILENAME
    path.write_text(f"{when.isoformat()}\n", encoding="utf-8")
    return path


def local_wall_clock(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _minutes(moment: time) -> int:
    return moment.hour * 60 + moment.minute
