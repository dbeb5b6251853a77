from datetime import date, time
from pathlib import Path

import pytest

from camptrack.config import (
    WORKSPACES_DIR,
    WorkspaceError,
    _resolve_sqlite_path,
    load_workspace_file,
)


def _write(tmp_path: Path, body: str) -> Path:
    ws_dir = tmp_path / WORKSPACES_DIR / "demo"
    ws_dir.mkdir(parents=True)
    config_path = ws_dir / "workspace.yaml"
    config_path.write_text(body)
    return config_path


def test_resolve_sqlite_path_relative(tmp_path: Path) -> None:
    config_path = _write(tmp_path, "workspace: demo\nstore:\n  sqlite_path: ./local.sqlite\n")

    resolved = _resolve_sqlite_path("./local.sqlite", config_path)
    assert resolved == (config_path.parent / "local.sqlite").resolve()


def test_defaults_when_sections_missing(tmp_path: Path) -> None:
    config_path = _write(tmp_path, "workspace: demo\nstore:\n  sqlite_path: ./local.sqlite\n")

    ws = load_workspace_file(config_path)
    assert ws.name == "demo"
    assert ws.ranking.completion_threshold == 3
    assert ws.ranking.speed_threshold == 3
    assert ws.ranking.difficulty_threshold == 2
    assert ws.schedule_mode.enabled is False
    assert ws.schedule_mode.time == time(20, 0)
    assert ws.requests.submission_enabled is True
    assert ws.holidays == frozenset()


def test_unquoted_schedule_time_and_holidays(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path,
        "store:\n  sqlite_path: ./local.sqlite\n"
        "schedule_mode:\n  enabled: true\n  time: 21:30\n"
        "holidays:\n  - 2026-10-29\n  - '2026-01-01'\n",
    )

    ws = load_workspace_file(config_path)
    assert ws.schedule_mode.enabled is True
    assert ws.schedule_mode.time == time(21, 30)
    assert ws.holidays == frozenset({date(2026, 10, 29), date(2026, 1, 1)})


def test_rejects_bad_threshold(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path,
        "store:\n  sqlite_path: ./local.sqlite\nranking:\n  completion_threshold: 0\n",
    )

    with pytest.raises(WorkspaceError):
        load_workspace_file(config_path)


def test_missing_store_is_an_error(tmp_path: Path) -> None:
    config_path = _write(tmp_path, "workspace: demo\n")

    with pytest.raises(WorkspaceError):
        load_workspace_file(config_path)


def test_email_section(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path,
        "store:\n  sqlite_path: ./local.sqlite\nemail:\n  enabled: false\n  cc: team@example.com\n",
    )

    ws = load_workspace_file(config_path)
    assert ws.email.enabled is False
    assert ws.email.cc == "team@example.com"
