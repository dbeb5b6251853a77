import sqlite3
from pathlib import Path

import pytest

from camptrack.store.sqlite import SqliteStore

NOW = "2026-01-01T00:00:00+00:00"


def _insert_campaign(store: SqliteStore, assignee_id: str | None, status: str) -> None:
    store.execute(
        "INSERT INTO campaigns (campaign_id, title, scheduled_at, urgency, assignee_id, status, "
        "requires_report, history, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        ("c-1", "Spring promo", NOW, "high", assignee_id, status, 0, "[]", NOW, NOW),
    )


def test_foreign_keys_enforced(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema()

    with pytest.raises(sqlite3.IntegrityError):
        _insert_campaign(store, "missing-person", "planned")


def test_enum_columns_are_checked(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema()

    with pytest.raises(sqlite3.IntegrityError):
        _insert_campaign(store, None, "archived")
