import json
from datetime import UTC, datetime
from pathlib import Path

from camptrack.services import lifecycle
from camptrack.services.events import EffectDispatcher, list_notifications
from camptrack.store import directory
from camptrack.store.campaigns import CampaignStore
from camptrack.store.sqlite import SqliteStore


def test_dispatch_routes_notifications_and_emails(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema()
    campaigns = CampaignStore(store)
    person = directory.add_person(store, "Mehmet Oz", "mehmet@example.com")
    campaign = lifecycle.create_campaign(
        campaigns, title="Promo", scheduled_at=datetime(2026, 9, 1, tzinfo=UTC)
    ).campaign
    result = lifecycle.reassign(campaigns, campaign.campaign_id, person.person_id)

    outbox = tmp_path / "outbox.ndjson"
    dispatcher = EffectDispatcher(store=store, outbox_path=outbox, workspace="demo")
    assert dispatcher.dispatch(result.effects) == 2

    rows = list_notifications(store, recipient_id=person.person_id)
    assert len(rows) == 1
    assert rows[0]["kind"] == "email"

    lines = outbox.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["to"] == "mehmet@example.com"
    assert payload["workspace"] == "demo"


def test_disabled_outbox_still_stores_notifications(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema()
    campaigns = CampaignStore(store)
    person = directory.add_person(store, "Mehmet Oz", "mehmet@example.com")
    campaign = lifecycle.create_campaign(
        campaigns, title="Promo", scheduled_at=datetime(2026, 9, 1, tzinfo=UTC)
    ).campaign
    result = lifecycle.reassign(campaigns, campaign.campaign_id, person.person_id)

    outbox = tmp_path / "outbox.ndjson"
    EffectDispatcher(store=store, outbox_path=outbox, workspace="demo", enabled=False).dispatch(
        result.effects
    )

    assert not outbox.exists()
    assert len(list_notifications(store)) == 1
