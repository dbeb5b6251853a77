from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from camptrack.domain.stages import CampaignStatus
from camptrack.services import lifecycle
from camptrack.store.campaigns import CampaignFilter, CampaignStore, NotFoundError, WriteFailedError
from camptrack.store.sqlite import SqliteStore

WHEN = datetime(2026, 9, 14, 10, 0, tzinfo=UTC)


def _campaigns(tmp_path: Path) -> CampaignStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema()
    return CampaignStore(store)


def test_query_filters_by_window_and_status(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    early = lifecycle.create_campaign(campaigns, title="Early", scheduled_at=WHEN).campaign
    late = lifecycle.create_campaign(
        campaigns, title="Late", scheduled_at=WHEN + timedelta(days=30)
    ).campaign
    lifecycle.transition(campaigns, late.campaign_id, "cancelled")

    window = campaigns.query(CampaignFilter(start=WHEN, end=WHEN + timedelta(days=1)))
    assert [c.campaign_id for c in window] == [early.campaign_id]

    cancelled = campaigns.query(CampaignFilter(status=CampaignStatus.CANCELLED))
    assert [c.campaign_id for c in cancelled] == [late.campaign_id]


def test_history_round_trips_through_store(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = lifecycle.create_campaign(campaigns, title="Promo", scheduled_at=WHEN).campaign
    lifecycle.transition(campaigns, campaign.campaign_id, "completed", actor="ayse")

    stored = campaigns.get(campaign.campaign_id)
    assert [entry.new_status for entry in stored.history] == [
        CampaignStatus.PLANNED,
        CampaignStatus.COMPLETED,
    ]
    assert stored.history.last.actor == "ayse"


def test_update_missing_campaign(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        _campaigns(tmp_path).update("nope", {"note": "x"})


def test_update_rejects_unknown_fields(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = lifecycle.create_campaign(campaigns, title="Promo", scheduled_at=WHEN).campaign
    with pytest.raises(WriteFailedError):
        campaigns.update(campaign.campaign_id, {"campaign_id": "other"})


def test_rejected_write_leaves_record_untouched(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = lifecycle.create_campaign(campaigns, title="Promo", scheduled_at=WHEN).campaign

    with pytest.raises(WriteFailedError):
        campaigns.update(
            campaign.campaign_id,
            {"status": CampaignStatus.COMPLETED, "assignee_id": "missing-person"},
        )

    assert campaigns.get(campaign.campaign_id).status == CampaignStatus.PLANNED


def test_subscribers_see_every_write(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    seen: list[int] = []
    unsubscribe = campaigns.subscribe(CampaignFilter(), lambda rows: seen.append(len(rows)))

    campaign = lifecycle.create_campaign(campaigns, title="Promo", scheduled_at=WHEN).campaign
    lifecycle.set_note(campaigns, campaign.campaign_id, "hello")
    unsubscribe()
    lifecycle.delete_campaign(campaigns, campaign.campaign_id)

    assert seen == [0, 1, 1]


def test_failing_subscriber_does_not_lose_effects(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = lifecycle.create_campaign(campaigns, title="Promo", scheduled_at=WHEN).campaign
    seen: list[int] = []
    calls: list[int] = []

    def broken(rows) -> None:
        calls.append(len(rows))
        if len(calls) > 1:
            raise RuntimeError("listener failed")

    campaigns.subscribe(CampaignFilter(), broken)
    campaigns.subscribe(CampaignFilter(), lambda rows: seen.append(len(rows)))

    result = lifecycle.transition(campaigns, campaign.campaign_id, "completed")

    assert result.campaign.status == CampaignStatus.COMPLETED
    assert len(result.effects) == 1
    assert seen == [1, 1]
