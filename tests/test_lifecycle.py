from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest

from camptrack.domain.rules import ValidationError
from camptrack.domain.stages import (
    CampaignStatus,
    Difficulty,
    HistoryAction,
    NotificationKind,
    SideEffectKind,
    Urgency,
)
from camptrack.services import lifecycle
from camptrack.store import directory
from camptrack.store.campaigns import CampaignStore, NotFoundError
from camptrack.store.sqlite import SqliteStore

WHEN = datetime(2026, 9, 14, 10, 0, tzinfo=UTC)


def _campaigns(tmp_path: Path) -> CampaignStore:
    store = SqliteStore(tmp_path / "test.sqlite")
    store.apply_schema()
    return CampaignStore(store)


def _create(campaigns: CampaignStore, **overrides):
    fields = {"title": "Autumn cashback", "scheduled_at": WHEN, "urgency": "high"}
    fields.update(overrides)
    return lifecycle.create_campaign(campaigns, **fields).campaign


def test_create_starts_planned_with_created_entry(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns, actor="ayse")

    assert campaign.status == CampaignStatus.PLANNED
    assert len(campaign.history) == 1
    entry = campaign.history.first
    assert entry.action == HistoryAction.CREATED
    assert entry.new_status == CampaignStatus.PLANNED
    assert entry.old_status is None
    assert entry.actor == "ayse"
    assert lifecycle.history_is_consistent(campaign)


def test_create_defaults_actor_to_system(tmp_path: Path) -> None:
    campaign = _create(_campaigns(tmp_path))
    assert campaign.history.first.actor == "System"


@pytest.mark.parametrize("overrides", [{"title": "  "}, {"scheduled_at": None}, {"urgency": "extreme"}])
def test_create_rejects_malformed_input(tmp_path: Path, overrides) -> None:
    campaigns = _campaigns(tmp_path)
    with pytest.raises(ValidationError):
        _create(campaigns, **overrides)
    assert campaigns.query() == []


def test_create_with_assignee_notifies_them(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    person = directory.add_person(campaigns.store, "Ahmet Yilmaz", "ahmet@example.com")
    result = lifecycle.create_campaign(
        campaigns, title="Card launch", scheduled_at=WHEN, assignee_id=person.person_id
    )
    assert len(result.effects) == 1
    assert result.effects[0].payload.recipient_id == person.person_id


def test_create_with_unknown_assignee(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    with pytest.raises(NotFoundError):
        _create(campaigns, assignee_id="ghost")
    assert campaigns.query() == []


def test_create_computes_report_due_date(tmp_path: Path) -> None:
    campaign = _create(_campaigns(tmp_path), requires_report=True)
    # 2026-09-14 + 30 days is Wednesday 2026-10-14.
    assert campaign.report_due_date == date(2026, 10, 14)


def test_transition_appends_history_and_notifies(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)

    result = lifecycle.transition(campaigns, campaign.campaign_id, "completed", actor="mehmet")

    updated = result.campaign
    assert updated.status == CampaignStatus.COMPLETED
    assert len(updated.history) == 2
    last = updated.history.last
    assert last.action == HistoryAction.STATUS_CHANGED
    assert last.old_status == CampaignStatus.PLANNED
    assert last.new_status == CampaignStatus.COMPLETED
    assert last.actor == "mehmet"
    assert lifecycle.history_is_consistent(updated)

    assert len(result.effects) == 1
    effect = result.effects[0]
    assert effect.kind == SideEffectKind.NOTIFICATION
    assert effect.payload.kind == NotificationKind.SUCCESS


@pytest.mark.parametrize(
    ("path", "kind"),
    [
        ([CampaignStatus.CANCELLED], NotificationKind.ALERT),
        ([CampaignStatus.COMPLETED, CampaignStatus.PLANNED], NotificationKind.WARNING),
        ([CampaignStatus.CANCELLED, CampaignStatus.PLANNED], NotificationKind.WARNING),
    ],
)
def test_notification_kind_follows_target_status(tmp_path: Path, path, kind) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    for status in path:
        result = lifecycle.transition(campaigns, campaign.campaign_id, status)
    assert result.effects[0].payload.kind == kind
    assert result.campaign.status == path[-1]
    assert lifecycle.history_is_consistent(result.campaign)


def test_same_status_transition_is_a_noop(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    first = lifecycle.transition(campaigns, campaign.campaign_id, CampaignStatus.CANCELLED)
    second = lifecycle.transition(campaigns, campaign.campaign_id, CampaignStatus.CANCELLED)

    assert len(second.campaign.history) == len(first.campaign.history) == 2
    assert second.effects == ()
    assert second.campaign.updated_at == first.campaign.updated_at


def test_completed_campaign_can_be_reopened(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    lifecycle.transition(campaigns, campaign.campaign_id, "completed")
    reopened = lifecycle.transition(campaigns, campaign.campaign_id, "planned").campaign

    assert reopened.status == CampaignStatus.PLANNED
    assert [entry.new_status for entry in reopened.history] == [
        CampaignStatus.PLANNED,
        CampaignStatus.COMPLETED,
        CampaignStatus.PLANNED,
    ]


def test_transition_on_missing_campaign(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        lifecycle.transition(_campaigns(tmp_path), "nope", "completed")


def test_history_value_is_not_mutated_by_transition(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    before = campaign.history
    lifecycle.transition(campaigns, campaign.campaign_id, "completed")
    assert len(before) == 1


def test_reassign_builds_notification_and_email(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    store = campaigns.store
    old = directory.add_person(store, "Ayse Demir", "ayse@example.com")
    new = directory.add_person(store, "Mehmet Oz", "mehmet@example.com")
    directory.add_department(store, "retail", "Retail Banking")
    campaign = _create(
        campaigns,
        urgency=Urgency.VERY_HIGH,
        difficulty=Difficulty.HARD,
        assignee_id=old.person_id,
        department_id="retail",
        description="<p>Push to <b>all</b> card holders</p>",
    )

    result = lifecycle.reassign(campaigns, campaign.campaign_id, new.person_id, cc="team@example.com")

    assert result.campaign.assignee_id == new.person_id
    assert len(result.campaign.history) == 1
    notification, email = result.effects
    assert notification.kind == SideEffectKind.NOTIFICATION
    assert notification.payload.recipient_id == new.person_id
    assert email.kind == SideEffectKind.EMAIL
    payload = email.payload
    assert payload.to == "mehmet@example.com"
    assert payload.cc == "team@example.com"
    assert payload.subject.startswith("URGENT: Autumn cashback")
    assert payload.fields["old_assignee"] == "Ayse Demir"
    assert payload.fields["new_assignee"] == "Mehmet Oz"
    assert payload.fields["urgency"] == "Very High"
    assert payload.fields["difficulty"] == "Hard"
    assert payload.fields["department"] == "Retail Banking"
    assert payload.fields["description"] == "Push to all card holders"
    assert payload.fields["reference"] == "#" + campaign.campaign_id[:6].upper()
    assert payload.fields["reference"] in payload.body


def test_reassign_subject_without_urgent_prefix(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    person = directory.add_person(campaigns.store, "Mehmet Oz", "mehmet@example.com")
    campaign = _create(campaigns, urgency="high")

    result = lifecycle.reassign(campaigns, campaign.campaign_id, person.person_id)

    email = result.effects[1].payload
    assert not email.subject.startswith("URGENT")
    assert email.fields["old_assignee"] == "Unknown user"
    assert email.fields["difficulty"] is None


def test_reassign_to_same_person_is_a_noop(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    person = directory.add_person(campaigns.store, "Mehmet Oz", "mehmet@example.com")
    campaign = _create(campaigns, assignee_id=person.person_id)

    result = lifecycle.reassign(campaigns, campaign.campaign_id, person.person_id)
    assert result.effects == ()


def test_reassign_to_unknown_person(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    with pytest.raises(NotFoundError):
        lifecycle.reassign(campaigns, campaign.campaign_id, "ghost")


def test_reschedule_keeps_original_date(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    lifecycle.reschedule(campaigns, campaign.campaign_id, WHEN + timedelta(days=2))
    moved = lifecycle.reschedule(campaigns, campaign.campaign_id, WHEN + timedelta(days=5)).campaign

    assert moved.scheduled_at == WHEN + timedelta(days=5)
    assert moved.original_date == WHEN
    assert len(moved.history) == 1


def test_delete_returns_notification(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    person = directory.add_person(campaigns.store, "Ayse Demir", "ayse@example.com")
    campaign = _create(campaigns, assignee_id=person.person_id)

    result = lifecycle.delete_campaign(campaigns, campaign.campaign_id)

    message = result.effects[0].payload.message
    assert "Autumn cashback" in message
    assert "Ayse Demir" in message
    assert result.effects[0].payload.kind == NotificationKind.ALERT
    with pytest.raises(NotFoundError):
        campaigns.get(campaign.campaign_id)


def test_delete_missing_campaign(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        lifecycle.delete_campaign(_campaigns(tmp_path), "nope")


def test_notes_do_not_touch_history(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)

    noted = lifecycle.set_note(campaigns, campaign.campaign_id, "  check banner sizes ").campaign
    assert noted.note == "check banner sizes"
    assert noted.history == campaign.history

    cleared = lifecycle.clear_note(campaigns, campaign.campaign_id)
    assert cleared.campaign.note is None
    assert cleared.effects == ()


def test_empty_note_is_rejected(tmp_path: Path) -> None:
    campaigns = _campaigns(tmp_path)
    campaign = _create(campaigns)
    with pytest.raises(ValidationError):
        lifecycle.set_note(campaigns, campaign.campaign_id, "")
