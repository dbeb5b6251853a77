from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from camptrack.config import RankingConfig
from camptrack.domain import rules
from camptrack.domain.models import Campaign, ChampionSnapshot, Leaderboard
from camptrack.domain.stages import CampaignStatus
from camptrack.services.utils import utc_now
from camptrack.store.campaigns import CampaignFilter, CampaignStore, NotFoundError
from camptrack.store.sqlite import SqliteStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "monthly_champion"


def target_month(reference_date: date | datetime) -> str:
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()
    first_of_month = reference_date.replace(day=1)
    return (first_of_month - timedelta(days=1)).strftime("%Y-%m")


def month_bounds(month: str) -> tuple[datetime, datetime]:
    rules.parse_month(month, "month")
    year, mon = (int(part) for part in month.split("-"))
    start = datetime(year, mon, 1, tzinfo=UTC)
    next_start = datetime(year + 1, 1, 1, tzinfo=UTC) if mon == 12 else datetime(year, mon + 1, 1, tzinfo=UTC)
    return start, next_start - timedelta(seconds=1)


def completion_hours(campaign: Campaign) -> float | None:
    """Hours between the planned date and the latest entry into completed.

    A rescheduled campaign is measured from the date it was first planned for.
    """
    start = campaign.original_date or campaign.scheduled_at
    completed = campaign.history.latest_entry_into(CampaignStatus.COMPLETED)
    end = completed.timestamp if completed else campaign.updated_at
    if start is None or end is None:
        return None
    hours = (rules.as_utc(end) - rules.as_utc(start)).total_seconds() / 3600
    if hours < 0:
        return None
    return hours


def rank_month(
    campaigns: Iterable[Campaign],
    month: str,
    config: RankingConfig,
    computed_at: datetime,
) -> ChampionSnapshot:
    start, end = month_bounds(month)
    completed = [
        campaign
        for campaign in campaigns
        if start <= campaign.scheduled_at <= end
        and campaign.status == CampaignStatus.COMPLETED
        and campaign.assignee_id
    ]

    counts: dict[str, int] = defaultdict(int)
    hard_counts: dict[str, int] = defaultdict(int)
    durations: dict[str, list[float]] = defaultdict(list)
    for campaign in completed:
        counts[campaign.assignee_id] += 1
        if campaign.difficulty is not None and campaign.difficulty.is_hard:
            hard_counts[campaign.assignee_id] += 1
        hours = completion_hours(campaign)
        if hours is not None:
            durations[campaign.assignee_id].append(hours)

    averages = {
        person_id: sum(values) / len(values)
        for person_id, values in durations.items()
        if len(values) >= config.speed_threshold
    }

    snapshot = ChampionSnapshot(
        month=month,
        completions=_most(counts, config.completion_threshold),
        speed=_fastest(averages),
        difficulty=_most(hard_counts, config.difficulty_threshold),
        computed_at=computed_at,
    )
    logger.debug("Champion counts for %s: %s", month, dict(counts))
    return snapshot


def compute_champion(
    campaigns: CampaignStore,
    reference_date: date | datetime,
    force: bool = False,
    config: RankingConfig | None = None,
    now: datetime | None = None,
) -> ChampionSnapshot | None:
    config = config or RankingConfig()
    month = target_month(reference_date)
    store = campaigns.store

    if not force:
        cached = _load_snapshot(store)
        # Never recompute backwards: a newer cached month stays as it is.
        if cached is not None and cached.month >= month:
            logger.info("Champion for %s already cached (%s)", month, cached.month)
            return cached if cached.has_winners else None

    logger.info("Computing champion for %s (force=%s)", month, force)
    start, end = month_bounds(month)
    window = campaigns.query(CampaignFilter(start=start, end=end))
    snapshot = rank_month(window, month, config, now or utc_now())
    store.put_setting(SETTINGS_KEY, snapshot.to_dict(), snapshot.computed_at.isoformat())

    if snapshot.has_winners:
        logger.info(
            "Champions for %s: completions=%s speed=%s difficulty=%s",
            month,
            ",".join(snapshot.completions.winners) or "-",
            ",".join(snapshot.speed.winners) or "-",
            ",".join(snapshot.difficulty.winners) or "-",
        )
        return snapshot
    logger.info("No champion for %s", month)
    return None


def get_cached_snapshot(store: SqliteStore, month: str | None = None) -> ChampionSnapshot:
    snapshot = _load_snapshot(store)
    if snapshot is None:
        raise NotFoundError("No champion snapshot has been computed yet.")
    if month is not None and snapshot.month != rules.parse_month(month, "month"):
        raise NotFoundError(f"No champion snapshot cached for {month} (cached: {snapshot.month}).")
    return snapshot


def badges(snapshot: ChampionSnapshot | None, enabled: bool = True) -> dict[str, tuple[str, ...]]:
    if not enabled or snapshot is None:
        return {"trophy": (), "rocket": (), "power": ()}
    return {
        "trophy": snapshot.completions.winners,
        "rocket": snapshot.speed.winners,
        "power": snapshot.difficulty.winners,
    }


def _load_snapshot(store: SqliteStore) -> ChampionSnapshot | None:
    data = store.get_setting(SETTINGS_KEY)
    if not data:
        return None
    return ChampionSnapshot.from_dict(data)


def _most(counts: dict[str, int], threshold: int) -> Leaderboard:
    if not counts:
        return Leaderboard(value=0)
    best = max(counts.values())
    if best < threshold:
        return Leaderboard(value=best)
    # Ties are kept: every assignee on the best value wins.
    winners = tuple(sorted(person_id for person_id, count in counts.items() if count == best))
    return Leaderboard(value=best, winners=winners)


def _fastest(averages: dict[str, float]) -> Leaderboard:
    if not averages:
        return Leaderboard(value=None)
    best = min(averages.values())
    winners = tuple(sorted(person_id for person_id, avg in averages.items() if avg == best))
    return Leaderboard(value=best, winners=winners)
