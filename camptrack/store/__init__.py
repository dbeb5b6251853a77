from camptrack.store.campaigns import CampaignFilter, CampaignStore, NotFoundError, WriteFailedError
from camptrack.store.sqlite import SqliteSession, SqliteStore

__all__ = [
    "CampaignFilter",
    "CampaignStore",
    "NotFoundError",
    "SqliteSession",
    "SqliteStore",
    "WriteFailedError",
]
