from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from camptrack.domain.models import EmailRequest, Notification, SideEffect
from camptrack.domain.stages import SideEffectKind
from camptrack.services.utils import utc_now_iso
from camptrack.store.sqlite import SqliteStore

logger = logging.getLogger(__name__)


@dataclass
class EffectDispatcher:
    """Hands lifecycle side effects to their destinations.

    Notifications land in the ``notifications`` table; email requests are
    appended to an ndjson outbox that the delivery service drains.
    """

    store: SqliteStore
    outbox_path: Path
    workspace: str
    enabled: bool = True

    def dispatch(self, effects: Iterable[SideEffect]) -> int:
        count = 0
        for effect in effects:
            if effect.kind == SideEffectKind.NOTIFICATION:
                self._store_notification(effect.payload)
            elif effect.kind == SideEffectKind.EMAIL:
                self._queue_email(effect.payload)
            count += 1
        return count

    def _store_notification(self, notification: Notification) -> None:
        self.store.execute(
            "INSERT INTO notifications (notification_id, title, message, kind, recipient_id, is_read, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(uuid4()),
                notification.title,
                notification.message,
                notification.kind.value,
                notification.recipient_id,
                0,
                utc_now_iso(),
            ),
        )

    def _queue_email(self, email: EmailRequest) -> None:
        if not self.enabled:
            logger.info("Email outbox disabled; dropping email to %s", email.to)
            return
        payload = {
            "ts": utc_now_iso(),
            "workspace": self.workspace,
            "to": email.to,
            "cc": email.cc,
            "subject": email.subject,
            "body": email.body,
            "fields": email.fields,
        }
        self.outbox_path.parent.mkdir(parents=True, exist_ok=True)
        with self.outbox_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload) + "\n")
        logger.debug("Queued email to %s", email.to)


def list_notifications(store: SqliteStore, recipient_id: str | None = None, limit: int = 20) -> list[dict]:
    params: list[object] = []
    where = ""
    if recipient_id:
        where = "WHERE recipient_id = ?"
        params.append(recipient_id)
    params.append(limit)
    rows = store.fetch_all(
        f"SELECT title, message, kind, recipient_id, is_read, created_at FROM notifications {where} "
        "ORDER BY created_at DESC LIMIT ?",
        params,
    )
    return [dict(row) for row in rows]
