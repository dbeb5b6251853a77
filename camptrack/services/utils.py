from __future__ import annotations

import html
import re
from datetime import UTC, datetime

TAG_RE = re.compile(r"<[^>]+>")
BREAK_RE = re.compile(r"<\s*(br|/p|/div|/li)\s*/?>", re.IGNORECASE)


def utc_now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def strip_html(text: str | None) -> str:
    """Reduce rich-text markup to plain text suitable for an email body."""
    if not text:
        return ""
    with_breaks = BREAK_RE.sub("\n", text)
    plain = html.unescape(TAG_RE.sub("", with_breaks))
    lines = [line.strip() for line in plain.splitlines()]
    return "\n".join(line for line in lines if line)
