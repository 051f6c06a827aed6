# marks/utils/formatting.py
# Display helpers for the presentation layer (bookmark rows and feed status)

"""
Presentation-layer helper API.

Nothing inside ``marks`` renders bookmarks; a UI built on ``BookmarkSession``
calls these to show each row (domain, favicon, relative age) and the feed
status label.
"""

from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import urlsplit

from marks.constants import FAVICON_URL_TEMPLATE, STATUS_LABELS


def display_domain(url: str) -> str:
    """Hostname without a leading ``www.``; the raw input if it does not parse."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return url
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host


def favicon_url(url: str) -> str | None:
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return FAVICON_URL_TEMPLATE.format(origin=f"{parts.scheme}://{parts.netloc}")


def time_ago(created_at: datetime, now: datetime | None = None) -> str:
    """Compact relative age used next to each row."""
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - created_at).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def status_label(status) -> str:
    """Indicator text for a feed status (enum member or its string value)."""
    key = getattr(status, "value", status)
    return STATUS_LABELS.get(str(key), STATUS_LABELS["connecting"])
