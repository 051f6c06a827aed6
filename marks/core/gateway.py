# marks/core/gateway.py
# Interfaces of the two external collaborators the core depends on

from __future__ import annotations

from typing import Callable, Protocol

from marks.schemas.bookmark import Bookmark, FeedEvent


class BookmarkGateway(Protocol):
    """Durable bookmark store. Every method raises ServiceError on failure."""

    async def list_by_owner(self, owner_id: str) -> list[Bookmark]:
        """Return the owner's bookmarks, newest first."""
        ...

    async def create(self, owner_id: str, url: str, title: str) -> Bookmark:
        """Insert a bookmark; the server assigns ``id`` and ``created_at``."""
        ...

    async def delete(self, bookmark_id: str, owner_id: str) -> None:
        ...


class FeedChannel(Protocol):
    """Handle for one live subscription to the change feed."""

    async def wait_subscribed(self) -> None:
        """Resolve once the provider acknowledged the subscription."""
        ...

    async def close(self) -> None:
        """Release the subscription with the provider. Safe to call twice."""
        ...


class ChangeFeed(Protocol):
    """Table-level insert/delete events for every owner (no server-side filter)."""

    async def subscribe(self, on_event: Callable[[FeedEvent], None]) -> FeedChannel:
        ...
