# marks/repositories/bookmark_repository.py
# Repository for bookmark persistence (list / create / delete by owner)

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from marks.db.base import get_session, transaction
from marks.errors import NotFoundError, ServiceError
from marks.models.bookmarks_table import bookmarks
from marks.schemas.bookmark import Bookmark, FeedEvent
from marks.utils.logger import log_exception, log_info


def _generate_id() -> str:
    return uuid.uuid4().hex


class ChangePublisher(Protocol):
    async def publish(self, event: FeedEvent) -> None:
        ...


class BookmarkRepository:
    """Durable bookmark store; announces committed changes on the change feed."""

    def __init__(self, publisher: ChangePublisher | None = None, session_factory=get_session):
        self._publisher = publisher
        self._session_factory = session_factory

    async def list_by_owner(self, owner_id: str) -> list[Bookmark]:
        """Return the owner's bookmarks, newest first."""
        stmt = (
            select(bookmarks)
            .where(bookmarks.c.user_id == owner_id)
            .order_by(bookmarks.c.created_at.desc(), bookmarks.c.id.desc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.mappings().all()
        except SQLAlchemyError as e:
            log_exception(e, f"BookmarkRepository.list_by_owner owner={owner_id}")
            raise ServiceError("Could not load bookmarks") from e
        return [Bookmark.model_validate(dict(row)) for row in rows]

    async def create(self, owner_id: str, url: str, title: str) -> Bookmark:
        """Insert a row; id and created_at are assigned here, never by the client."""
        values = {
            "id": _generate_id(),
            "user_id": owner_id,
            "url": url,
            "title": title,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            async with transaction(self._session_factory) as session:
                await session.execute(insert(bookmarks).values(**values))
        except SQLAlchemyError as e:
            log_exception(e, f"BookmarkRepository.create owner={owner_id}")
            raise ServiceError("Could not save bookmark") from e

        bookmark = Bookmark.model_validate(values)
        log_info(f"BookmarkRepository: inserted id={bookmark.id} owner={owner_id}")
        await self._announce(FeedEvent.inserted(bookmark))
        return bookmark

    async def delete(self, bookmark_id: str, owner_id: str) -> None:
        """Delete scoped to (id, owner); NotFoundError when nothing matched."""
        stmt = (
            delete(bookmarks)
            .where(bookmarks.c.id == bookmark_id)
            .where(bookmarks.c.user_id == owner_id)
        )
        try:
            async with transaction(self._session_factory) as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            log_exception(e, f"BookmarkRepository.delete id={bookmark_id}")
            raise ServiceError("Could not delete bookmark") from e

        if result.rowcount == 0:
            raise NotFoundError("Bookmark not found", details={"id": bookmark_id})
        log_info(f"BookmarkRepository: deleted id={bookmark_id} owner={owner_id}")
        await self._announce(FeedEvent.deleted(bookmark_id))

    async def _announce(self, event: FeedEvent) -> None:
        if self._publisher is None:
            return
        try:
            await self._publisher.publish(event)
        except Exception as e:
            # the row is committed; a lost event is only recoverable by re-fetch
            log_exception(e, f"BookmarkRepository: publish {event.kind} id={event.record_id}")
