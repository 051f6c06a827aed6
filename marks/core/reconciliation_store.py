# marks/core/reconciliation_store.py
# In-memory view of one owner's bookmarks for a single client context.
# Merges the initial load, local optimistic mutations and change-feed events.

from __future__ import annotations

import logging
from typing import Callable, Iterable

from marks.constants import FEED_KIND_DELETE, FEED_KIND_INSERT
from marks.core.gateway import BookmarkGateway
from marks.errors import ServiceError
from marks.schemas.bookmark import Bookmark
from marks.utils.logger import log_exception, log_info

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def _unique_by_id(bookmarks: Iterable[Bookmark]) -> list[Bookmark]:
    seen: set[str] = set()
    out: list[Bookmark] = []
    for b in bookmarks:
        if b.id in seen:
            continue
        seen.add(b.id)
        out.append(b)
    return out


class ReconciliationStore:
    """
    Single source of truth for the visible bookmark list.

    Invariants:
    - ``items`` is newest first and never holds two entries with the same id.
    - an id enters ``pending_local_ids`` only when this store applied the
      matching create/delete locally; it leaves when the feed echo for it
      is suppressed (or on rollback). Marks whose echo never arrives stay.

    All entry points are synchronous except the ones that re-fetch from the
    gateway, so they may be called in any interleaving on one event loop.
    After ``teardown()`` every entry point is a no-op.
    """

    def __init__(self, owner_id: str, gateway: BookmarkGateway | None = None):
        self.owner_id = owner_id
        self._gateway = gateway
        self._items: list[Bookmark] = []
        self._pending_local: set[str] = set()
        self._in_flight_deletes: set[str] = set()
        self._listeners: list[Listener] = []
        self._closed = False

    # --- Read access ---

    @property
    def items(self) -> tuple[Bookmark, ...]:
        return tuple(self._items)

    @property
    def pending_local_ids(self) -> frozenset[str]:
        return frozenset(self._pending_local)

    @property
    def in_flight_deletes(self) -> frozenset[str]:
        return frozenset(self._in_flight_deletes)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_deleting(self, bookmark_id: str) -> bool:
        return bookmark_id in self._in_flight_deletes

    def get(self, bookmark_id: str) -> Bookmark | None:
        idx = self._index_of(bookmark_id)
        return self._items[idx] if idx is not None else None

    # --- Change listeners (render hook) ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every visible change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                # a broken renderer must not corrupt reconciliation
                logger.exception("store listener failed")

    # --- Initial load ---

    def seed(self, initial_items: Iterable[Bookmark]) -> None:
        """Replace ``items`` wholesale with a list-by-owner result."""
        if self._closed:
            return
        self._items = _unique_by_id(initial_items)
        log_info(f"ReconciliationStore: seeded {len(self._items)} bookmarks for owner={self.owner_id}")
        self._notify()

    # --- Local optimistic mutations ---

    def apply_local_create(self, bookmark: Bookmark) -> bool:
        """Prepend a confirmed record and mark it pending-local. No-op if already listed."""
        if self._closed or self._index_of(bookmark.id) is not None:
            return False
        self._items.insert(0, bookmark)
        self._pending_local.add(bookmark.id)
        self._notify()
        return True

    def apply_local_delete(self, bookmark_id: str) -> Bookmark | None:
        """Remove ``bookmark_id`` ahead of the delete request; returns the removed row."""
        if self._closed:
            return None
        removed = None
        idx = self._index_of(bookmark_id)
        if idx is not None:
            removed = self._items.pop(idx)
            self._pending_local.add(bookmark_id)
        self._in_flight_deletes.add(bookmark_id)
        self._notify()
        return removed

    def rollback_create(self, bookmark_id: str) -> None:
        if self._closed:
            return
        idx = self._index_of(bookmark_id)
        if idx is not None:
            self._items.pop(idx)
        self._pending_local.discard(bookmark_id)
        logger.info(f"rolled back local create id={bookmark_id}")
        self._notify()

    def settle_delete(self, bookmark_id: str) -> None:
        """Delete request finished; the row is no longer outstanding."""
        if self._closed or bookmark_id not in self._in_flight_deletes:
            return
        self._in_flight_deletes.discard(bookmark_id)
        self._notify()

    async def rollback_delete(self, bookmark: Bookmark) -> None:
        """
        Put back a bookmark whose delete failed, then re-sync the whole list.

        The local copy is only a stopgap until the re-fetch lands; the id
        stays in ``in_flight_deletes`` until the re-sync completes.
        """
        if self._closed:
            return
        if self._index_of(bookmark.id) is None:
            self._items.insert(self._insert_position(bookmark), bookmark)
        self._pending_local.discard(bookmark.id)
        logger.info(f"rolled back local delete id={bookmark.id}")
        self._notify()
        try:
            await self.resync()
        finally:
            if not self._closed:
                self._in_flight_deletes.discard(bookmark.id)
                self._notify()

    async def resync(self) -> bool:
        """
        Rebuild ``items`` from a fresh list-by-owner result. False if it failed.

        The fetched list may predate mutations applied while it was in
        flight, so those are merged back in: rows removed meanwhile (or
        awaiting their delete echo) stay gone, and rows added meanwhile
        (or still awaiting their create echo) stay listed.
        """
        if self._gateway is None:
            logger.warning("resync requested without a gateway")
            return False
        listed_before = {b.id for b in self._items}
        try:
            fresh = await self._gateway.list_by_owner(self.owner_id)
        except ServiceError as e:
            log_exception(e, f"ReconciliationStore.resync owner={self.owner_id}")
            return False
        if self._closed:
            return False

        listed_now = {b.id for b in self._items}
        gone = (listed_before | self._pending_local | self._in_flight_deletes) - listed_now
        merged = [b for b in _unique_by_id(fresh) if b.id not in gone]
        merged_ids = {b.id for b in merged}
        kept = [
            b for b in self._items
            if b.id not in merged_ids and (b.id not in listed_before or b.id in self._pending_local)
        ]
        self._items = kept + merged
        self._notify()
        return True

    # --- Remote feed ---

    def on_feed_event(self, kind: str, bookmark_or_id: Bookmark | str) -> bool:
        """
        Apply one change-feed event; returns True if ``items`` changed.

        Echoes of this store's own mutations are suppressed (clearing the
        mark). Inserts for other owners are dropped. Deletes carry only an
        id, so once not an echo they are applied without an owner check.
        """
        if self._closed:
            return False

        if kind == FEED_KIND_INSERT:
            bookmark = bookmark_or_id
            if bookmark.id in self._pending_local:
                self._pending_local.discard(bookmark.id)
                logger.debug(f"suppressed insert echo id={bookmark.id}")
                return False
            if bookmark.owner_id != self.owner_id:
                logger.debug(f"dropped insert for foreign owner id={bookmark.id}")
                return False
            if self._index_of(bookmark.id) is not None:
                return False
            self._items.insert(0, bookmark)
            logger.info(f"applied remote insert id={bookmark.id}")
            self._notify()
            return True

        if kind == FEED_KIND_DELETE:
            bookmark_id = bookmark_or_id if isinstance(bookmark_or_id, str) else bookmark_or_id.id
            if bookmark_id in self._pending_local:
                self._pending_local.discard(bookmark_id)
                logger.debug(f"suppressed delete echo id={bookmark_id}")
                return False
            idx = self._index_of(bookmark_id)
            if idx is None:
                return False
            self._items.pop(idx)
            logger.info(f"applied remote delete id={bookmark_id}")
            self._notify()
            return True

        logger.warning(f"ignored feed event of unknown kind={kind!r}")
        return False

    def teardown(self) -> None:
        self._closed = True
        self._listeners.clear()

    # --- Helpers (private) ---

    def _index_of(self, bookmark_id: str) -> int | None:
        for idx, b in enumerate(self._items):
            if b.id == bookmark_id:
                return idx
        return None

    def _insert_position(self, bookmark: Bookmark) -> int:
        for idx, b in enumerate(self._items):
            if b.created_at < bookmark.created_at:
                return idx
        return len(self._items)
