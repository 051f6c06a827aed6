# marks/core/session.py
# One authenticated page view: seed, live feed, mutations, teardown

from __future__ import annotations

from typing import Optional

from marks import config
from marks.core.feed_subscription import ChangeFeedSubscription, FeedStatus
from marks.core.gateway import BookmarkGateway, ChangeFeed
from marks.core.mutation_submitter import MutationResult, MutationSubmitter
from marks.core.reconciliation_store import ReconciliationStore
from marks.errors import ServiceError
from marks.schemas.bookmark import Bookmark
from marks.utils.logger import log_exception, log_info


class BookmarkSession:
    """
    Facade handed to the presentation layer for one owner and one page view.

    Usage:
        async with BookmarkSession(user_id, gateway, feed) as session:
            result = await session.add_bookmark("example.com", "Example")
            for b in session.items:
                ...

    The store is seeded before the feed subscription starts. Gateway and
    feed are injected and owned by the caller; ``close()`` only releases
    the feed subscription and tears the store down.
    """

    def __init__(
        self,
        owner_id: str,
        gateway: BookmarkGateway,
        feed: ChangeFeed,
        subscribe_timeout: float = config.FEED_SUBSCRIBE_TIMEOUT,
    ):
        self.owner_id = owner_id
        self.store = ReconciliationStore(owner_id, gateway)
        self.submitter = MutationSubmitter(gateway, self.store)
        self.subscription = ChangeFeedSubscription(feed, self.store, subscribe_timeout)
        self._gateway = gateway
        self.load_error: Optional[ServiceError] = None
        self._opened = False

    # --- Read access ---

    @property
    def items(self) -> tuple[Bookmark, ...]:
        return self.store.items

    @property
    def status(self) -> FeedStatus:
        return self.subscription.status

    @property
    def in_flight_deletes(self) -> frozenset[str]:
        return self.store.in_flight_deletes

    @property
    def closed(self) -> bool:
        return self.store.closed

    # --- Lifecycle ---

    async def open(self) -> "BookmarkSession":
        if self._opened or self.closed:
            return self
        self._opened = True

        try:
            initial = await self._gateway.list_by_owner(self.owner_id)
        except ServiceError as e:
            # no retry: the list stays empty, the feed still starts
            self.load_error = e
            log_exception(e, f"BookmarkSession.open owner={self.owner_id}")
            initial = []
        self.store.seed(initial)

        await self.subscription.start()
        log_info(f"BookmarkSession opened owner={self.owner_id} status={self.status.value}")
        return self

    async def close(self) -> None:
        if self.closed:
            return
        await self.subscription.close()
        self.store.teardown()
        log_info(f"BookmarkSession closed owner={self.owner_id}")

    async def __aenter__(self) -> "BookmarkSession":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- User intents ---

    async def add_bookmark(self, url: str, title: str) -> MutationResult:
        result = await self.submitter.create(url, title, self.owner_id)
        # the request may outlive the page view
        if result.ok and not self.closed:
            self.store.apply_local_create(result.bookmark)
        return result

    async def remove_bookmark(self, bookmark_id: str) -> MutationResult:
        if self.closed:
            return MutationResult(ok=False, error=ServiceError("Session is closed"))
        return await self.submitter.delete(bookmark_id, self.owner_id)
