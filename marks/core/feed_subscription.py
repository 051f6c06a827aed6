# marks/core/feed_subscription.py
# Lifecycle of one change-feed subscription feeding a ReconciliationStore

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from marks import config
from marks.constants import FEED_KIND_INSERT
from marks.core.gateway import ChangeFeed, FeedChannel
from marks.core.reconciliation_store import ReconciliationStore
from marks.errors import FeedError
from marks.schemas.bookmark import FeedEvent
from marks.utils.logger import log_exception, log_info

logger = logging.getLogger(__name__)


class FeedStatus(str, Enum):
    """Subscription health as shown to the user."""
    CONNECTING = "connecting"  # waiting for the provider acknowledgement
    CONNECTED = "connected"    # acknowledged, events flowing
    ERROR = "error"            # failed or timed out; stays here until teardown


StatusListener = Callable[[FeedStatus], None]


class ChangeFeedSubscription:
    """
    Subscribes once to the unfiltered change feed and translates raw events
    into ``ReconciliationStore.on_feed_event`` calls.

    States: CONNECTING -> CONNECTED, or CONNECTING -> ERROR. Both outcomes
    are stable; there is no automatic reconnect. Failures are recorded in
    ``error`` and never raised to the caller. ``close()`` must be called at
    the end of the session to release the subscription with the provider.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        store: ReconciliationStore,
        subscribe_timeout: float = config.FEED_SUBSCRIBE_TIMEOUT,
    ):
        self._feed = feed
        self._store = store
        self._timeout = subscribe_timeout
        self._status = FeedStatus.CONNECTING
        self._channel: Optional[FeedChannel] = None
        self._error: Optional[FeedError] = None
        self._listeners: list[StatusListener] = []
        self._started = False
        self._closed = False

    @property
    def status(self) -> FeedStatus:
        return self._status

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def error(self) -> Optional[FeedError]:
        return self._error

    @property
    def closed(self) -> bool:
        return self._closed

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition_to(self, new_status: FeedStatus) -> None:
        if self._status == new_status:
            return
        logger.info(f"Change feed: {self._status.value} -> {new_status.value}")
        self._status = new_status
        for listener in list(self._listeners):
            try:
                listener(new_status)
            except Exception:
                logger.exception("feed status listener failed")

    async def start(self) -> FeedStatus:
        """Subscribe and wait for the acknowledgement (bounded by the timeout)."""
        if self._started or self._closed:
            return self._status
        self._started = True

        try:
            await asyncio.wait_for(self._connect(), timeout=self._timeout)
        except asyncio.TimeoutError:
            self._fail(FeedError(
                "Change feed subscription timed out",
                details={"timeout": self._timeout},
            ))
        except Exception as e:
            # provider failures of any kind end in ERROR; writes keep working
            self._fail(FeedError(
                f"Change feed subscription failed: {e}",
                details={"type": type(e).__name__},
            ))
        else:
            if not self._closed:
                self._transition_to(FeedStatus.CONNECTED)
                log_info(f"Change feed connected for owner={self._store.owner_id}")
        if self._closed and self._channel is not None:
            # torn down while the subscribe call was still pending
            channel, self._channel = self._channel, None
            await self._release(channel)
        return self._status

    async def _connect(self) -> None:
        self._channel = await self._feed.subscribe(self._handle_event)
        await self._channel.wait_subscribed()

    def _fail(self, error: FeedError) -> None:
        self._error = error
        log_exception(error, f"ChangeFeedSubscription owner={self._store.owner_id}")
        if not self._closed:
            self._transition_to(FeedStatus.ERROR)

    def _handle_event(self, event: FeedEvent) -> None:
        if self._closed:
            return
        logger.debug(f"feed event received kind={event.kind} id={event.record_id}")
        if event.kind == FEED_KIND_INSERT:
            self._store.on_feed_event(event.kind, event.bookmark())
        else:
            self._store.on_feed_event(event.kind, event.record_id)

    async def close(self) -> None:
        """Release the subscription with the provider. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        channel, self._channel = self._channel, None
        if channel is not None:
            await self._release(channel)

    async def _release(self, channel: FeedChannel) -> None:
        log_info("Change feed: cleaning up channel")
        try:
            await channel.close()
        except Exception as e:
            log_exception(e, "ChangeFeedSubscription.close")
