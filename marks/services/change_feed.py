# marks/services/change_feed.py
# Redis pub/sub transport for the bookmark change feed.
# Events are table-level: every owner's inserts/deletes go to one channel.

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional

import redis.asyncio as aioredis
from pydantic import ValidationError as PayloadError

from marks.config import settings
from marks.schemas.bookmark import FeedEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[FeedEvent], None]

# Module-level client (lazy init), shared by the API process
_client: Any = None


def get_redis() -> aioredis.Redis:
    """Get or create the shared async Redis client."""
    global _client
    if _client is None:
        _client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


class RedisChangePublisher:
    """Publishes committed changes; used by the repository after each commit."""

    def __init__(self, client: aioredis.Redis, channel: str = settings.FEED_CHANNEL):
        self._client = client
        self._channel = channel

    async def publish(self, event: FeedEvent) -> None:
        receivers = await self._client.publish(self._channel, event.model_dump_json())
        logger.debug(f"published {event.kind} id={event.record_id} receivers={receivers}")


class RedisFeedChannel:
    """One pub/sub subscription plus the task reading from it."""

    def __init__(self, pubsub, channel: str, on_event: EventCallback):
        self._pubsub = pubsub
        self._channel = channel
        self._on_event = on_event
        self._subscribed = asyncio.Event()
        self._reader: Optional[asyncio.Task] = None
        self._closed = False

    async def start(self) -> None:
        await self._pubsub.subscribe(self._channel)
        self._reader = asyncio.create_task(self._read_loop(), name=f"feed-reader:{self._channel}")

    async def wait_subscribed(self) -> None:
        await self._subscribed.wait()

    async def _read_loop(self) -> None:
        try:
            async for message in self._pubsub.listen():
                kind = message.get("type")
                if kind == "subscribe":
                    self._subscribed.set()
                elif kind == "message":
                    self._dispatch(message.get("data"))
        except Exception as e:
            # no reconnect: the session keeps working without live updates
            logger.error(f"change feed reader stopped: {type(e).__name__}: {e}")

    def _dispatch(self, data: Any) -> None:
        try:
            event = FeedEvent.model_validate_json(data)
        except (PayloadError, TypeError) as e:
            logger.warning(f"skipping malformed feed payload: {e}")
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception(f"feed event handler failed kind={event.kind} id={event.record_id}")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
        try:
            await self._pubsub.unsubscribe(self._channel)
        finally:
            await self._pubsub.aclose()


class RedisChangeFeed:
    """ChangeFeed provider backed by Redis pub/sub."""

    def __init__(self, client: aioredis.Redis, channel: str = settings.FEED_CHANNEL):
        self._client = client
        self._channel = channel

    @classmethod
    def from_url(cls, url: str = settings.REDIS_URL, channel: str = settings.FEED_CHANNEL) -> "RedisChangeFeed":
        return cls(aioredis.from_url(url, decode_responses=True), channel)

    async def subscribe(self, on_event: EventCallback) -> RedisFeedChannel:
        channel = RedisFeedChannel(self._client.pubsub(), self._channel, on_event)
        await channel.start()
        return channel

    async def aclose(self) -> None:
        await self._client.aclose()
