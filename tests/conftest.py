# tests/conftest.py
# In-memory stand-ins for the persistence gateway and the change feed.
# - FakeGateway records calls and can be told to fail per operation.
# - FakeFeed hands out channels whose acknowledgement can be held back.

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from marks.errors import ServiceError
from marks.schemas.bookmark import Bookmark, FeedEvent

OWNER = "user-1"
BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def build_bookmark(bookmark_id: str, owner_id: str = OWNER, minutes: int = 0,
                   title: str | None = None, url: str | None = None) -> Bookmark:
    """Bookmark created ``minutes`` after BASE_TIME (larger = newer)."""
    return Bookmark(
        id=bookmark_id,
        user_id=owner_id,
        url=url or f"https://{bookmark_id}.example.com",
        title=title or f"Bookmark {bookmark_id}",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class FakeGateway:
    def __init__(self, rows=None):
        self.rows: list[Bookmark] = list(rows or [])
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._counter = 0

    async def list_by_owner(self, owner_id):
        self.calls.append(("list", owner_id))
        if "list" in self.fail_on:
            raise ServiceError("list failed")
        mine = [b for b in self.rows if b.owner_id == owner_id]
        return sorted(mine, key=lambda b: b.created_at, reverse=True)

    async def create(self, owner_id, url, title):
        self.calls.append(("create", owner_id, url, title))
        if "create" in self.fail_on:
            raise ServiceError("create failed")
        self._counter += 1
        bookmark = Bookmark(
            id=f"new-{self._counter}",
            user_id=owner_id,
            url=url,
            title=title,
            created_at=BASE_TIME + timedelta(days=1, minutes=self._counter),
        )
        self.rows.append(bookmark)
        return bookmark

    async def delete(self, bookmark_id, owner_id):
        self.calls.append(("delete", bookmark_id, owner_id))
        if "delete" in self.fail_on:
            raise ServiceError("delete failed")
        self.rows = [b for b in self.rows if not (b.id == bookmark_id and b.owner_id == owner_id)]

    def call_names(self):
        return [c[0] for c in self.calls]


class FakeChannel:
    def __init__(self, acknowledged: bool = True):
        self._ack = asyncio.Event()
        if acknowledged:
            self._ack.set()
        self.close_calls = 0

    def acknowledge(self):
        self._ack.set()

    async def wait_subscribed(self):
        await self._ack.wait()

    async def close(self):
        self.close_calls += 1

    @property
    def closed(self):
        return self.close_calls > 0


class FakeFeed:
    def __init__(self, acknowledged: bool = True, fail_with: Exception | None = None):
        self.acknowledged = acknowledged
        self.fail_with = fail_with
        self.channel: FakeChannel | None = None
        self._on_event = None

    async def subscribe(self, on_event):
        if self.fail_with is not None:
            raise self.fail_with
        self._on_event = on_event
        self.channel = FakeChannel(self.acknowledged)
        return self.channel

    def emit_insert(self, bookmark: Bookmark):
        self._on_event(FeedEvent.inserted(bookmark))

    def emit_delete(self, bookmark_id: str):
        self._on_event(FeedEvent.deleted(bookmark_id))


@pytest.fixture
def make_bookmark():
    return build_bookmark


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def feed():
    return FakeFeed()
