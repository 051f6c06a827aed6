# tests/unit/test_feed_subscription.py
# Subscription lifecycle: acknowledgement, timeout, provider failure, teardown.

import asyncio

import pytest

from marks.core.feed_subscription import ChangeFeedSubscription, FeedStatus
from marks.core.reconciliation_store import ReconciliationStore
from marks.errors import FeedError

OWNER = "user-1"


def ids(store):
    return [b.id for b in store.items]


async def wait_for_channel(feed):
    for _ in range(20):
        if feed.channel is not None:
            return feed.channel
        await asyncio.sleep(0)
    raise AssertionError("subscribe was never called")


@pytest.fixture
def store():
    return ReconciliationStore(OWNER)


class TestStart:

    @pytest.mark.asyncio
    async def test_starts_connecting(self, feed, store):
        sub = ChangeFeedSubscription(feed, store)
        assert sub.status == FeedStatus.CONNECTING

    @pytest.mark.asyncio
    async def test_acknowledged_subscription_is_connected(self, feed, store):
        sub = ChangeFeedSubscription(feed, store)

        status = await sub.start()

        assert status == FeedStatus.CONNECTED
        assert sub.error is None

    @pytest.mark.asyncio
    async def test_missing_acknowledgement_times_out_to_error(self, feed, store):
        feed.acknowledged = False
        sub = ChangeFeedSubscription(feed, store, subscribe_timeout=0.05)

        status = await sub.start()

        assert status == FeedStatus.ERROR
        assert isinstance(sub.error, FeedError)
        assert "timed out" in sub.error.message

    @pytest.mark.asyncio
    async def test_provider_failure_is_error_not_exception(self, feed, store):
        feed.fail_with = ConnectionError("refused")
        sub = ChangeFeedSubscription(feed, store)

        status = await sub.start()

        assert status == FeedStatus.ERROR
        assert sub.error.details["type"] == "ConnectionError"

    @pytest.mark.asyncio
    async def test_error_is_sticky(self, feed, store):
        feed.fail_with = ConnectionError("refused")
        sub = ChangeFeedSubscription(feed, store)
        await sub.start()

        feed.fail_with = None
        assert await sub.start() == FeedStatus.ERROR

    @pytest.mark.asyncio
    async def test_status_listener_sees_transitions(self, feed, store):
        seen = []
        sub = ChangeFeedSubscription(feed, store)
        sub.on_status_change(seen.append)

        await sub.start()

        assert seen == [FeedStatus.CONNECTED]

    @pytest.mark.asyncio
    async def test_late_acknowledgement_connects(self, feed, store):
        feed.acknowledged = False
        sub = ChangeFeedSubscription(feed, store, subscribe_timeout=1.0)

        task = asyncio.create_task(sub.start())
        channel = await wait_for_channel(feed)
        assert sub.status == FeedStatus.CONNECTING
        channel.acknowledge()

        assert await task == FeedStatus.CONNECTED


class TestEvents:

    @pytest.mark.asyncio
    async def test_events_are_routed_to_store(self, feed, store, make_bookmark):
        store.seed([make_bookmark("a")])
        sub = ChangeFeedSubscription(feed, store)
        await sub.start()

        feed.emit_insert(make_bookmark("b", minutes=5))
        feed.emit_insert(make_bookmark("x", owner_id="other-user"))
        feed.emit_delete("a")

        assert ids(store) == ["b"]

    @pytest.mark.asyncio
    async def test_events_after_close_are_ignored(self, feed, store, make_bookmark):
        sub = ChangeFeedSubscription(feed, store)
        await sub.start()
        await sub.close()

        feed.emit_insert(make_bookmark("b"))

        assert ids(store) == []


class TestClose:

    @pytest.mark.asyncio
    async def test_close_releases_channel_once(self, feed, store):
        sub = ChangeFeedSubscription(feed, store)
        await sub.start()

        await sub.close()
        await sub.close()

        assert sub.closed
        assert feed.channel.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_after_timeout_releases_channel(self, feed, store):
        feed.acknowledged = False
        sub = ChangeFeedSubscription(feed, store, subscribe_timeout=0.05)
        await sub.start()

        await sub.close()

        assert feed.channel.closed

    @pytest.mark.asyncio
    async def test_close_without_start_is_safe(self, feed, store):
        sub = ChangeFeedSubscription(feed, store)

        await sub.close()

        assert feed.channel is None
        assert await sub.start() == FeedStatus.CONNECTING

    @pytest.mark.asyncio
    async def test_close_during_pending_start_releases_channel(self, feed, store):
        feed.acknowledged = False
        sub = ChangeFeedSubscription(feed, store, subscribe_timeout=1.0)

        task = asyncio.create_task(sub.start())
        channel = await wait_for_channel(feed)
        await sub.close()
        channel.acknowledge()
        await task

        assert feed.channel.close_calls == 1
        assert sub.status == FeedStatus.CONNECTING

    @pytest.mark.asyncio
    async def test_failing_channel_close_is_logged_not_raised(self, feed, store):
        sub = ChangeFeedSubscription(feed, store)
        await sub.start()

        async def broken_close():
            raise RuntimeError("socket gone")

        feed.channel.close = broken_close

        await sub.close()

        assert sub.closed
