# tests/unit/test_session.py
# End-to-end flows for one page view, including the cross-tab scenarios.

import pytest

from marks import config
from marks.core.feed_subscription import FeedStatus
from marks.core.session import BookmarkSession
from marks.errors import ServiceError

OWNER = "user-1"


def ids(session):
    return [b.id for b in session.items]


class TestOpen:

    @pytest.mark.asyncio
    async def test_open_seeds_then_subscribes(self, gateway, feed, make_bookmark):
        gateway.rows = [make_bookmark("a", minutes=1), make_bookmark("b", minutes=2)]

        async with BookmarkSession(OWNER, gateway, feed) as session:
            assert ids(session) == ["b", "a"]
            assert session.status == FeedStatus.CONNECTED
            assert session.load_error is None

    @pytest.mark.asyncio
    async def test_initial_load_failure_leaves_empty_list(self, gateway, feed):
        gateway.fail_on.add("list")

        async with BookmarkSession(OWNER, gateway, feed) as session:
            assert ids(session) == []
            assert isinstance(session.load_error, ServiceError)
            assert session.status == FeedStatus.CONNECTED

    @pytest.mark.asyncio
    async def test_feed_failure_keeps_writes_working(self, gateway, feed):
        feed.fail_with = ConnectionError("refused")

        async with BookmarkSession(OWNER, gateway, feed) as session:
            assert session.status == FeedStatus.ERROR
            result = await session.add_bookmark("example.com", "Example")

            assert result.ok
            assert ids(session) == [result.bookmark.id]

    def test_subscribe_timeout_defaults_to_setting(self, gateway, feed):
        session = BookmarkSession(OWNER, gateway, feed)

        assert session.subscription.timeout == config.FEED_SUBSCRIBE_TIMEOUT

    def test_subscribe_timeout_can_be_overridden(self, gateway, feed):
        session = BookmarkSession(OWNER, gateway, feed, subscribe_timeout=0.5)

        assert session.subscription.timeout == 0.5

    @pytest.mark.asyncio
    async def test_only_owner_rows_are_loaded(self, gateway, feed, make_bookmark):
        gateway.rows = [make_bookmark("a"), make_bookmark("z", owner_id="other-user")]

        async with BookmarkSession(OWNER, gateway, feed) as session:
            assert ids(session) == ["a"]


class TestMutations:

    @pytest.mark.asyncio
    async def test_add_then_echo_shows_row_once(self, gateway, feed):
        async with BookmarkSession(OWNER, gateway, feed) as session:
            result = await session.add_bookmark("example.com", "Example")
            feed.emit_insert(result.bookmark)

            assert ids(session) == [result.bookmark.id]
            assert session.store.pending_local_ids == frozenset()

    @pytest.mark.asyncio
    async def test_echo_before_response_shows_row_once(self, gateway, feed):
        async with BookmarkSession(OWNER, gateway, feed) as session:
            original_create = gateway.create

            async def create_and_echo(owner_id, url, title):
                bookmark = await original_create(owner_id, url, title)
                feed.emit_insert(bookmark)
                return bookmark

            gateway.create = create_and_echo

            result = await session.add_bookmark("example.com", "Example")

            assert ids(session) == [result.bookmark.id]
            assert session.store.pending_local_ids == frozenset()

    @pytest.mark.asyncio
    async def test_invalid_input_changes_nothing(self, gateway, feed):
        async with BookmarkSession(OWNER, gateway, feed) as session:
            result = await session.add_bookmark("not a url", "Title")

            assert not result.ok
            assert ids(session) == []
            assert "create" not in gateway.call_names()

    @pytest.mark.asyncio
    async def test_remove_then_echo(self, gateway, feed, make_bookmark):
        gateway.rows = [make_bookmark("a", minutes=1), make_bookmark("b")]

        async with BookmarkSession(OWNER, gateway, feed) as session:
            result = await session.remove_bookmark("a")
            feed.emit_delete("a")

            assert result.ok
            assert ids(session) == ["b"]
            assert session.in_flight_deletes == frozenset()

    @pytest.mark.asyncio
    async def test_failed_remove_restores_row(self, gateway, feed, make_bookmark):
        gateway.rows = [make_bookmark("a", minutes=1), make_bookmark("b")]
        gateway.fail_on.add("delete")

        async with BookmarkSession(OWNER, gateway, feed) as session:
            result = await session.remove_bookmark("a")

            assert not result.ok
            assert ids(session) == ["a", "b"]


class TestCrossTab:
    """Two sessions for the same owner sharing a gateway and a feed."""

    @pytest.mark.asyncio
    async def test_insert_from_other_tab_appears(self, gateway, feed, make_bookmark):
        gateway.rows = [make_bookmark("a")]

        async with BookmarkSession(OWNER, gateway, feed) as tab:
            # the other tab's create reaches this tab only through the feed
            other = await gateway.create(OWNER, "https://other.example.com", "Other")
            feed.emit_insert(other)

            assert ids(tab) == [other.id, "a"]

    @pytest.mark.asyncio
    async def test_delete_from_other_tab_disappears(self, gateway, feed, make_bookmark):
        gateway.rows = [make_bookmark("a", minutes=1), make_bookmark("b")]

        async with BookmarkSession(OWNER, gateway, feed) as tab:
            feed.emit_delete("a")

            assert ids(tab) == ["b"]

    @pytest.mark.asyncio
    async def test_foreign_owner_insert_is_not_shown(self, gateway, feed, make_bookmark):
        async with BookmarkSession(OWNER, gateway, feed) as tab:
            feed.emit_insert(make_bookmark("d", owner_id="other-user"))

            assert ids(tab) == []


class TestClose:

    @pytest.mark.asyncio
    async def test_close_releases_feed_and_freezes_store(self, gateway, feed, make_bookmark):
        session = BookmarkSession(OWNER, gateway, feed)
        await session.open()
        await session.close()
        await session.close()

        feed.emit_insert(make_bookmark("late"))

        assert session.closed
        assert feed.channel.close_calls == 1
        assert ids(session) == []

    @pytest.mark.asyncio
    async def test_remove_after_close_is_rejected(self, gateway, feed):
        session = BookmarkSession(OWNER, gateway, feed)
        await session.open()
        await session.close()

        result = await session.remove_bookmark("a")

        assert not result.ok
        assert "delete" not in gateway.call_names()

    @pytest.mark.asyncio
    async def test_add_after_close_does_not_touch_store(self, gateway, feed):
        session = BookmarkSession(OWNER, gateway, feed)
        await session.open()
        await session.close()

        result = await session.add_bookmark("example.com", "Example")

        assert result.ok
        assert ids(session) == []
