"""Unit tests for client-side timeline accumulation."""

import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from feed_timeline.client.merge_engine import TimelineMergeEngine
from feed_timeline.client.session import TimelineSession
from feed_timeline.errors import InvalidArgument
from feed_timeline.models.schemas import ArticleItem, ArticleState
from feed_timeline.storage.database import create_feed
from tests.conftest import OWNER


def item(link, day=None, feed_id=1):
    published = datetime(2024, 1, day, tzinfo=timezone.utc) if day else None
    return ArticleItem(feed_id=feed_id, feed_title="Feed", title=link.upper(), link=link, published=published)


class TestTimelineMergeEngine:
    """Tests for merge-by-link accumulation."""

    def test_appends_new_items_in_server_order(self):
        engine = TimelineMergeEngine(page_size=3)

        appended = engine.merge_page([item("a"), item("b"), item("c")])

        assert [e.link for e in appended] == ["a", "b", "c"]
        assert [e.link for e in engine.entries] == ["a", "b", "c"]
        assert engine.next_page == 2
        assert engine.has_more is True

    def test_known_links_update_in_place(self):
        engine = TimelineMergeEngine(page_size=2)
        engine.merge_page([item("a"), item("b")])

        appended = engine.merge_page(
            [item("b"), item("c")],
            {"b": ArticleState(read=True, saved=True)},
        )

        assert [e.link for e in appended] == ["c"]
        assert [e.link for e in engine.entries] == ["a", "b", "c"]
        assert engine.get("b").read is True
        assert engine.get("b").saved is True

    def test_absent_state_defaults_to_unread_unsaved(self):
        engine = TimelineMergeEngine(page_size=2)

        engine.merge_page([item("a"), item("b")], {"a": ArticleState(read=True)})

        assert (engine.get("a").read, engine.get("a").saved) == (True, False)
        assert (engine.get("b").read, engine.get("b").saved) == (False, False)

    def test_short_page_marks_exhaustion(self):
        engine = TimelineMergeEngine(page_size=3)
        engine.merge_page([item("a"), item("b"), item("c")])

        engine.merge_page([item("d")])

        assert engine.has_more is False

    def test_reset_starts_over(self):
        engine = TimelineMergeEngine(page_size=3)
        engine.merge_page([item("a")])

        engine.reset()

        assert len(engine) == 0
        assert engine.next_page == 1
        assert engine.has_more is True

    def test_overlay_refreshes_without_reordering(self):
        engine = TimelineMergeEngine(page_size=3)
        engine.merge_page([item("a"), item("b"), item("c")], {"a": ArticleState(read=True)})

        engine.overlay_state({"c": ArticleState(saved=True)})

        assert [e.link for e in engine.entries] == ["a", "b", "c"]
        assert engine.get("a").read is True
        assert engine.get("c").saved is True

    def test_overlay_can_reset_missing(self):
        engine = TimelineMergeEngine(page_size=3)
        engine.merge_page([item("a")], {"a": ArticleState(read=True, saved=True)})

        engine.overlay_state({}, reset_missing=True)

        assert (engine.get("a").read, engine.get("a").saved) == (False, False)

    def test_empty_links_are_kept_but_not_deduplicated(self):
        engine = TimelineMergeEngine(page_size=5)

        engine.merge_page([item(""), item(""), item("a")])

        assert len(engine) == 3
        assert engine.links == ["a"]
        assert "" not in engine

    def test_duplicate_within_page_is_held_once(self):
        engine = TimelineMergeEngine(page_size=5)

        engine.merge_page([item("a", feed_id=1), item("a", feed_id=2)])

        assert len(engine) == 1
        assert engine.get("a").feed_id == 1

    def test_drop(self):
        engine = TimelineMergeEngine(page_size=5)
        engine.merge_page([item("a"), item("b")])

        assert engine.drop("a") is True
        assert engine.drop("a") is False
        assert [e.link for e in engine.entries] == ["b"]

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            TimelineMergeEngine(page_size=0)


def rss(*links_and_days):
    items = "".join(
        f"<item><title>{link}</title><link>{link}</link>"
        f"<pubDate>{day:02d} Jan 2024 00:00:00 GMT</pubDate></item>"
        for link, day in links_and_days
    )
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel><title>F</title>'
        f"{items}</channel></rss>"
    ).encode("utf-8")


@pytest.fixture
async def single_feed(in_memory_db):
    """One stored feed whose payload each test sets via single_feed["body"]."""
    await create_feed(OWNER, "https://a.example/feed", "A")
    payload = {}

    async def fake_fetch(url, client=None, timeout=None):
        return payload["body"]

    with patch("feed_timeline.services.aggregator.fetch_feed", side_effect=fake_fetch):
        yield payload


@pytest.mark.anyio
class TestTimelineSession:
    """Tests driving aggregation and state through a session."""

    async def test_infinite_scroll_until_exhausted(self, single_feed):
        single_feed["body"] = rss(("a", 5), ("b", 4), ("c", 3))
        session = TimelineSession(OWNER, page_size=2)

        assert [e.link for e in await session.load_more()] == ["a", "b"]
        assert [e.link for e in await session.load_more()] == ["c"]
        assert session.has_more is False
        assert await session.load_more() == []
        assert [e.link for e in session.entries] == ["a", "b", "c"]

        await session.refresh()
        assert [e.link for e in session.entries] == ["a", "b"]
        assert session.has_more is True

    async def test_state_changes_refresh_whole_list(self, single_feed):
        single_feed["body"] = rss(("a", 5), ("b", 4), ("c", 3))
        session = TimelineSession(OWNER, page_size=2)
        await session.load_more()
        await session.load_more()

        await session.toggle_saved("c")
        await session.set_read("a")

        assert [e.link for e in session.entries] == ["a", "b", "c"]
        assert session.engine.get("c").saved is True
        assert session.engine.get("a").read is True
        assert session.engine.get("b").read is False

        saved = await session.load_saved()
        assert [a.link for a in saved] == ["c"]
        assert session.engine.saved == saved

        await session.toggle_saved("c")
        assert session.engine.get("c").saved is False

    async def test_new_page_picks_up_stored_state(self, single_feed):
        single_feed["body"] = rss(("a", 5), ("b", 4), ("c", 3))
        session = TimelineSession(OWNER, page_size=2)
        await session.load_more()
        await session.toggle_read("b")

        other = TimelineSession(OWNER, page_size=5)
        await other.load_more()

        assert other.engine.get("b").read is True
        assert other.engine.get("a").read is False

    async def test_remove_drops_locally_and_from_timeline(self, single_feed):
        single_feed["body"] = rss(("a", 5), ("b", 4))
        session = TimelineSession(OWNER, page_size=5)
        await session.load_more()

        await session.remove("a")
        assert [e.link for e in session.entries] == ["b"]

        await session.refresh()
        assert [e.link for e in session.entries] == ["b"]

    async def test_state_action_on_unknown_link(self, single_feed):
        single_feed["body"] = rss(("a", 5))
        session = TimelineSession(OWNER, page_size=2)

        with pytest.raises(InvalidArgument):
            await session.toggle_read("missing")
