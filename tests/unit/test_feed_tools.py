"""Unit tests for the MCP tool functions and their decorators."""

import pytest
from types import SimpleNamespace
from typing import List
from unittest.mock import AsyncMock, patch

from feed_timeline.auth import resolve_owner_id
from feed_timeline.config import ServerConfig, load_config, set_config
from feed_timeline.decorators import exception_handler, tool_logger, type_converter
from feed_timeline.errors import (
    AuthorizationError,
    FetchError,
    FetchErrorKind,
    InvalidArgument,
    PersistenceError,
)
from feed_timeline.tools import feed_tools
from tests.conftest import OWNER


# Mark all tests as async
pytestmark = pytest.mark.anyio


def decorated(func):
    return exception_handler(tool_logger(type_converter(func), {}))


RSS = (
    b'<?xml version="1.0"?><rss version="2.0"><channel><title>Feed</title>'
    b"<item><title>One</title><link>https://a/1</link><pubDate>Tue, 02 Jan 2024 00:00:00 GMT</pubDate></item>"
    b"<item><title>Two</title><link>https://a/2</link></item>"
    b"</channel></rss>"
)


class TestFeedTools:
    """Tests for the tool functions."""

    async def test_add_and_list_feeds(self, in_memory_db):
        with patch(
            "feed_timeline.services.subscriptions.validate_and_fetch_title",
            AsyncMock(return_value=("Feed Title", RSS)),
        ):
            added = await feed_tools.add_feed("https://a.example/feed")

        assert added["success"] is True
        assert added["feed"]["title"] == "Feed Title"

        listed = await feed_tools.list_feeds()
        assert listed["count"] == 1
        assert listed["feeds"][0]["url"] == "https://a.example/feed"

    async def test_add_feed_explicit_title_wins(self, in_memory_db):
        with patch(
            "feed_timeline.services.subscriptions.validate_and_fetch_title",
            AsyncMock(return_value=("Feed Title", RSS)),
        ):
            added = await feed_tools.add_feed("https://a.example/feed", title="Mine")

        assert added["feed"]["title"] == "Mine"

    async def test_add_feed_validation_failure_is_surfaced(self, in_memory_db):
        error = FetchError(FetchErrorKind.BAD_STATUS, "https://a.example/feed", status_code=404)

        with patch(
            "feed_timeline.services.subscriptions.validate_and_fetch_title",
            AsyncMock(side_effect=error),
        ):
            result = await decorated(feed_tools.add_feed)(url="https://a.example/feed")

        assert result == {
            "success": False,
            "error": "Feed returned HTTP 404",
            "error_type": "fetch_error",
            "fetch_error_kind": "bad_status",
            "status_code": 404,
        }
        assert (await feed_tools.list_feeds())["count"] == 0

    async def test_remove_feed(self, in_memory_db):
        with patch(
            "feed_timeline.services.subscriptions.validate_and_fetch_title",
            AsyncMock(return_value=("Feed Title", RSS)),
        ):
            added = await feed_tools.add_feed("https://a.example/feed")

        removed = await feed_tools.remove_feed(added["feed"]["id"])
        missing = await feed_tools.remove_feed(added["feed"]["id"])

        assert removed["success"] is True
        assert missing["success"] is False

    async def test_list_articles_and_states(self, in_memory_db):
        with patch(
            "feed_timeline.services.subscriptions.validate_and_fetch_title",
            AsyncMock(return_value=("Feed Title", RSS)),
        ):
            added = await feed_tools.add_feed("https://a.example/feed")
        feed_id = added["feed"]["id"]

        with patch("feed_timeline.services.aggregator.fetch_feed", AsyncMock(return_value=RSS)):
            page = await feed_tools.list_articles(page=1, page_size=1)
            rest = await feed_tools.list_articles(page=2, page_size=1)

        assert page["count"] == 1
        assert page["total"] == 2
        assert page["has_more"] is True
        assert page["articles"][0]["link"] == "https://a/1"
        assert page["articles"][0]["published"] == "2024-01-02T00:00:00+00:00"
        assert rest["articles"][0]["published"] is None
        assert rest["has_more"] is False

        updated = await feed_tools.update_article_state(
            link="https://a/1",
            feed_id=feed_id,
            title="One",
            published="2024-01-02T00:00:00Z",
            read=True,
            saved=True,
        )
        assert updated["state"]["read"] is True

        states = await feed_tools.get_article_states(["https://a/1", "https://a/2"])
        assert states["states"] == {"https://a/1": {"read": True, "saved": True}}

        saved = await feed_tools.list_saved_articles()
        assert saved["count"] == 1
        assert saved["articles"][0]["feed_title"] == "Feed Title"
        assert saved["articles"][0]["published"] == "2024-01-02T00:00:00+00:00"

    async def test_saved_articles_order_across_utc_offsets(self, in_memory_db):
        await feed_tools.update_article_state(
            link="A", feed_id=1, published="2024-01-01T10:00:00+05:00", saved=True
        )
        await feed_tools.update_article_state(
            link="B", feed_id=1, published="2024-01-01T06:00:00Z", saved=True
        )
        await feed_tools.update_article_state(
            link="C", feed_id=1, published="2024-01-01T05:30:00", saved=True
        )

        saved = await feed_tools.list_saved_articles()

        assert [a["link"] for a in saved["articles"]] == ["B", "C", "A"]
        assert saved["articles"][2]["published"] == "2024-01-01T05:00:00+00:00"

    async def test_list_articles_uses_default_page_size(self, in_memory_db, server_config):
        aggregate = AsyncMock()
        aggregate.return_value = SimpleNamespace(
            items=[], page=1, page_size=server_config.default_page_size, total_items=0, failed_feeds=[]
        )

        with patch("feed_timeline.services.aggregator.aggregate", aggregate):
            await feed_tools.list_articles()

        aggregate.assert_awaited_once_with(OWNER, page=1, page_size=30)

    async def test_remove_article(self, in_memory_db):
        first = await feed_tools.remove_article("https://a/1")
        second = await feed_tools.remove_article("https://a/1")

        assert first == {"success": True}
        assert second == {"success": True}

    async def test_invalid_page_is_reported(self, in_memory_db):
        result = await decorated(feed_tools.list_articles)(page="0", page_size="10")

        assert result["success"] is False
        assert result["error_type"] == "invalid_argument"

    async def test_bad_published_date(self, in_memory_db):
        result = await decorated(feed_tools.update_article_state)(
            link="https://a/1", feed_id=1, published="yesterday"
        )

        assert result["success"] is False
        assert result["error_type"] == "invalid_argument"

    async def test_missing_feed_id(self, in_memory_db):
        result = await decorated(feed_tools.update_article_state)(link="https://a/1", feed_id=0)

        assert result["success"] is False
        assert "feed_id" in result["error"]

    async def test_no_owner_is_unauthorized(self, in_memory_db):
        set_config(ServerConfig(owner_id=""))

        result = await decorated(feed_tools.list_feeds)()

        assert result["success"] is False
        assert result["error_type"] == "unauthorized"


class TestDecorators:
    """Tests for the tool decorator chain."""

    async def test_type_converter_coerces_strings(self):
        async def tool(page: int, ratio: float, flag: bool, links: List[str], name: str = ""):
            return page, ratio, flag, links, name

        result = await type_converter(tool)(
            page="3", ratio="0.5", flag="true", links='["a", "b"]', name="x"
        )

        assert result == (3, 0.5, True, ["a", "b"], "x")

    async def test_type_converter_rejects_garbage(self):
        async def tool(page: int):
            return page

        with pytest.raises(InvalidArgument):
            await type_converter(tool)(page="three")

    async def test_persistence_error_is_generic(self):
        async def tool():
            raise PersistenceError("database is locked at /secret/path")

        result = await exception_handler(tool)()

        assert result["success"] is False
        assert result["error_type"] == "persistence_error"
        assert "/secret/path" not in result["error"]

    async def test_unexpected_error_is_generic(self):
        async def tool():
            raise KeyError("boom")

        result = await exception_handler(tool)()

        assert result == {
            "success": False,
            "error": "tool failed unexpectedly",
            "error_type": "internal_error",
        }

    async def test_tool_logger_passes_result_through(self):
        async def tool(value: int = 0):
            return {"success": True, "value": value}

        assert await tool_logger(tool)(value=4) == {"success": True, "value": 4}

    async def test_wrappers_keep_signature(self):
        import inspect

        wrapped = decorated(feed_tools.list_articles)

        assert list(inspect.signature(wrapped).parameters) == ["page", "page_size", "ctx"]
        assert wrapped.__name__ == "list_articles"


class TestAuthAndConfig:
    """Tests for owner resolution and configuration loading."""

    async def test_header_owner_wins(self):
        request = SimpleNamespace(headers={"x-owner-id": "header-owner"})
        ctx = SimpleNamespace(request_context=SimpleNamespace(request=request))

        assert resolve_owner_id(ctx) == "header-owner"

    async def test_falls_back_to_configured_owner(self):
        ctx = SimpleNamespace(request_context=SimpleNamespace(request=None))

        assert resolve_owner_id(ctx) == OWNER

    async def test_no_owner_raises(self):
        set_config(ServerConfig(owner_id=""))

        with pytest.raises(AuthorizationError):
            resolve_owner_id(None)

    async def test_load_config_yaml_and_env(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("owner_id: from-yaml\nfetch_timeout: 5\nunknown_key: 1\n")
        monkeypatch.setenv("FEED_TIMELINE_MAX_CONCURRENT_FETCHES", "3")
        monkeypatch.delenv("FEED_TIMELINE_OWNER_ID", raising=False)

        config = load_config(str(config_file))

        assert config.owner_id == "from-yaml"
        assert config.fetch_timeout == 5
        assert config.max_concurrent_fetches == 3

    async def test_load_config_rejects_bad_numbers(self, monkeypatch):
        monkeypatch.delenv("FEED_TIMELINE_CONFIG", raising=False)
        monkeypatch.setenv("FEED_TIMELINE_FETCH_TIMEOUT", "soon")

        with pytest.raises(ValueError, match="FEED_TIMELINE_FETCH_TIMEOUT"):
            load_config()
