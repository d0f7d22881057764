"""Feed timeline MCP tools.

This module provides MCP tools for managing feed subscriptions, reading the
aggregated timeline and recording per-article state.

NOTE: Never use Optional parameters in MCP tools - they break MCP clients.
Use empty string "" for optional strings and 0 for optional integers.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from mcp.server.fastmcp import Context

from feed_timeline.auth import resolve_owner_id
from feed_timeline.config import get_config
from feed_timeline.errors import InvalidArgument
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.models.schemas import ArticleItem, Feed, SavedArticle, as_utc
from feed_timeline.services import aggregator, state_reconciler, subscriptions


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _feed_dict(feed: Feed) -> Dict[str, Any]:
    return {
        "id": feed.id,
        "url": feed.url,
        "title": feed.title,
        "created_at": _iso(feed.created_at),
    }


def _article_dict(item: ArticleItem) -> Dict[str, Any]:
    return {
        "feed_id": item.feed_id,
        "feed_title": item.feed_title,
        "title": item.title,
        "link": item.link,
        "published": _iso(item.published),
    }


def _saved_dict(article: SavedArticle) -> Dict[str, Any]:
    return {
        "feed_id": article.feed_id,
        "feed_title": article.feed_title,
        "title": article.title,
        "link": article.link,
        "published": _iso(article.published),
        "read": article.read,
        "saved": article.saved,
    }


async def add_feed(url: str, title: str = "", ctx: Context = None) -> Dict[str, Any]:
    """Subscribe to an RSS/Atom feed after checking that it can be fetched and parsed.

    The feed is requested with browser-like headers and must return a 2xx
    response containing a valid RSS or Atom document. Nothing is stored if
    validation fails; the error says why (unreachable, HTTP status, or
    invalid format).

    Args:
        url: Feed URL
        title: Display title (empty string to use the feed's own title)
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - feed: object with id, url, title, created_at
        - error / error_type / fetch_error_kind / status_code if success is False
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"add_feed called: url={url}")

    owner_id = resolve_owner_id(ctx)
    feed = await subscriptions.subscribe_feed(owner_id, url, title)

    return {
        "success": True,
        "feed": _feed_dict(feed),
    }


async def remove_feed(feed_id: int, ctx: Context = None) -> Dict[str, Any]:
    """Unsubscribe from a feed.

    Read/saved state recorded for its articles is kept, so saved articles
    remain available through list_saved_articles.

    Args:
        feed_id: ID of the feed (from list_feeds)
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - message: confirmation string if successful
        - error: string if the feed was not found
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"remove_feed called: feed_id={feed_id}")

    owner_id = resolve_owner_id(ctx)
    removed = await subscriptions.unsubscribe_feed(owner_id, feed_id)

    if removed:
        return {
            "success": True,
            "message": f"Removed feed {feed_id}",
        }
    return {
        "success": False,
        "error": f"Feed {feed_id} not found",
    }


async def list_feeds(ctx: Context = None) -> Dict[str, Any]:
    """List subscribed feeds, newest subscription first.

    Args:
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - count: number of feeds
        - feeds: list of feed objects with id, url, title, created_at
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info("list_feeds called")

    owner_id = resolve_owner_id(ctx)
    feeds = await subscriptions.list_subscriptions(owner_id)

    return {
        "success": True,
        "count": len(feeds),
        "feeds": [_feed_dict(feed) for feed in feeds],
    }


async def list_articles(page: int = 1, page_size: int = 0, ctx: Context = None) -> Dict[str, Any]:
    """Fetch every subscribed feed and return one page of the merged timeline.

    Feeds are fetched live on each call. Articles from all feeds are merged,
    removed articles are dropped, and the result is ordered newest first
    with undated articles last. A feed that fails to load is skipped and
    reported in failed_feeds; it never fails the whole request.

    Combine with get_article_states to show read/saved flags.

    Args:
        page: Page number starting at 1 (default: 1)
        page_size: Articles per page (0 uses the server default, normally 30)
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - page, page_size: the slice returned
        - count: number of articles on this page
        - total: number of articles across all pages
        - has_more: whether another page exists
        - failed_feeds: ids of feeds that could not be fetched or parsed
        - articles: list with feed_id, feed_title, title, link, published
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"list_articles called: page={page}, page_size={page_size}")

    owner_id = resolve_owner_id(ctx)
    if page_size == 0:
        page_size = get_config().default_page_size

    result = await aggregator.aggregate(owner_id, page=page, page_size=page_size)

    return {
        "success": True,
        "page": result.page,
        "page_size": result.page_size,
        "count": len(result.items),
        "total": result.total_items,
        "has_more": result.page * result.page_size < result.total_items,
        "failed_feeds": result.failed_feeds,
        "articles": [_article_dict(item) for item in result.items],
    }


async def get_article_states(links: List[str], ctx: Context = None) -> Dict[str, Any]:
    """Look up read/saved flags for a batch of article links.

    Links that have never been marked are left out of the result; treat
    them as unread and unsaved.

    Args:
        links: Article links, usually those returned by list_articles
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - states: mapping of link to {read, saved}
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"get_article_states called: {len(links)} links")

    owner_id = resolve_owner_id(ctx)
    states = await state_reconciler.bulk_get_state(owner_id, links)

    return {
        "success": True,
        "states": {
            link: {"read": state.read, "saved": state.saved}
            for link, state in states.items()
        },
    }


async def update_article_state(
    link: str,
    feed_id: int,
    title: str = "",
    published: str = "",
    read: bool = False,
    saved: bool = False,
    ctx: Context = None,
) -> Dict[str, Any]:
    """Set the read and saved flags of an article.

    The first update for a link also stores its feed, title and publish
    date so it can appear in list_saved_articles after the feed is gone.
    Later updates only change read and saved.

    Args:
        link: Article link (from list_articles)
        feed_id: ID of the feed the article came from
        title: Article title
        published: Publish date in ISO format (empty string if unknown)
        read: New read flag
        saved: New saved flag
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - state: object with id, read, saved
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"update_article_state called: link={link}, read={read}, saved={saved}")

    owner_id = resolve_owner_id(ctx)

    published_at = None
    if published:
        try:
            published_at = as_utc(datetime.fromisoformat(published.replace("Z", "+00:00")))
        except ValueError as e:
            raise InvalidArgument(
                f"Invalid 'published' date format: {published}. Use ISO format like '2025-01-01T00:00:00Z'"
            ) from e

    state = await state_reconciler.upsert_state(
        owner_id,
        link=link,
        feed_id=feed_id or None,
        title=title,
        published_at=published_at,
        read=read,
        saved=saved,
    )

    return {
        "success": True,
        "state": {
            "id": state.id,
            "read": state.read,
            "saved": state.saved,
        },
    }


async def remove_article(link: str, ctx: Context = None) -> Dict[str, Any]:
    """Permanently hide an article from the timeline.

    Removal cannot be undone. Removing an already removed article is not
    an error.

    Args:
        link: Article link (from list_articles)
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"remove_article called: link={link}")

    owner_id = resolve_owner_id(ctx)
    await state_reconciler.tombstone(owner_id, link)

    return {"success": True}


async def list_saved_articles(ctx: Context = None) -> Dict[str, Any]:
    """List saved articles, newest first.

    Uses the details stored when each article was first marked, so saved
    articles stay listed even if their feed is down or unsubscribed.

    Args:
        ctx: MCP Context object (injected automatically)

    Returns:
        Dictionary with:
        - success: bool
        - count: number of saved articles
        - articles: list with feed_id, feed_title, title, link, published, read, saved
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info("list_saved_articles called")

    owner_id = resolve_owner_id(ctx)
    articles = await state_reconciler.list_saved_articles(owner_id)

    return {
        "success": True,
        "count": len(articles),
        "articles": [_saved_dict(article) for article in articles],
    }


# List of feed tools for registration
feed_tools = [
    add_feed,
    remove_feed,
    list_feeds,
    list_articles,
    get_article_states,
    update_article_state,
    remove_article,
    list_saved_articles,
]
