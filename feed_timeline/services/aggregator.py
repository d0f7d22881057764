"""Timeline aggregation service.

This module fetches every feed an owner subscribes to, merges the items,
drops removed links, sorts newest first and returns one page.
"""

import asyncio
from typing import List, Optional, Set, Tuple

import httpx

from feed_timeline.auth import require_owner
from feed_timeline.config import get_config
from feed_timeline.errors import FetchError, InvalidArgument, ParseError
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.models.schemas import AggregatedPage, ArticleItem, Feed
from feed_timeline.services.feed_fetcher import create_http_client, fetch_feed
from feed_timeline.services.feed_parser import parse_feed_payload
from feed_timeline.storage import database


def validate_page_bounds(page: int, page_size: int) -> None:
    """Reject pagination bounds that would produce a negative or empty slice.

    Raises:
        InvalidArgument: If page < 1 or page_size <= 0
    """
    if page < 1:
        raise InvalidArgument(f"page must be >= 1, got {page}")
    if page_size <= 0:
        raise InvalidArgument(f"page_size must be > 0, got {page_size}")


def sort_items(items: List[ArticleItem]) -> List[ArticleItem]:
    """Sort items newest first; undated items go last.

    The sort is stable, so ties keep feed order then item order.
    """
    return sorted(
        items,
        key=lambda item: (item.published is not None, item.published),
        reverse=True,
    )


def paginate(items: List[ArticleItem], page: int, page_size: int) -> List[ArticleItem]:
    start = (page - 1) * page_size
    return items[start:start + page_size]


async def _fetch_feed_items(
    feed: Feed,
    client: httpx.AsyncClient,
    semaphore: asyncio.Semaphore,
    timeout: float,
) -> Tuple[Feed, Optional[List[ArticleItem]]]:
    """Fetch and parse one feed.

    Failures are logged and reported as None so one broken feed never
    fails the whole aggregation.
    """
    logger = UnifiedLogger.get_logger(__name__)

    async with semaphore:
        try:
            payload = await asyncio.wait_for(fetch_feed(feed.url, client=client), timeout)
            return feed, parse_feed_payload(payload, feed.id, feed.title or "")
        except asyncio.TimeoutError:
            logger.warning(f"Timed out after {timeout}s fetching feed {feed.id} ({feed.url})")
        except (FetchError, ParseError) as e:
            logger.warning(f"Skipping feed {feed.id} ({feed.url}): {e}")
        except Exception:
            logger.exception(f"Unexpected error processing feed {feed.id} ({feed.url})")

    return feed, None


async def collect_items(
    feeds: List[Feed],
    max_concurrency: int,
    timeout: float,
) -> Tuple[List[ArticleItem], List[int]]:
    """Fetch all feeds concurrently and concatenate their items in feed order.

    Waits for every feed to finish or fail. Cancelling the caller cancels
    every outstanding fetch.

    Returns:
        Tuple of (items, ids of feeds that failed)
    """
    if not feeds:
        return [], []

    semaphore = asyncio.Semaphore(max_concurrency)

    async with create_http_client(timeout) as client:
        results = await asyncio.gather(
            *(_fetch_feed_items(feed, client, semaphore, timeout) for feed in feeds)
        )

    items: List[ArticleItem] = []
    failed: List[int] = []
    for feed, feed_items in results:
        if feed_items is None:
            failed.append(feed.id)
        else:
            items.extend(feed_items)

    return items, failed


def drop_removed(items: List[ArticleItem], removed_links: Set[str]) -> List[ArticleItem]:
    return [item for item in items if item.link not in removed_links]


async def aggregate(
    owner_id: str,
    page: int = 1,
    page_size: int = 30,
    max_concurrency: Optional[int] = None,
    timeout: Optional[float] = None,
) -> AggregatedPage:
    """Build one page of an owner's timeline.

    Args:
        owner_id: Owner whose feeds are aggregated
        page: 1-based page number
        page_size: Items per page
        max_concurrency: Concurrent feed fetches (defaults to config)
        timeout: Per-feed timeout in seconds (defaults to config)

    Returns:
        AggregatedPage with the requested slice

    Raises:
        AuthorizationError: If owner_id is blank
        InvalidArgument: If page < 1 or page_size <= 0
        PersistenceError: If feeds or removed links cannot be loaded
    """
    logger = UnifiedLogger.get_logger(__name__)

    owner_id = require_owner(owner_id)
    validate_page_bounds(page, page_size)

    config = get_config()
    if max_concurrency is None:
        max_concurrency = config.max_concurrent_fetches
    if timeout is None:
        timeout = config.fetch_timeout

    feeds = await database.list_feeds(owner_id)
    removed_links = set(await database.list_tombstones(owner_id))

    items, failed_feeds = await collect_items(feeds, max_concurrency, timeout)
    if failed_feeds:
        logger.warning(f"{len(failed_feeds)} of {len(feeds)} feeds failed for owner {owner_id}")

    timeline = sort_items(drop_removed(items, removed_links))

    logger.info(
        f"Aggregated {len(timeline)} items from {len(feeds)} feeds for owner {owner_id}, "
        f"page {page} (size {page_size})"
    )

    return AggregatedPage(
        items=paginate(timeline, page, page_size),
        page=page,
        page_size=page_size,
        total_items=len(timeline),
        failed_feeds=failed_feeds,
    )
