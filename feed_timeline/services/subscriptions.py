"""Feed subscription service.

A feed is only stored after its URL has been fetched and parsed
successfully.
"""

from typing import List

from feed_timeline.auth import require_owner
from feed_timeline.config import get_config
from feed_timeline.errors import InvalidArgument
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.models.schemas import Feed
from feed_timeline.services.feed_fetcher import validate_and_fetch_title
from feed_timeline.storage import database


async def subscribe_feed(owner_id: str, url: str, title: str = "") -> Feed:
    """Validate a feed URL and subscribe the owner to it.

    Args:
        owner_id: Subscribing owner
        url: Feed URL (http or https)
        title: Display title; the feed's own title is used when empty

    Returns:
        The stored Feed

    Raises:
        InvalidArgument: If url is empty
        FetchError: If the feed is unreachable, returns a bad status or is
            not a valid RSS/Atom document
    """
    logger = UnifiedLogger.get_logger(__name__)

    owner_id = require_owner(owner_id)
    url = (url or "").strip()
    if not url:
        raise InvalidArgument("Missing url")

    feed_title, _ = await validate_and_fetch_title(url, timeout=get_config().fetch_timeout)

    feed = await database.create_feed(owner_id, url, title.strip() or feed_title)
    logger.info(f"Owner {owner_id} subscribed to {url} as feed {feed.id}")
    return feed


async def unsubscribe_feed(owner_id: str, feed_id: int) -> bool:
    """Remove one of the owner's feeds. Saved article state is kept.

    Returns:
        True if the feed existed and was removed
    """
    owner_id = require_owner(owner_id)
    if not feed_id:
        raise InvalidArgument("Missing id")
    return await database.delete_feed(owner_id, feed_id)


async def list_subscriptions(owner_id: str) -> List[Feed]:
    owner_id = require_owner(owner_id)
    return await database.list_feeds(owner_id)
