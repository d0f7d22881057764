"""Article state service.

Resolves read/saved flags for batches of links and records state changes
and removals for one owner.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from feed_timeline.auth import require_owner
from feed_timeline.errors import InvalidArgument
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.models.schemas import ArticleState, SavedArticle
from feed_timeline.storage import database


async def bulk_get_state(owner_id: str, links: Iterable[str]) -> Dict[str, ArticleState]:
    """Look up stored state for a batch of links.

    Links that were never acted on are absent from the result; callers
    apply their own default. Empty input returns {} without a query.

    Args:
        owner_id: Owner of the state
        links: Candidate links, usually the page just fetched

    Returns:
        Mapping of link to ArticleState
    """
    owner_id = require_owner(owner_id)

    unique_links = list(dict.fromkeys(link for link in links if link))
    if not unique_links:
        return {}

    return await database.get_states_for_links(owner_id, unique_links)


async def upsert_state(
    owner_id: str,
    link: str,
    feed_id: Optional[int],
    title: str = "",
    published_at: Optional[datetime] = None,
    read: bool = False,
    saved: bool = False,
) -> ArticleState:
    """Record read/saved flags for an article.

    The first call for a link stores a snapshot of feed_id, title and
    published_at. Later calls only change read and saved.

    Raises:
        InvalidArgument: If link or feed_id is missing
        PersistenceError: If the write fails
    """
    logger = UnifiedLogger.get_logger(__name__)

    owner_id = require_owner(owner_id)
    if not link:
        raise InvalidArgument("Missing required field: link")
    if feed_id is None or feed_id == "":
        raise InvalidArgument("Missing required field: feed_id")

    state = await database.upsert_article_state(
        owner_id=owner_id,
        link=link,
        feed_id=feed_id,
        title=title or "",
        published_at=published_at,
        read=bool(read),
        saved=bool(saved),
    )

    logger.info(f"Article state for {link}: read={state.read}, saved={state.saved}")
    return state


async def tombstone(owner_id: str, link: str) -> None:
    """Permanently hide a link from the owner's timeline.

    Calling this again for the same link is a no-op.

    Raises:
        InvalidArgument: If link is empty
    """
    logger = UnifiedLogger.get_logger(__name__)

    owner_id = require_owner(owner_id)
    if not link:
        raise InvalidArgument("Missing article link")

    created = await database.insert_tombstone(owner_id, link)
    if created:
        logger.info(f"Removed article {link} for owner {owner_id}")
    else:
        logger.debug(f"Article {link} already removed for owner {owner_id}")


async def list_saved_articles(owner_id: str) -> List[SavedArticle]:
    """Return the owner's saved articles from their stored snapshots."""
    owner_id = require_owner(owner_id)
    return await database.list_saved_articles(owner_id)
