"""Feed parser service.

This module normalizes raw RSS/Atom payloads into ArticleItem objects and
extracts feed titles for new subscriptions.
"""

import calendar
import feedparser
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

from feed_timeline.errors import ParseError
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.models.schemas import ArticleItem, as_utc

# Sub-keys some Atom variants use to wrap title text
TITLE_WRAPPER_KEYS = ("value", "text", "#text", "_")


def parse_payload(payload) -> feedparser.FeedParserDict:
    """Parse a raw payload, raising ParseError if it is not a feed.

    Args:
        payload: Raw feed body as str or bytes

    Returns:
        The feedparser result

    Raises:
        ParseError: If the payload is not any known feed format
    """
    # feedparser treats str input that looks like a URL or path as one
    if isinstance(payload, str):
        payload = payload.encode("utf-8")

    parsed = feedparser.parse(payload)

    if not parsed.get("version") and not parsed.entries:
        if parsed.bozo:
            raise ParseError(str(parsed.get("bozo_exception") or "malformed feed"))
        raise ParseError("document is not an RSS or Atom feed")

    return parsed


def parse_feed_payload(payload, feed_id: int, feed_title: str) -> List[ArticleItem]:
    """Parse an RSS/Atom payload into normalized article items.

    Items without a link are kept with an empty link so callers can show
    them, even though no state action can target them.

    Args:
        payload: Raw feed body as str or bytes
        feed_id: ID of the subscribed feed the payload came from
        feed_title: Stored title of that feed

    Returns:
        List of ArticleItem objects in feed order

    Raises:
        ParseError: If the payload cannot be parsed as a feed
    """
    logger = UnifiedLogger.get_logger(__name__)

    parsed = parse_payload(payload)

    items = []
    for entry in parsed.entries:
        title = (entry.get("title") or "").strip()

        link = (entry.get("link") or "").strip()
        if not link:
            # Try alternate link
            for candidate in entry.get("links", []):
                if candidate.get("rel", "alternate") == "alternate" and candidate.get("href"):
                    link = candidate["href"].strip()
                    break

        items.append(ArticleItem(
            feed_id=feed_id,
            feed_title=feed_title,
            title=title,
            link=link,
            published=_parse_date(entry),
        ))

    logger.debug(f"Parsed {len(items)} items for feed {feed_id}")
    return items


def _parse_date(entry: dict) -> Optional[datetime]:
    """Parse the publication date from a feed entry.

    Args:
        entry: Feed entry dict

    Returns:
        Timezone-aware UTC datetime if parsed successfully, None otherwise
    """
    for field in ["published", "updated", "created"]:
        # feedparser's *_parsed values are UTC struct_time
        parsed_struct = entry.get(f"{field}_parsed")
        if parsed_struct:
            try:
                return datetime.fromtimestamp(calendar.timegm(parsed_struct), tz=timezone.utc)
            except (ValueError, TypeError, OverflowError):
                pass

        date_str = entry.get(field)
        if not date_str or not isinstance(date_str, str):
            continue

        # Try RFC 2822 format (common in RSS)
        try:
            return as_utc(parsedate_to_datetime(date_str))
        except (ValueError, TypeError, IndexError):
            pass

        # Try ISO format
        try:
            return as_utc(datetime.fromisoformat(date_str.replace("Z", "+00:00")))
        except ValueError:
            pass

    return None


def _unwrap_title(value: Any) -> Optional[str]:
    """Return title text from a plain or wrapped value."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        for key in TITLE_WRAPPER_KEYS:
            if key in value:
                unwrapped = _unwrap_title(value[key])
                if unwrapped:
                    return unwrapped
    return None


def _title_from_top_level(parsed: dict) -> Optional[str]:
    return _unwrap_title(parsed.get("title"))


def _title_from_atom(parsed: dict) -> Optional[str]:
    feed = parsed.get("feed") or {}
    return _unwrap_title(feed.get("title_detail")) or _unwrap_title(feed.get("title"))


def _title_from_rss(parsed: dict) -> Optional[str]:
    channel = (parsed.get("rss") or {}).get("channel") or {}
    return _unwrap_title(channel.get("title"))


TITLE_DECODERS: List[Callable[[dict], Optional[str]]] = [
    _title_from_top_level,
    _title_from_atom,
    _title_from_rss,
]


def extract_feed_title(parsed: dict, url: str) -> str:
    """Resolve a display title for a feed.

    Decoders are tried in order (top-level title, Atom feed title, RSS
    channel title); the URL's host name is the final fallback.

    Args:
        parsed: Parsed feed structure (feedparser result or plain dict)
        url: URL the feed was fetched from

    Returns:
        The feed title
    """
    for decoder in TITLE_DECODERS:
        title = decoder(parsed)
        if title:
            return title

    return urlparse(url).hostname or url
