"""Feed fetcher service.

This module retrieves raw feed payloads over HTTP and validates candidate
feed URLs before they are subscribed.
"""

import httpx
from typing import Optional, Tuple

from feed_timeline.errors import FetchError, FetchErrorKind, ParseError
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.services.feed_parser import extract_feed_title, parse_payload

DEFAULT_TIMEOUT = 15.0

# Many feed servers reject default or bot-like clients
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml,application/atom+xml,application/xml;q=0.9,text/html;q=0.8,*/*;q=0.7",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


def create_http_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create an HTTP client configured for feed retrieval."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=timeout,
        headers=BROWSER_HEADERS,
    )


async def _get(client: httpx.AsyncClient, url: str) -> bytes:
    logger = UnifiedLogger.get_logger(__name__)

    try:
        response = await client.get(url, headers={"Referer": url})
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch feed {url}: {e}")
        raise FetchError(FetchErrorKind.UNREACHABLE, url, detail=str(e) or type(e).__name__) from e

    if not response.is_success:
        logger.warning(f"Feed returned HTTP {response.status_code} for {url}")
        raise FetchError(FetchErrorKind.BAD_STATUS, url, status_code=response.status_code)

    return response.content


async def fetch_feed(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bytes:
    """Fetch the raw payload of a feed.

    Args:
        url: Feed URL
        client: Shared HTTP client (a short-lived one is created if omitted)
        timeout: Request timeout in seconds when no client is given

    Returns:
        Raw response body

    Raises:
        FetchError: UNREACHABLE on transport failure, BAD_STATUS on non-2xx
    """
    if client is not None:
        return await _get(client, url)

    async with create_http_client(timeout) as own_client:
        return await _get(own_client, url)


async def validate_and_fetch_title(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[str, bytes]:
    """Check that a URL serves a parseable feed and resolve its title.

    Args:
        url: Candidate feed URL
        timeout: Request timeout in seconds

    Returns:
        Tuple of (title, raw payload)

    Raises:
        FetchError: UNREACHABLE, BAD_STATUS, or INVALID_FORMAT when the
            body is not an RSS/Atom feed
    """
    logger = UnifiedLogger.get_logger(__name__)
    logger.info(f"Validating feed: {url}")

    payload = await fetch_feed(url, timeout=timeout)

    try:
        parsed = parse_payload(payload)
    except ParseError as e:
        logger.warning(f"RSS parse error for {url}: {e}")
        raise FetchError(FetchErrorKind.INVALID_FORMAT, url, detail=str(e)) from e

    title = extract_feed_title(parsed, url)
    logger.info(f"Validated feed {url} with title {title!r}")
    return title, payload
