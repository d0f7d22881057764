"""Services for feed_timeline."""

from .aggregator import aggregate
from .feed_fetcher import fetch_feed, validate_and_fetch_title
from .feed_parser import extract_feed_title, parse_feed_payload
from .state_reconciler import bulk_get_state, list_saved_articles, tombstone, upsert_state
from .subscriptions import list_subscriptions, subscribe_feed, unsubscribe_feed

__all__ = [
    "aggregate",
    "fetch_feed",
    "validate_and_fetch_title",
    "extract_feed_title",
    "parse_feed_payload",
    "bulk_get_state",
    "list_saved_articles",
    "tombstone",
    "upsert_state",
    "list_subscriptions",
    "subscribe_feed",
    "unsubscribe_feed",
]
