"""Storage layer for feed_timeline."""

from .database import (
    get_database,
    init_database,
    list_feeds,
    create_feed,
    delete_feed,
    list_tombstones,
    insert_tombstone,
    get_states_for_links,
    upsert_article_state,
    list_saved_articles,
    close_database,
)

__all__ = [
    "get_database",
    "init_database",
    "list_feeds",
    "create_feed",
    "delete_feed",
    "list_tombstones",
    "insert_tombstone",
    "get_states_for_links",
    "upsert_article_state",
    "list_saved_articles",
    "close_database",
]
