"""Database storage for feed_timeline.

This module provides async SQLite operations for feeds, per-user article
state and removed-article tombstones. Every query is scoped to one owner.
Database location: ServerConfig.database_path (default ~/.feed_timeline/feed_timeline.db)
"""

import asyncio
import aiosqlite
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from feed_timeline.config import get_config
from feed_timeline.errors import PersistenceError
from feed_timeline.models.schemas import ArticleState, Feed, SavedArticle, as_utc

# Stay well below SQLite's bound-parameter limit
LINK_LOOKUP_CHUNK_SIZE = 500


def _get_db_path() -> Path:
    """Get the database path from configuration (FEED_TIMELINE_DB_PATH overrides it)."""
    return Path(get_config().database_path).expanduser()


# Singleton connection
_db_connection: Optional[aiosqlite.Connection] = None
_db_lock: Optional[asyncio.Lock] = None


async def get_database() -> aiosqlite.Connection:
    """Get or create a singleton database connection.

    Returns:
        Active database connection
    """
    global _db_connection, _db_lock

    if _db_connection is not None:
        return _db_connection

    if _db_lock is None:
        _db_lock = asyncio.Lock()

    async with _db_lock:
        # Another caller may have opened it while we waited
        if _db_connection is None:
            db_path = _get_db_path()
            # Ensure directory exists
            db_path.parent.mkdir(parents=True, exist_ok=True)

            connection = None
            try:
                connection = await aiosqlite.connect(db_path)
                connection.row_factory = aiosqlite.Row
                await init_database(connection)
            except aiosqlite.Error as e:
                if connection is not None:
                    await connection.close()
                raise PersistenceError(f"Could not open database at {db_path}: {e}") from e
            _db_connection = connection

    return _db_connection


async def init_database(db: Optional[aiosqlite.Connection] = None) -> None:
    """Initialize database tables if they don't exist.

    Args:
        db: Optional database connection (uses singleton if not provided)
    """
    if db is None:
        db = await get_database()

    await db.execute("""
        CREATE TABLE IF NOT EXISTS feeds (
            id INTEGER PRIMARY KEY,
            owner_id TEXT NOT NULL,
            url TEXT NOT NULL,
            title TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # No foreign key to feeds: saved articles outlive their subscription
    await db.execute("""
        CREATE TABLE IF NOT EXISTS article_states (
            id INTEGER PRIMARY KEY,
            owner_id TEXT NOT NULL,
            link TEXT NOT NULL,
            feed_id INTEGER NOT NULL,
            title TEXT,
            published_at TIMESTAMP,
            read BOOLEAN NOT NULL DEFAULT FALSE,
            saved BOOLEAN NOT NULL DEFAULT FALSE,
            UNIQUE (owner_id, link)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS removed_articles (
            id INTEGER PRIMARY KEY,
            owner_id TEXT NOT NULL,
            link TEXT NOT NULL,
            removed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (owner_id, link)
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_feeds_owner_id ON feeds(owner_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_article_states_saved ON article_states(owner_id, saved)
    """)

    await db.commit()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value))


def _row_to_feed(row: aiosqlite.Row) -> Feed:
    return Feed(
        id=row["id"],
        owner_id=row["owner_id"],
        url=row["url"],
        title=row["title"],
        created_at=_parse_timestamp(row["created_at"]),
    )


async def list_feeds(owner_id: str) -> List[Feed]:
    """List an owner's feeds, newest subscription first.

    Args:
        owner_id: Owner whose feeds to list

    Returns:
        List of Feed objects

    Raises:
        PersistenceError: If the query fails
    """
    db = await get_database()

    try:
        cursor = await db.execute(
            """
            SELECT * FROM feeds
            WHERE owner_id = ?
            ORDER BY created_at DESC, id DESC
            """,
            (owner_id,),
        )
        return [_row_to_feed(row) async for row in cursor]
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to list feeds: {e}") from e


async def create_feed(owner_id: str, url: str, title: Optional[str] = None) -> Feed:
    """Store a new feed subscription.

    Args:
        owner_id: Owner of the subscription
        url: Feed URL
        title: Optional display title

    Returns:
        The created Feed object

    Raises:
        PersistenceError: If the insert fails
    """
    db = await get_database()

    try:
        cursor = await db.execute(
            "INSERT INTO feeds (owner_id, url, title) VALUES (?, ?, ?)",
            (owner_id, url, title),
        )
        await db.commit()

        cursor = await db.execute("SELECT * FROM feeds WHERE id = ?", (cursor.lastrowid,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to add feed: {e}") from e

    return _row_to_feed(row)


async def delete_feed(owner_id: str, feed_id: int) -> bool:
    """Delete one of an owner's feeds. Article state rows are kept.

    Args:
        owner_id: Owner of the subscription
        feed_id: ID of the feed

    Returns:
        True if a feed was deleted
    """
    db = await get_database()

    try:
        cursor = await db.execute(
            "DELETE FROM feeds WHERE id = ? AND owner_id = ?",
            (feed_id, owner_id),
        )
        await db.commit()
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to delete feed: {e}") from e

    return cursor.rowcount > 0


async def list_tombstones(owner_id: str) -> List[str]:
    """List the links an owner has removed from their timeline."""
    db = await get_database()

    try:
        cursor = await db.execute(
            "SELECT link FROM removed_articles WHERE owner_id = ?",
            (owner_id,),
        )
        return [row["link"] async for row in cursor]
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to list removed articles: {e}") from e


async def insert_tombstone(owner_id: str, link: str) -> bool:
    """Mark a link as removed. Inserting an existing tombstone is a no-op.

    Returns:
        True if a new tombstone row was written
    """
    db = await get_database()

    try:
        cursor = await db.execute(
            "INSERT OR IGNORE INTO removed_articles (owner_id, link) VALUES (?, ?)",
            (owner_id, link),
        )
        await db.commit()
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to remove article: {e}") from e

    return cursor.rowcount > 0


def _chunked(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def get_states_for_links(owner_id: str, links: List[str]) -> Dict[str, ArticleState]:
    """Get stored read/saved state for the given links.

    Links without a stored row are absent from the result.

    Args:
        owner_id: Owner of the state rows
        links: Links to look up

    Returns:
        Mapping of link to ArticleState
    """
    if not links:
        return {}

    db = await get_database()
    states: Dict[str, ArticleState] = {}

    try:
        for chunk in _chunked(links, LINK_LOOKUP_CHUNK_SIZE):
            placeholders = ",".join("?" * len(chunk))
            cursor = await db.execute(
                f"""
                SELECT id, link, read, saved FROM article_states
                WHERE owner_id = ? AND link IN ({placeholders})
                """,
                [owner_id] + chunk,
            )
            async for row in cursor:
                states[row["link"]] = ArticleState(
                    id=row["id"],
                    read=bool(row["read"]),
                    saved=bool(row["saved"]),
                )
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to load article state: {e}") from e

    return states


async def upsert_article_state(
    owner_id: str,
    link: str,
    feed_id: int,
    title: str,
    published_at: Optional[datetime],
    read: bool,
    saved: bool,
) -> ArticleState:
    """Insert or update the state row for (owner_id, link).

    Descriptive fields (feed_id, title, published_at) are only written on
    insert; an existing row only has read/saved updated.

    Returns:
        The stored ArticleState
    """
    db = await get_database()

    try:
        await db.execute(
            """
            INSERT INTO article_states (owner_id, link, feed_id, title, published_at, read, saved)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (owner_id, link) DO UPDATE SET
                read = excluded.read,
                saved = excluded.saved
            """,
            (
                owner_id,
                link,
                feed_id,
                title,
                as_utc(published_at).isoformat() if published_at else None,
                read,
                saved,
            ),
        )
        await db.commit()

        cursor = await db.execute(
            "SELECT id, read, saved FROM article_states WHERE owner_id = ? AND link = ?",
            (owner_id, link),
        )
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to update article state: {e}") from e

    return ArticleState(id=row["id"], read=bool(row["read"]), saved=bool(row["saved"]))


async def list_saved_articles(owner_id: str) -> List[SavedArticle]:
    """List an owner's saved articles, newest first, undated last.

    The feed title is empty when the originating feed has been deleted.
    """
    db = await get_database()

    try:
        cursor = await db.execute(
            """
            SELECT s.*, f.title AS feed_title
            FROM article_states s
            LEFT JOIN feeds f ON f.id = s.feed_id AND f.owner_id = s.owner_id
            WHERE s.owner_id = ? AND s.saved = 1
            ORDER BY s.published_at IS NULL, s.published_at DESC, s.id DESC
            """,
            (owner_id,),
        )

        articles = []
        async for row in cursor:
            articles.append(SavedArticle(
                feed_id=row["feed_id"],
                feed_title=row["feed_title"] or "",
                title=row["title"] or "",
                link=row["link"],
                published=_parse_timestamp(row["published_at"]),
                read=bool(row["read"]),
                saved=bool(row["saved"]),
            ))
    except aiosqlite.Error as e:
        raise PersistenceError(f"Failed to list saved articles: {e}") from e

    return articles


async def close_database() -> None:
    """Close the database connection."""
    global _db_connection, _db_lock

    if _db_connection is not None:
        await _db_connection.close()
        _db_connection = None
    _db_lock = None
