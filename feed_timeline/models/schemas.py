"""Data models for feed_timeline.

This module defines the core data structures for feeds, normalized
article items and per-user article state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def as_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Feed:
    """Represents a subscribed RSS/Atom feed owned by one user."""

    id: int
    owner_id: str
    url: str
    title: Optional[str]
    created_at: Optional[datetime]


@dataclass
class ArticleItem:
    """A feed entry after normalization. Never persisted."""

    feed_id: int
    feed_title: str
    title: str
    link: str
    published: Optional[datetime]


@dataclass
class ArticleState:
    """Persisted read/saved flags for one (owner, link) pair."""

    read: bool = False
    saved: bool = False
    id: Optional[int] = None


@dataclass
class SavedArticle:
    """A saved article, built from the snapshot taken on first state change."""

    feed_id: int
    feed_title: str
    title: str
    link: str
    published: Optional[datetime]
    read: bool
    saved: bool


@dataclass
class AggregatedPage:
    """One page of the aggregated timeline."""

    items: List[ArticleItem]
    page: int
    page_size: int
    total_items: int
    failed_feeds: List[int] = field(default_factory=list)
