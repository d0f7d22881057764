"""Client-side timeline accumulation.

Pages of the aggregated timeline arrive one at a time (infinite scroll).
TimelineMergeEngine keeps a single ordered list keyed by link: articles
already held get their state refreshed in place, new ones are appended in
the order the server returned them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from feed_timeline.models.schemas import ArticleItem, ArticleState, SavedArticle


@dataclass
class TimelineEntry:
    """An article as held by the client, with its overlaid state."""

    feed_id: int
    feed_title: str
    title: str
    link: str
    published: Optional[datetime]
    read: bool = False
    saved: bool = False

    @classmethod
    def from_item(cls, item: ArticleItem, state: Optional[ArticleState] = None) -> "TimelineEntry":
        entry = cls(
            feed_id=item.feed_id,
            feed_title=item.feed_title,
            title=item.title,
            link=item.link,
            published=item.published,
        )
        if state is not None:
            entry.apply_state(state)
        return entry

    def apply_state(self, state: ArticleState) -> None:
        self.read = state.read
        self.saved = state.saved


class TimelineMergeEngine:
    """Ordered, link-deduplicated list accumulated across page fetches."""

    def __init__(self, page_size: int = 30):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.saved: List[SavedArticle] = []
        self.reset()

    def reset(self) -> None:
        """Forget every held article and start again from page 1."""
        self._entries: List[TimelineEntry] = []
        self._by_link: Dict[str, TimelineEntry] = {}
        self.next_page = 1
        self.has_more = True

    @property
    def entries(self) -> List[TimelineEntry]:
        return list(self._entries)

    @property
    def links(self) -> List[str]:
        """Links of every held article that can carry state."""
        return [entry.link for entry in self._entries if entry.link]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, link: str) -> bool:
        return link in self._by_link

    def merge_page(
        self,
        items: Iterable[ArticleItem],
        states: Optional[Mapping[str, ArticleState]] = None,
    ) -> List[TimelineEntry]:
        """Merge one page of server results.

        Known links keep their position and only take the new state; new
        links are appended in server order. A page shorter than page_size
        marks the timeline as exhausted.

        Args:
            items: Page returned by the aggregator
            states: Bulk state lookup for that page (absent link = no state)

        Returns:
            The newly appended entries
        """
        states = states or {}
        items = list(items)
        appended = []

        for item in items:
            state = states.get(item.link) if item.link else None
            existing = self._by_link.get(item.link) if item.link else None

            if existing is not None:
                if state is not None:
                    existing.apply_state(state)
                continue

            entry = TimelineEntry.from_item(item, state)
            self._entries.append(entry)
            # Empty links are shown but cannot be deduplicated
            if entry.link:
                self._by_link[entry.link] = entry
            appended.append(entry)

        self.next_page += 1
        if len(items) < self.page_size:
            self.has_more = False

        return appended

    def overlay_state(
        self,
        states: Mapping[str, ArticleState],
        reset_missing: bool = False,
    ) -> None:
        """Refresh read/saved for held articles without reordering them.

        Args:
            states: Result of a bulk state lookup
            reset_missing: Clear flags of held links absent from states
        """
        for entry in self._entries:
            if not entry.link:
                continue
            state = states.get(entry.link)
            if state is not None:
                entry.apply_state(state)
            elif reset_missing:
                entry.apply_state(ArticleState())

    def drop(self, link: str) -> bool:
        """Remove a held article locally. Returns False if it was not held."""
        entry = self._by_link.pop(link, None)
        if entry is None:
            return False
        self._entries.remove(entry)
        return True

    def get(self, link: str) -> Optional[TimelineEntry]:
        return self._by_link.get(link)

    def set_saved(self, articles: Iterable[SavedArticle]) -> None:
        """Replace the separately fetched saved-articles view."""
        self.saved = list(articles)
