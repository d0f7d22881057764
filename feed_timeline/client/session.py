"""In-process timeline session.

Drives the aggregation and state services the way a browsing client does:
fetch a page, look up state for that page, merge. State changes trigger a
refresh of state for everything already held.
"""

from typing import List

from feed_timeline.client.merge_engine import TimelineEntry, TimelineMergeEngine
from feed_timeline.errors import InvalidArgument
from feed_timeline.log_system.unified_logger import UnifiedLogger
from feed_timeline.models.schemas import SavedArticle
from feed_timeline.services import aggregator, state_reconciler


class TimelineSession:
    """One owner's scrolling view of the aggregated timeline."""

    def __init__(self, owner_id: str, page_size: int = 30):
        self.owner_id = owner_id
        self.engine = TimelineMergeEngine(page_size)
        self.logger = UnifiedLogger.get_logger(__name__)

    @property
    def entries(self) -> List[TimelineEntry]:
        return self.engine.entries

    @property
    def has_more(self) -> bool:
        return self.engine.has_more

    async def load_more(self) -> List[TimelineEntry]:
        """Fetch the next page and merge it. No-op once exhausted."""
        if not self.engine.has_more:
            return []

        page = await aggregator.aggregate(
            self.owner_id,
            page=self.engine.next_page,
            page_size=self.engine.page_size,
        )
        states = await state_reconciler.bulk_get_state(
            self.owner_id, [item.link for item in page.items]
        )
        appended = self.engine.merge_page(page.items, states)

        self.logger.debug(
            f"Loaded page {page.page}: {len(appended)} new of {len(page.items)} items"
        )
        return appended

    async def refresh(self) -> List[TimelineEntry]:
        """Start over from page 1."""
        self.engine.reset()
        return await self.load_more()

    async def refresh_state(self) -> None:
        """Re-read state for every held article and overlay it in place."""
        states = await state_reconciler.bulk_get_state(self.owner_id, self.engine.links)
        self.engine.overlay_state(states)

    def _held(self, link: str) -> TimelineEntry:
        entry = self.engine.get(link)
        if entry is None:
            raise InvalidArgument(f"Article not in timeline: {link}")
        return entry

    async def _update(self, entry: TimelineEntry, read: bool, saved: bool) -> None:
        await state_reconciler.upsert_state(
            self.owner_id,
            link=entry.link,
            feed_id=entry.feed_id,
            title=entry.title,
            published_at=entry.published,
            read=read,
            saved=saved,
        )
        await self.refresh_state()

    async def set_read(self, link: str, read: bool = True) -> TimelineEntry:
        entry = self._held(link)
        await self._update(entry, read, entry.saved)
        return entry

    async def toggle_read(self, link: str) -> TimelineEntry:
        entry = self._held(link)
        await self._update(entry, not entry.read, entry.saved)
        return entry

    async def toggle_saved(self, link: str) -> TimelineEntry:
        entry = self._held(link)
        await self._update(entry, entry.read, not entry.saved)
        return entry

    async def remove(self, link: str) -> None:
        """Tombstone a link and drop it locally without refetching."""
        await state_reconciler.tombstone(self.owner_id, link)
        self.engine.drop(link)

    async def load_saved(self) -> List[SavedArticle]:
        saved = await state_reconciler.list_saved_articles(self.owner_id)
        self.engine.set_saved(saved)
        return saved

