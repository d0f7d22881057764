"""Client-side timeline accumulation for feed_timeline."""

from .merge_engine import TimelineEntry, TimelineMergeEngine
from .session import TimelineSession

__all__ = ["TimelineEntry", "TimelineMergeEngine", "TimelineSession"]
