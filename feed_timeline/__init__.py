"""feed_timeline - aggregated RSS/Atom timeline with per-user article state."""

__version__ = "0.1.0"
