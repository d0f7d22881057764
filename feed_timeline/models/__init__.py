"""Data models for feed_timeline."""
