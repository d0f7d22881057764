"""Unified logging for feed_timeline."""
