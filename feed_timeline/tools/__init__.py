"""MCP tools for feed_timeline."""
