"""Fixtures for MCP protocol integration tests.

Tools are exercised through a real MCP client session connected to the
server over in-memory streams.
"""

import pytest
from mcp import types
from mcp.shared.memory import create_connected_server_and_client_session

from feed_timeline.server.app import create_mcp_server
from feed_timeline.storage.database import close_database


def extract_text_content(result: types.CallToolResult) -> str:
    """Return the text of the first text block in a tool result."""
    for content in result.content:
        if isinstance(content, types.TextContent):
            return content.text
    raise AssertionError(f"No text content in result: {result}")


@pytest.fixture
async def mcp_session(server_config):
    """Yield (session, transport) for a freshly created server."""
    server = create_mcp_server(server_config)

    async with create_connected_server_and_client_session(server._mcp_server) as session:
        yield session, "memory"

    await close_database()
