"""Main module for feed_timeline MCP server.

This module allows the server to be run as a Python module using:
python -m feed_timeline

It delegates to the server application's main function.
"""

from feed_timeline.server.app import main

if __name__ == "__main__":
    main()
