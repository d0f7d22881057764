"""Shared fixtures for feed_timeline tests."""

import aiosqlite
import pytest
from unittest.mock import AsyncMock, patch

from feed_timeline.config import ServerConfig, set_config
from feed_timeline.storage.database import init_database

OWNER = "owner-1"
OTHER_OWNER = "owner-2"


@pytest.fixture
def anyio_backend():
    # aiosqlite only runs on asyncio
    return "asyncio"


@pytest.fixture(autouse=True)
def server_config(tmp_path):
    """Install a test configuration for every test."""
    config = ServerConfig(
        owner_id=OWNER,
        database_path=str(tmp_path / "feed_timeline.db"),
        fetch_timeout=2.0,
        max_concurrent_fetches=4,
        default_page_size=30,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
async def in_memory_db():
    """Create an in-memory database for testing."""
    db = await aiosqlite.connect(":memory:")
    db.row_factory = aiosqlite.Row
    await init_database(db)

    # Patch get_database to return our in-memory connection
    with patch("feed_timeline.storage.database.get_database", AsyncMock(return_value=db)):
        yield db

    await db.close()
