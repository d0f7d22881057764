"""Unified logger for feed_timeline.

All modules obtain loggers through ``UnifiedLogger.get_logger(__name__)``.
Loggers live under the ``feed_timeline`` namespace and share the handlers
installed by ``initialize_default`` or ``initialize_from_config``.
"""

import logging
from typing import List

from feed_timeline.log_system.correlation import CorrelationIdFilter
from feed_timeline.log_system.destinations import (
    DESTINATION_FACTORIES,
    DestinationConfig,
    create_handler,
)

ROOT_LOGGER_NAME = "feed_timeline"


class UnifiedLogger:
    """Process-wide logging setup shared by every feed_timeline module."""

    _handlers: List[logging.Handler] = []

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    @classmethod
    def initialize_from_config(cls, destinations: List[DestinationConfig], config) -> None:
        """Install handlers for every enabled destination."""
        cls._reset_handlers()

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(str(getattr(config, "log_level", "INFO")).upper())
        root.propagate = False

        for destination in destinations:
            if not destination.enabled:
                continue
            handler = create_handler(destination)
            handler.addFilter(CorrelationIdFilter())
            root.addHandler(handler)
            cls._handlers.append(handler)

    @classmethod
    def initialize_default(cls, config) -> None:
        """Log to the console only."""
        cls.initialize_from_config([DestinationConfig(type="console")], config)

    @classmethod
    def get_available_destinations(cls) -> List[str]:
        return sorted(DESTINATION_FACTORIES)

    @classmethod
    async def close(cls) -> None:
        """Flush and detach all installed handlers."""
        cls._reset_handlers()

    @classmethod
    def _reset_handlers(cls) -> None:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.flush()
            handler.close()
        cls._handlers = []
