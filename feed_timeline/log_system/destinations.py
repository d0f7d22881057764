"""Log destinations.

A destination is described by a DestinationConfig and turned into a
stdlib logging handler. Console output goes to stderr so the STDIO
transport keeps stdout for protocol traffic.
"""

import logging
import logging.handlers
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class DestinationConfig:
    """Configuration for one log destination."""

    type: str = "console"
    enabled: bool = True
    settings: Dict[str, Any] = field(default_factory=dict)


def _console_handler(settings: Dict[str, Any]) -> logging.Handler:
    return logging.StreamHandler(sys.stderr)


def _file_handler(settings: Dict[str, Any]) -> logging.Handler:
    path = Path(settings.get("path", Path.home() / ".feed_timeline" / "feed_timeline.log"))
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=int(settings.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(settings.get("backup_count", 3)),
        encoding="utf-8",
    )


DESTINATION_FACTORIES: Dict[str, Callable[[Dict[str, Any]], logging.Handler]] = {
    "console": _console_handler,
    "file": _file_handler,
}


def create_handler(destination: DestinationConfig) -> logging.Handler:
    """Build a formatted handler for a destination.

    Raises:
        ValueError: If the destination type is unknown
    """
    factory = DESTINATION_FACTORIES.get(destination.type)
    if factory is None:
        raise ValueError(f"Unknown log destination type: {destination.type}")

    handler = factory(destination.settings)
    level = destination.settings.get("level")
    if level:
        handler.setLevel(str(level).upper())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler
