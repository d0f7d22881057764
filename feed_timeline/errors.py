"""Error types shared across feed_timeline modules.

Every error raised by the core derives from FeedTimelineError so the MCP
boundary can turn it into a structured tool response.
"""

from enum import Enum
from typing import Optional


class FeedTimelineError(Exception):
    """Base class for all feed_timeline errors."""

    error_type = "error"


class FetchErrorKind(str, Enum):
    """Why a feed could not be retrieved."""

    UNREACHABLE = "unreachable"
    BAD_STATUS = "bad_status"
    INVALID_FORMAT = "invalid_format"


class FetchError(FeedTimelineError):
    """Raised when a feed URL cannot be fetched or is not a usable feed.

    Attributes:
        kind: Failure category
        url: The feed URL that failed
        status_code: HTTP status for BAD_STATUS failures
        detail: Transport or parser message
    """

    error_type = "fetch_error"

    def __init__(
        self,
        kind: FetchErrorKind,
        url: str,
        status_code: Optional[int] = None,
        detail: str = "",
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.detail = detail
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind is FetchErrorKind.BAD_STATUS:
            return f"Feed returned HTTP {self.status_code}"
        if self.kind is FetchErrorKind.INVALID_FORMAT:
            return f"Invalid RSS/Atom format: {self.detail}"
        return f"Invalid or unreachable RSS feed: {self.detail}"


class ParseError(FeedTimelineError):
    """Raised when a payload cannot be parsed as any known feed format."""

    error_type = "parse_error"


class InvalidArgument(FeedTimelineError):
    """Raised for bad pagination bounds or missing required fields."""

    error_type = "invalid_argument"


class AuthorizationError(FeedTimelineError):
    """Raised when no owner identity can be resolved for a request."""

    error_type = "unauthorized"


class PersistenceError(FeedTimelineError):
    """Raised when the storage layer fails."""

    error_type = "persistence_error"


__all__ = [
    "FeedTimelineError",
    "FetchErrorKind",
    "FetchError",
    "ParseError",
    "InvalidArgument",
    "AuthorizationError",
    "PersistenceError",
]
