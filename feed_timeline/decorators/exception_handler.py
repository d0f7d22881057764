"""Turn errors raised by tools into structured tool responses."""

import functools
from typing import Any, Callable, Dict

from feed_timeline.errors import FeedTimelineError, FetchError, PersistenceError
from feed_timeline.log_system.unified_logger import UnifiedLogger


def error_response(error: FeedTimelineError) -> Dict[str, Any]:
    response: Dict[str, Any] = {
        "success": False,
        "error": str(error),
        "error_type": error.error_type,
    }
    if isinstance(error, FetchError):
        response["fetch_error_kind"] = error.kind.value
        if error.status_code is not None:
            response["status_code"] = error.status_code
    return response


def exception_handler(func: Callable) -> Callable:
    """Wrap an async tool so domain errors become ``success: False`` results.

    Storage failures and unexpected exceptions are logged with a traceback
    and reported as a generic failure.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = UnifiedLogger.get_logger(func.__module__)
        try:
            return await func(*args, **kwargs)
        except PersistenceError:
            logger.exception(f"Storage failure in {func.__name__}")
            return {
                "success": False,
                "error": f"{func.__name__} failed due to a storage error",
                "error_type": PersistenceError.error_type,
            }
        except FeedTimelineError as e:
            logger.warning(f"{func.__name__} rejected: {e}")
            return error_response(e)
        except Exception:
            logger.exception(f"Unexpected error in {func.__name__}")
            return {
                "success": False,
                "error": f"{func.__name__} failed unexpectedly",
                "error_type": "internal_error",
            }

    return wrapper
