"""Log every tool invocation under its own correlation ID."""

import functools
import time
from typing import Any, Callable, Dict, Optional

from feed_timeline.log_system.correlation import (
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from feed_timeline.log_system.unified_logger import UnifiedLogger

# Arguments never written to the log
HIDDEN_ARGUMENTS = {"ctx"}


def tool_logger(func: Callable, config: Optional[Dict[str, Any]] = None) -> Callable:
    """Wrap an async tool with start/finish logging and timing."""
    logger = UnifiedLogger.get_logger("tools")
    max_arg_length = int((config or {}).get("log_max_argument_length", 200))

    def _format_args(kwargs: Dict[str, Any]) -> str:
        parts = []
        for key, value in kwargs.items():
            if key in HIDDEN_ARGUMENTS:
                continue
            text = repr(value)
            if len(text) > max_arg_length:
                text = text[:max_arg_length] + "..."
            parts.append(f"{key}={text}")
        return ", ".join(parts)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        token = set_correlation_id(generate_correlation_id())
        started = time.perf_counter()
        logger.info(f"Tool {func.__name__} called: {_format_args(kwargs)}")
        try:
            result = await func(*args, **kwargs)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            logger.info(f"Tool {func.__name__} raised after {elapsed:.1f}ms")
            raise
        else:
            elapsed = (time.perf_counter() - started) * 1000
            success = result.get("success") if isinstance(result, dict) else None
            logger.info(f"Tool {func.__name__} finished in {elapsed:.1f}ms (success={success})")
            return result
        finally:
            reset_correlation_id(token)

    return wrapper
