"""Coerce string arguments from MCP clients to the annotated types.

Some clients send every argument as a string ("10", "true", '["a"]').
"""

import functools
import inspect
import json
import typing
from typing import Any, Callable

from feed_timeline.errors import InvalidArgument

TRUE_STRINGS = {"true", "1", "yes", "on"}
FALSE_STRINGS = {"false", "0", "no", "off", ""}


def _convert(name: str, value: Any, annotation: Any) -> Any:
    if not isinstance(value, str):
        return value

    origin = typing.get_origin(annotation) or annotation

    try:
        if annotation is bool:
            lowered = value.strip().lower()
            if lowered in TRUE_STRINGS:
                return True
            if lowered in FALSE_STRINGS:
                return False
            raise ValueError(value)
        if annotation is int:
            return int(value)
        if annotation is float:
            return float(value)
        if origin in (list, typing.List):
            loaded = json.loads(value)
            if not isinstance(loaded, list):
                raise ValueError(value)
            return loaded
    except ValueError as e:
        raise InvalidArgument(f"Invalid value for {name}: {value!r}") from e

    return value


def type_converter(func: Callable) -> Callable:
    """Wrap an async tool so keyword arguments match their annotations."""
    signature = inspect.signature(func)
    hints = typing.get_type_hints(func)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        converted = {}
        for name, value in kwargs.items():
            if name in signature.parameters and name in hints:
                converted[name] = _convert(name, value, hints[name])
            else:
                converted[name] = value
        return await func(*args, **converted)

    return wrapper
