"""Configuration for feed_timeline.

Settings come from an optional YAML file (``FEED_TIMELINE_CONFIG`` or an
explicit path) and are then overridden by environment variables.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def _default_db_path() -> str:
    return str(Path.home() / ".feed_timeline" / "feed_timeline.db")


@dataclass
class ServerConfig:
    """Server configuration."""

    name: str = "feed_timeline"
    log_level: str = "INFO"
    database_path: str = field(default_factory=_default_db_path)
    owner_id: str = ""
    fetch_timeout: float = 15.0
    max_concurrent_fetches: int = 8
    default_page_size: int = 30
    logging_destinations: Dict[str, Any] = field(default_factory=dict)


# Environment variable -> (field name, converter)
ENV_OVERRIDES = {
    "FEED_TIMELINE_DB_PATH": ("database_path", str),
    "FEED_TIMELINE_OWNER_ID": ("owner_id", str),
    "FEED_TIMELINE_LOG_LEVEL": ("log_level", str),
    "FEED_TIMELINE_FETCH_TIMEOUT": ("fetch_timeout", float),
    "FEED_TIMELINE_MAX_CONCURRENT_FETCHES": ("max_concurrent_fetches", int),
    "FEED_TIMELINE_DEFAULT_PAGE_SIZE": ("default_page_size", int),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None) -> ServerConfig:
    """Load configuration from YAML and environment variables.

    Args:
        path: Optional YAML config path (defaults to FEED_TIMELINE_CONFIG)

    Returns:
        Populated ServerConfig

    Raises:
        ValueError: If a numeric setting cannot be converted or is out of range
    """
    values: Dict[str, Any] = {}

    config_path = path or os.environ.get("FEED_TIMELINE_CONFIG")
    if config_path:
        known = {f.name for f in fields(ServerConfig)}
        for key, value in _read_yaml(Path(config_path)).items():
            if key in known:
                values[key] = value

    for env_name, (field_name, convert) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            values[field_name] = convert(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e

    config = ServerConfig(**values)

    if config.fetch_timeout <= 0:
        raise ValueError("fetch_timeout must be positive")
    if config.max_concurrent_fetches < 1:
        raise ValueError("max_concurrent_fetches must be at least 1")
    if config.default_page_size < 1:
        raise ValueError("default_page_size must be at least 1")

    return config


_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config

    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[ServerConfig]) -> None:
    """Replace the process-wide configuration (None forces a reload)."""
    global _config
    _config = config
