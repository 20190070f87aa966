"""Configuration management module."""

from sheetfeed.core.config.settings import (
    DEFAULT_SHEETS_URL,
    CacheConfig,
    ConfigManager,
    LoggingConfig,
    ServerConfig,
    SheetFeedConfig,
    SourceConfig,
    load_config_from_env,
    resolve_proxy_from_env,
)

__all__ = [
    "DEFAULT_SHEETS_URL",
    "CacheConfig",
    "ConfigManager",
    "LoggingConfig",
    "ServerConfig",
    "SheetFeedConfig",
    "SourceConfig",
    "load_config_from_env",
    "resolve_proxy_from_env",
]
