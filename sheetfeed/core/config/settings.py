"""Configuration management for the sheetfeed service."""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger

DEFAULT_SHEETS_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vRCQma2eHSzsyxCuDpbJFMHZGo3aF3g3m54y_7M9wdOus4WcdqB7Ge1CeJNKPMlRjnmRDyJvZgkNEQG/pub?output=csv"
)

PROXY_ENV_VARS = ("PROXY_URL", "HTTPS_PROXY", "HTTP_PROXY")


@dataclass
class SourceConfig:
    """Upstream document settings."""

    url: str = DEFAULT_SHEETS_URL
    proxy_url: str | None = None
    timeout: float = 30.0
    user_agent: str = "sheetfeed/0.1.0"
    expected_columns: tuple[str, ...] = ("Timestamp",)


@dataclass
class CacheConfig:
    """Snapshot cache settings."""

    ttl: float = 60.0
    single_flight: bool = True


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    file: str | None = None
    serialize: bool = True


@dataclass
class ServerConfig:
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False


@dataclass
class SheetFeedConfig:
    """Root configuration."""

    source: SourceConfig = field(default_factory=SourceConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "SheetFeedConfig":
        source = dict(config_dict.get("source", {}))
        if "expected_columns" in source:
            source["expected_columns"] = tuple(source["expected_columns"])
        return cls(
            source=SourceConfig(**source),
            cache=CacheConfig(**config_dict.get("cache", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
            server=ServerConfig(**config_dict.get("server", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": asdict(self.source),
            "cache": asdict(self.cache),
            "logging": asdict(self.logging),
            "server": asdict(self.server),
        }


class ConfigManager:
    """Load configuration from an optional TOML file overlaid with the environment."""

    def __init__(self, config_path: Path | None = None, *, use_env: bool = True):
        """Initialise the manager.

        Args:
            config_path: TOML file path; defaults to ``SHEETFEED_CONFIG`` or
                ``./sheetfeed.toml``
            use_env: whether environment variables (and ``.env``) override the file
        """
        env_path = os.getenv("SHEETFEED_CONFIG")
        self.config_path = config_path or Path(env_path or "sheetfeed.toml")
        self.use_env = use_env
        self.config = self._load_config()

    def _load_config(self) -> SheetFeedConfig:
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning(f"Failed to load config from {self.config_path}: {e}")
                config_dict = {}

        if self.use_env:
            load_dotenv()
            _deep_update(config_dict, load_config_from_env())

        return SheetFeedConfig.from_dict(config_dict)

    def get_config(self) -> SheetFeedConfig:
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested overrides, e.g. ``update_config(cache={"ttl": 5})``."""
        config_dict = self.config.to_dict()
        _deep_update(config_dict, updates)
        self.config = SheetFeedConfig.from_dict(config_dict)


def _deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = _deep_update(dict(d.get(k, {})), v)
        else:
            d[k] = v
    return d


def _env_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _env_number(name: str, value: str, kind: type) -> Any:
    try:
        return kind(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a {kind.__name__}, got {value!r}") from e


def resolve_proxy_from_env() -> str | None:
    """Return the first non-empty of PROXY_URL, HTTPS_PROXY, HTTP_PROXY."""

    for name in PROXY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_config_from_env() -> dict[str, Any]:
    """Read configuration overrides from environment variables."""
    config: dict[str, Any] = {}

    source_config: dict[str, Any] = {}
    sheets_url = os.getenv("SHEETS_URL")
    if sheets_url:
        source_config["url"] = sheets_url
    proxy_url = resolve_proxy_from_env()
    if proxy_url:
        source_config["proxy_url"] = proxy_url
    fetch_timeout = os.getenv("SHEETFEED_FETCH_TIMEOUT")
    if fetch_timeout is not None:
        source_config["timeout"] = _env_number("SHEETFEED_FETCH_TIMEOUT", fetch_timeout, float)
    if source_config:
        config["source"] = source_config

    cache_config: dict[str, Any] = {}
    cache_ttl = os.getenv("SHEETFEED_CACHE_TTL")
    if cache_ttl is not None:
        cache_config["ttl"] = _env_number("SHEETFEED_CACHE_TTL", cache_ttl, float)
    single_flight = os.getenv("SHEETFEED_SINGLE_FLIGHT")
    if single_flight is not None:
        cache_config["single_flight"] = _env_bool("SHEETFEED_SINGLE_FLIGHT", single_flight)
    if cache_config:
        config["cache"] = cache_config

    logging_config: dict[str, Any] = {}
    logging_level = os.getenv("SHEETFEED_LOGGING_LEVEL")
    if logging_level is not None:
        logging_config["level"] = logging_level
    logging_file = os.getenv("SHEETFEED_LOGGING_FILE")
    if logging_file is not None:
        logging_config["file"] = logging_file
    if logging_config:
        config["logging"] = logging_config

    server_config: dict[str, Any] = {}
    host = os.getenv("SHEETFEED_HOST")
    if host:
        server_config["host"] = host
    port = os.getenv("PORT")
    if port is not None:
        server_config["port"] = _env_number("PORT", port, int)
    if server_config:
        config["server"] = server_config

    return config
