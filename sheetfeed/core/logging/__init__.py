"""Logging utilities."""

from sheetfeed.core.logging.config import LogConfig
from sheetfeed.core.logging.logger import (
    StructuredLogger,
    configure_logging,
    log_context,
    logger,
)

__all__ = [
    "LogConfig",
    "StructuredLogger",
    "configure_logging",
    "log_context",
    "logger",
]
