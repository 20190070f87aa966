"""Exception handling module."""

from sheetfeed.core.exceptions.base import (
    EmptyDatasetError,
    FetchError,
    HttpStatusError,
    NetworkError,
    ParseError,
    SheetFeedError,
)

__all__ = [
    "SheetFeedError",
    "FetchError",
    "NetworkError",
    "HttpStatusError",
    "ParseError",
    "EmptyDatasetError",
]
