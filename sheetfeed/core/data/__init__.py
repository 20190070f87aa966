"""Fetch, parse, sanitize and cache building blocks."""

from sheetfeed.core.data.cache import DEFAULT_TTL, SnapshotCache
from sheetfeed.core.data.fetcher import DocumentFetcher, build_proxy, mask_proxy_url
from sheetfeed.core.data.parser import TableParser, parse_table
from sheetfeed.core.data.sanitizer import ZERO_WIDTH_SPACE, sanitize_row, sanitize_value

__all__ = [
    "DEFAULT_TTL",
    "DocumentFetcher",
    "SnapshotCache",
    "TableParser",
    "ZERO_WIDTH_SPACE",
    "build_proxy",
    "mask_proxy_url",
    "parse_table",
    "sanitize_row",
    "sanitize_value",
]
