"""Cell value normalisation."""

import re

from sheetfeed.core.models import Row

ZERO_WIDTH_SPACE = "\u200b"

# Unicode whitespace plus U+FEFF, matching JavaScript's trim().
_EDGE_WHITESPACE = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+$")


def sanitize_value(value: str) -> str:
    """Remove zero-width spaces, then trim surrounding whitespace."""

    return _EDGE_WHITESPACE.sub("", value.replace(ZERO_WIDTH_SPACE, ""))


def sanitize_row(row: Row) -> Row:
    """Sanitize every value of ``row``; column names are left untouched."""

    return {column: sanitize_value(value) for column, value in row.items()}


__all__ = ["ZERO_WIDTH_SPACE", "sanitize_row", "sanitize_value"]
