"""Header-driven table parsing for published spreadsheet exports."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator

from sheetfeed.core.exceptions import ParseError
from sheetfeed.core.models import Row

_BOM = "\ufeff"

# Spreadsheet cells may hold multi-line text far beyond the csv default of 128 KiB.
csv.field_size_limit(max(csv.field_size_limit(), 2**31 - 1))


class TableParser:
    """Parse delimited text into rows keyed by the header record.

    Quoted fields may contain the delimiter and line breaks. Text following a
    closing quote is kept as part of the field (`"5" screen` reads as
    `5 screen`). A quote that is never closed makes the whole document
    unusable and raises :class:`ParseError` before any row is produced.
    """

    def __init__(self, delimiter: str = ",", quotechar: str = '"') -> None:
        self.delimiter = delimiter
        self.quotechar = quotechar

    def iter_rows(self, text: str) -> Iterator[Row]:
        """Yield rows lazily in document order."""

        opening = self._unterminated_quote(text)
        if opening is not None:
            line = text.count("\n", 0, opening) + 1
            raise ParseError(f"Unterminated quoted field starting on line {line}", line=line)

        reader = csv.reader(
            io.StringIO(text, newline=""),
            delimiter=self.delimiter,
            quotechar=self.quotechar,
            strict=False,
        )
        try:
            header: list[str] | None = None
            for record in reader:
                if not record:
                    continue
                if header is None:
                    header = list(record)
                    header[0] = header[0].lstrip(_BOM)
                    continue
                yield self._build_row(header, record)
        except csv.Error as exc:
            raise ParseError(f"Malformed document near line {reader.line_num}: {exc}", line=reader.line_num) from exc

    def parse(self, text: str) -> list[Row]:
        """Parse ``text`` completely; a header-only document yields ``[]``."""

        return list(self.iter_rows(text))

    def _unterminated_quote(self, text: str) -> int | None:
        """Return the offset of a quote still open at end of text, if any.

        Follows the non-strict csv reader: a quote only opens a field at its
        start, a doubled quote inside a quoted field is an escape, and
        anything after a closing quote continues the field unquoted.
        """
        quote, delimiter = self.quotechar, self.delimiter
        at_field_start = True
        in_quotes = False
        closing = False
        opened_at = 0
        for offset, char in enumerate(text):
            if in_quotes:
                if closing:
                    closing = False
                    if char != quote:
                        in_quotes = False
                        at_field_start = char == delimiter or char in "\r\n"
                elif char == quote:
                    closing = True
            elif at_field_start and char == quote:
                in_quotes = True
                opened_at = offset
            else:
                at_field_start = char == delimiter or char in "\r\n"
        if in_quotes and not closing:
            return opened_at
        return None

    @staticmethod
    def _build_row(header: list[str], record: list[str]) -> Row:
        row: Row = {}
        for index, column in enumerate(header):
            row[column] = record[index] if index < len(record) else ""
        for index in range(len(header), len(record)):
            row[f"_{index}"] = record[index]
        return row


def parse_table(text: str) -> list[Row]:
    """Parse comma separated ``text`` with the default dialect."""

    return TableParser().parse(text)


__all__ = ["TableParser", "parse_table"]
