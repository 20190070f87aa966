"""Output formatters for CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Mapping, TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Base class for row formatters."""

    name: str

    def render(self, row: Mapping[str, str], *, stream: TextIO) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Render a row as a two column Rich table."""

    name: str = "table"
    no_color: bool = False

    def render(self, row: Mapping[str, str], *, stream: TextIO) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color)
        table = Table(box=SIMPLE, show_lines=False)
        header_style = "" if self.no_color else "bold"
        table.add_column("column", header_style=header_style)
        table.add_column("value", header_style=header_style)
        for column, value in row.items():
            table.add_row(column, value if value != "" else "-")
        console.print(table)


@dataclass(slots=True)
class JSONFormatter(OutputFormatter):
    """Render a row as one JSON object."""

    name: str = "json"

    def render(self, row: Mapping[str, str], *, stream: TextIO) -> None:
        json.dump(dict(row), stream, ensure_ascii=False)
        stream.write("\n")
        stream.flush()


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    """Instantiate a formatter by name."""

    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "json":
        return JSONFormatter()
    msg = f"Unsupported format '{name}'. Available formats: table, json."
    raise ValueError(msg)
