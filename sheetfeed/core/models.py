"""Core data models for the snapshot pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from sheetfeed.core.exceptions import SheetFeedError

Row = dict[str, str]
"""One parsed record: column name to cell text, in header order."""


@dataclass(slots=True, frozen=True)
class RawDocument:
    """Text payload of one fetch and the moment it was retrieved."""

    text: str
    retrieved_at: float
    url: str = ""


@dataclass(slots=True, frozen=True)
class Snapshot:
    """The row currently served as latest, with its capture time."""

    row: Row
    captured_at: float

    def age(self, now: float) -> float:
        return now - self.captured_at

    @property
    def captured_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.captured_at, tz=UTC)

    def to_dict(self) -> Row:
        return dict(self.row)


class SnapshotSource(str, Enum):
    """How a result of :meth:`SnapshotService.get_latest_snapshot` was produced."""

    FRESH = "fresh"
    REFRESHED = "refreshed"
    STALE = "stale"
    ERROR = "error"


@dataclass(slots=True)
class SnapshotResult:
    """Outcome of one ``get_latest_snapshot`` call.

    Exactly one of ``snapshot`` and ``error`` is set. ``error`` is only set
    when no snapshot has ever been produced.
    """

    source: SnapshotSource
    snapshot: Snapshot | None = None
    error: SheetFeedError | None = None
    refresh_error: SheetFeedError | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.snapshot is not None

    def to_payload(self) -> dict[str, str]:
        if self.snapshot is not None:
            return self.snapshot.to_dict()
        if self.error is None:
            raise SheetFeedError("Snapshot result holds neither a snapshot nor an error", "INVALID_RESULT")
        return self.error.to_payload()
