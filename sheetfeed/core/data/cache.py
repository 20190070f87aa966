"""Single-slot snapshot cache with time based validity."""

from __future__ import annotations

from sheetfeed.core.models import Row, Snapshot

DEFAULT_TTL = 60.0


class SnapshotCache:
    """Hold the last successfully parsed row and its capture time.

    The slot starts empty and is only ever overwritten by :meth:`replace`;
    failures never clear it. Validity is a function of elapsed time alone.
    """

    def __init__(self, ttl: float = DEFAULT_TTL) -> None:
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        self.ttl = ttl
        self._snapshot: Snapshot | None = None

    def is_valid(self, now: float) -> bool:
        """Return True when a snapshot exists and is younger than the TTL."""

        if self._snapshot is None:
            return False
        return self._snapshot.age(now) < self.ttl

    def get(self) -> Snapshot | None:
        """Return the current snapshot whether or not it is still valid."""

        return self._snapshot

    def replace(self, row: Row, now: float) -> Snapshot:
        """Unconditionally store ``row`` as the snapshot captured at ``now``."""

        self._snapshot = Snapshot(row=dict(row), captured_at=now)
        return self._snapshot

    def age(self, now: float) -> float | None:
        if self._snapshot is None:
            return None
        return self._snapshot.age(now)


__all__ = ["DEFAULT_TTL", "SnapshotCache"]
