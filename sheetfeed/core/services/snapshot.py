"""Latest-snapshot orchestration: cache gate, refresh pipeline, stale fallback."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from loguru import logger

from sheetfeed.core.config import SheetFeedConfig
from sheetfeed.core.data.cache import SnapshotCache
from sheetfeed.core.data.fetcher import DocumentFetcher
from sheetfeed.core.data.parser import TableParser
from sheetfeed.core.data.sanitizer import sanitize_row
from sheetfeed.core.exceptions import EmptyDatasetError, SheetFeedError
from sheetfeed.core.models import RawDocument, Row, Snapshot, SnapshotResult, SnapshotSource


class DocumentSource(Protocol):
    """Anything that can fetch the raw document once."""

    async def fetch(self) -> RawDocument: ...


class SnapshotService:
    """Serve the last row of the upstream document.

    Refreshes happen only when the cached snapshot is older than the cache
    TTL. A failed refresh never touches the cache: if a snapshot was ever
    produced it is served again (possibly stale), otherwise the failure is
    returned as an error result. Only :class:`SheetFeedError` is treated as a
    refresh failure.

    With ``single_flight`` enabled, callers arriving while a refresh is in
    progress await that refresh instead of starting their own.
    """

    def __init__(
        self,
        fetcher: DocumentSource,
        parser: TableParser | None = None,
        cache: SnapshotCache | None = None,
        *,
        single_flight: bool = True,
        expected_columns: Sequence[str] = ("Timestamp",),
        clock: Callable[[], float] = time.time,
        source_name: str = "sheets",
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser or TableParser()
        self.cache = cache or SnapshotCache()
        self.single_flight = single_flight
        self.expected_columns = tuple(expected_columns)
        self._clock = clock
        self._log = logger.bind(source=source_name)
        self._inflight: asyncio.Task[Snapshot] | None = None
        self.refresh_attempts = 0

    @classmethod
    def from_config(cls, config: SheetFeedConfig, **fetcher_options: Any) -> "SnapshotService":
        """Build a service and its fetcher from ``config``.

        ``fetcher_options`` are passed to :class:`DocumentFetcher` (e.g. a
        test ``transport``).
        """
        source = config.source
        fetcher = DocumentFetcher(
            source.url,
            proxy_url=source.proxy_url,
            timeout=source.timeout,
            user_agent=source.user_agent,
            **fetcher_options,
        )
        return cls(
            fetcher,
            cache=SnapshotCache(ttl=config.cache.ttl),
            single_flight=config.cache.single_flight,
            expected_columns=source.expected_columns,
        )

    def now(self) -> float:
        return self._clock()

    async def close(self) -> None:
        """Release the fetcher's connection pool, if it has one."""
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()

    async def get_latest_snapshot(self, now: float | None = None) -> SnapshotResult:
        """Return the current snapshot, refreshing it first if it has expired."""

        now = self._clock() if now is None else now
        if self.cache.is_valid(now):
            self._log.debug("Serving cached snapshot")
            return SnapshotResult(SnapshotSource.FRESH, snapshot=self.cache.get())

        try:
            snapshot = await self._refresh_shared(now)
        except SheetFeedError as error:
            return self._fallback(error, now)
        return SnapshotResult(SnapshotSource.REFRESHED, snapshot=snapshot)

    async def refresh(self, now: float | None = None) -> Snapshot:
        """Run fetch, parse, sanitize and last-row selection once.

        Raises:
            SheetFeedError: on any fetch or parse failure, or when the
                document has no data rows. The cache is left unchanged.
        """
        now = self._clock() if now is None else now
        self.refresh_attempts += 1
        self._log.info("Fetching latest document")

        raw = await self.fetcher.fetch()
        rows = [sanitize_row(row) for row in self.parser.iter_rows(raw.text)]
        self._log.info(f"Document parsed, {len(rows)} data rows")
        if not rows:
            raise EmptyDatasetError()

        latest = rows[-1]
        self._check_expected_columns(latest)
        snapshot = self.cache.replace(latest, now)
        self._log.bind(row_count=len(rows)).info(
            f"Snapshot refreshed, Timestamp={latest.get('Timestamp', '<missing>')}"
        )
        return snapshot

    def status(self, now: float | None = None) -> dict[str, Any]:
        """Describe the cache without triggering a refresh."""

        now = self._clock() if now is None else now
        snapshot = self.cache.get()
        return {
            "has_snapshot": snapshot is not None,
            "fresh": self.cache.is_valid(now),
            "age_seconds": None if snapshot is None else round(snapshot.age(now), 3),
            "captured_at": None if snapshot is None else snapshot.captured_at_datetime.isoformat(),
            "ttl_seconds": self.cache.ttl,
            "refreshing": self._inflight is not None,
        }

    async def _refresh_shared(self, now: float) -> Snapshot:
        if not self.single_flight:
            return await self.refresh(now)

        # No await between the check and the assignment, so this is atomic
        # on the event loop.
        task = self._inflight
        if task is None:
            task = asyncio.create_task(self.refresh(now))
            self._inflight = task
            task.add_done_callback(self._clear_inflight)
        else:
            self._log.debug("Joining in-flight refresh")
        return await asyncio.shield(task)

    def _clear_inflight(self, task: asyncio.Task[Snapshot]) -> None:
        if self._inflight is task:
            self._inflight = None

    def _fallback(self, error: SheetFeedError, now: float) -> SnapshotResult:
        self._log.bind(error_code=error.error_code, **error.details).error(f"Refresh failed: {error.message}")

        previous = self.cache.get()
        if previous is not None:
            self._log.bind(age_seconds=round(previous.age(now), 3)).warning(
                "Serving stale snapshot after refresh failure"
            )
            return SnapshotResult(SnapshotSource.STALE, snapshot=previous, refresh_error=error)
        return SnapshotResult(SnapshotSource.ERROR, error=error)

    def _check_expected_columns(self, row: Row) -> None:
        missing = [column for column in self.expected_columns if column not in row]
        if missing:
            self._log.bind(missing_columns=missing).warning(
                f"Document is missing expected columns: {', '.join(missing)}"
            )


__all__ = ["DocumentSource", "SnapshotService"]
