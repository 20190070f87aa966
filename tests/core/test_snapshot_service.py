"""Tests for the latest-snapshot orchestration."""

import asyncio

import httpx
import pytest

from sheetfeed.core.config import SheetFeedConfig
from sheetfeed.core.data.cache import SnapshotCache
from sheetfeed.core.exceptions import EmptyDatasetError, HttpStatusError, NetworkError, ParseError
from sheetfeed.core.models import SnapshotSource
from sheetfeed.core.services import SnapshotService
from tests.conftest import SAMPLE_CSV, StubFetcher

T0 = 1_700_000_000.0
TTL = 60.0
URL = "https://docs.example.test/pub?output=csv"


def _service(*outcomes, **kwargs) -> tuple[SnapshotService, StubFetcher]:
    fetcher = StubFetcher(*outcomes, delay=kwargs.pop("delay", 0.0))
    service = SnapshotService(fetcher, cache=SnapshotCache(ttl=TTL), clock=lambda: T0, **kwargs)
    return service, fetcher


class TestRefreshPipeline:
    @pytest.mark.asyncio
    async def test_last_row_selected(self):
        service, _ = _service(SAMPLE_CSV)

        result = await service.get_latest_snapshot(T0)

        assert result.source is SnapshotSource.REFRESHED
        assert result.snapshot.row == {"Timestamp": "2024-01-01T00:01:00Z", "Price": "101"}
        assert result.snapshot.captured_at == T0
        assert result.to_payload() == {"Timestamp": "2024-01-01T00:01:00Z", "Price": "101"}

    @pytest.mark.asyncio
    async def test_single_row_document(self):
        service, _ = _service("Timestamp,Price\nT1,1\n")

        result = await service.get_latest_snapshot(T0)

        assert result.snapshot.row == {"Timestamp": "T1", "Price": "1"}

    @pytest.mark.asyncio
    async def test_every_row_sanitized(self):
        service, _ = _service("Timestamp,Price\nT1,1\n T2\u200b , 100\u200b \n")

        result = await service.get_latest_snapshot(T0)

        assert result.snapshot.row == {"Timestamp": "T2", "Price": "100"}

    @pytest.mark.asyncio
    async def test_multiline_cell_in_last_row(self):
        service, _ = _service('Timestamp,Note\nT1,a\nT2,"line one\nline two"\n')

        result = await service.get_latest_snapshot(T0)

        assert result.snapshot.row["Note"] == "line one\nline two"

    @pytest.mark.asyncio
    async def test_refresh_raises_on_empty_dataset(self):
        service, _ = _service("Timestamp,Price\n")

        with pytest.raises(EmptyDatasetError):
            await service.refresh(T0)
        assert service.cache.get() is None

    @pytest.mark.asyncio
    async def test_missing_expected_column_is_not_fatal(self):
        service, _ = _service("Price\n1\n2\n")

        result = await service.get_latest_snapshot(T0)

        assert result.snapshot.row == {"Price": "2"}


class TestTtlGating:
    @pytest.mark.asyncio
    async def test_no_fetch_before_ttl(self):
        service, fetcher = _service(SAMPLE_CSV)
        await service.get_latest_snapshot(T0)

        result = await service.get_latest_snapshot(T0 + TTL - 0.001)

        assert fetcher.calls == 1
        assert result.source is SnapshotSource.FRESH

    @pytest.mark.asyncio
    async def test_exactly_one_fetch_at_ttl(self):
        service, fetcher = _service(SAMPLE_CSV, "Timestamp,Price\nT3,102\n")
        await service.get_latest_snapshot(T0)

        result = await service.get_latest_snapshot(T0 + TTL)

        assert fetcher.calls == 2
        assert result.source is SnapshotSource.REFRESHED
        assert result.snapshot.row["Price"] == "102"
        assert result.snapshot.captured_at == T0 + TTL

    @pytest.mark.asyncio
    async def test_default_now_uses_clock(self):
        service, fetcher = _service(SAMPLE_CSV)

        await service.get_latest_snapshot()
        await service.get_latest_snapshot()

        assert fetcher.calls == 1
        assert service.cache.get().captured_at == T0


class TestStaleFallback:
    @pytest.mark.asyncio
    async def test_network_error_serves_prior_snapshot(self):
        service, fetcher = _service("Timestamp\nT1\n", NetworkError("connection refused", URL))
        first = await service.get_latest_snapshot(T0)

        result = await service.get_latest_snapshot(T0 + TTL + 5)

        assert fetcher.calls == 2
        assert result.source is SnapshotSource.STALE
        assert result.snapshot is first.snapshot
        assert result.to_payload() == {"Timestamp": "T1"}
        assert service.cache.get().captured_at == T0
        assert isinstance(result.refresh_error, NetworkError)

    @pytest.mark.parametrize(
        "failure",
        [
            HttpStatusError(URL, 429, "Too Many Requests"),
            ParseError("unexpected end of data", line=3),
            "Timestamp\n",
        ],
    )
    @pytest.mark.asyncio
    async def test_any_failure_kind_keeps_cache(self, failure):
        service, _ = _service("Timestamp\nT1\n", failure)
        await service.get_latest_snapshot(T0)

        result = await service.get_latest_snapshot(T0 + TTL)

        assert result.source is SnapshotSource.STALE
        assert result.snapshot.row == {"Timestamp": "T1"}
        assert service.cache.get().captured_at == T0

    @pytest.mark.asyncio
    async def test_stale_snapshot_retried_on_every_call(self):
        service, fetcher = _service("Timestamp\nT1\n", NetworkError("down", URL), NetworkError("down", URL), "Timestamp\nT2\n")
        await service.get_latest_snapshot(T0)

        await service.get_latest_snapshot(T0 + TTL)
        await service.get_latest_snapshot(T0 + TTL + 1)
        recovered = await service.get_latest_snapshot(T0 + TTL + 2)

        assert fetcher.calls == 4
        assert recovered.source is SnapshotSource.REFRESHED
        assert recovered.snapshot.row == {"Timestamp": "T2"}
        assert service.cache.is_valid(T0 + TTL + 3)


class TestEmptyCacheFailure:
    @pytest.mark.asyncio
    async def test_http_status_error_becomes_error_payload(self):
        service, _ = _service(HttpStatusError(URL, 503, "Service Unavailable"))

        result = await service.get_latest_snapshot(T0)

        assert result.source is SnapshotSource.ERROR
        assert result.snapshot is None
        assert not result.ok
        payload = result.to_payload()
        assert list(payload) == ["error"]
        assert "503" in payload["error"]

    @pytest.mark.asyncio
    async def test_header_only_document_is_empty_dataset(self):
        service, _ = _service("Timestamp,Price\n")

        result = await service.get_latest_snapshot(T0)

        assert isinstance(result.error, EmptyDatasetError)
        assert service.cache.get() is None

    @pytest.mark.asyncio
    async def test_error_state_retries_next_call(self):
        service, fetcher = _service(NetworkError("down", URL), SAMPLE_CSV)

        failed = await service.get_latest_snapshot(T0)
        recovered = await service.get_latest_snapshot(T0 + 1)

        assert failed.source is SnapshotSource.ERROR
        assert recovered.source is SnapshotSource.REFRESHED
        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        class BrokenFetcher:
            async def fetch(self):
                raise RuntimeError("bug")

        service = SnapshotService(BrokenFetcher())

        with pytest.raises(RuntimeError, match="bug"):
            await service.get_latest_snapshot(T0)


class TestConcurrentRefresh:
    @pytest.mark.asyncio
    async def test_single_flight_shares_one_fetch(self):
        service, fetcher = _service(SAMPLE_CSV, delay=0.05)

        results = await asyncio.gather(*(service.get_latest_snapshot(T0) for _ in range(5)))

        assert fetcher.calls == 1
        assert service.refresh_attempts == 1
        assert {r.source for r in results} == {SnapshotSource.REFRESHED}
        assert all(r.snapshot is results[0].snapshot for r in results)

    @pytest.mark.asyncio
    async def test_single_flight_shares_failure_and_falls_back(self):
        service, fetcher = _service("Timestamp\nT1\n", NetworkError("down", URL), delay=0.05)
        await service.get_latest_snapshot(T0)

        results = await asyncio.gather(*(service.get_latest_snapshot(T0 + TTL) for _ in range(3)))

        assert fetcher.calls == 2
        assert [r.source for r in results] == [SnapshotSource.STALE] * 3

    @pytest.mark.asyncio
    async def test_stampede_without_single_flight(self):
        service, fetcher = _service(SAMPLE_CSV, delay=0.05, single_flight=False)

        results = await asyncio.gather(*(service.get_latest_snapshot(T0) for _ in range(5)))

        assert fetcher.calls == 5
        assert service.refresh_attempts == 5
        assert all(r.ok for r in results)

    @pytest.mark.asyncio
    async def test_in_flight_cleared_after_refresh(self):
        service, _ = _service(SAMPLE_CSV, delay=0.01)

        await service.get_latest_snapshot(T0)

        assert service.status(T0)["refreshing"] is False


class TestServiceWiring:
    def test_status_without_snapshot(self):
        service, _ = _service(SAMPLE_CSV)

        assert service.status() == {
            "has_snapshot": False,
            "fresh": False,
            "age_seconds": None,
            "captured_at": None,
            "ttl_seconds": TTL,
            "refreshing": False,
        }

    @pytest.mark.asyncio
    async def test_status_with_snapshot(self):
        service, _ = _service(SAMPLE_CSV)
        await service.get_latest_snapshot(T0)

        status = service.status(T0 + 90)

        assert status["has_snapshot"] is True
        assert status["fresh"] is False
        assert status["age_seconds"] == 90.0
        assert status["captured_at"].startswith("2023-11-14T22:13:20")

    @pytest.mark.asyncio
    async def test_from_config(self, sample_csv):
        config = SheetFeedConfig()
        config.source.url = URL
        config.cache.ttl = 5.0
        config.cache.single_flight = False
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=sample_csv))

        service = SnapshotService.from_config(config, transport=transport)
        try:
            result = await service.get_latest_snapshot(T0)
        finally:
            await service.close()

        assert service.cache.ttl == 5.0
        assert service.single_flight is False
        assert result.snapshot.row["Price"] == "101"

    @pytest.mark.asyncio
    async def test_close_delegates_to_fetcher(self):
        service, fetcher = _service(SAMPLE_CSV)

        await service.close()

        assert fetcher.closed is True
