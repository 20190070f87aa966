"""Pytest configuration for the sheetfeed test suite."""

from __future__ import annotations

import asyncio

import pytest

from sheetfeed.core.exceptions import SheetFeedError
from sheetfeed.core.models import RawDocument

SAMPLE_CSV = "Timestamp,Price\n2024-01-01T00:00:00Z,100\n2024-01-01T00:01:00Z,101\n"


class StubFetcher:
    """In-memory document source returning queued payloads or errors."""

    def __init__(self, *outcomes: str | SheetFeedError, delay: float = 0.0) -> None:
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0
        self.closed = False

    async def fetch(self) -> RawDocument:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes[0] if len(self.outcomes) == 1 else self.outcomes.pop(0)
        if isinstance(outcome, SheetFeedError):
            raise outcome
        return RawDocument(text=outcome, retrieved_at=0.0, url="https://example.test/doc.csv")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--sheetfeed-run-integration",
        action="store_true",
        default=False,
        help="Run sheetfeed integration tests that require network access.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: marks sheetfeed tests requiring network or external services",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--sheetfeed-run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration tests require --sheetfeed-run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
