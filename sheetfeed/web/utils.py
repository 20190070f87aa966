"""Helpers shared by the web routes."""

from fastapi import Request

from sheetfeed.core.services import SnapshotService

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


def get_request_id(request: Request) -> str | None:
    """Return the inbound X-Request-ID header, if any."""
    return request.headers.get("X-Request-ID")


def get_snapshot_service(request: Request) -> SnapshotService:
    return request.app.state.snapshot_service
