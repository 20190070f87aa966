"""
Liveness and cache status routes
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from sheetfeed import __version__
from sheetfeed.core.services import SnapshotService
from sheetfeed.web.models import CacheStatus, HealthResponse
from sheetfeed.web.utils import CORS_HEADERS, get_snapshot_service

router = APIRouter()

LIVENESS_MESSAGE = "sheetfeed data API is running. Visit /api/latest"


@router.get("/", response_class=PlainTextResponse)
async def liveness() -> PlainTextResponse:
    return PlainTextResponse(LIVENESS_MESSAGE, headers=CORS_HEADERS)


@router.get("/health", response_model=HealthResponse)
async def health(service: SnapshotService = Depends(get_snapshot_service)) -> HealthResponse:
    """Report cache state; never contacts the upstream."""
    return HealthResponse(version=__version__, cache=CacheStatus(**service.status()))
