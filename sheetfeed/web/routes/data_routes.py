"""
Latest-row API route
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sheetfeed.core.services import SnapshotService
from sheetfeed.web.models import ErrorResponse
from sheetfeed.web.utils import CORS_HEADERS, get_snapshot_service

router = APIRouter()


@router.get(
    "/latest",
    responses={200: {"description": "Latest row as a flat column to value mapping"}, 500: {"model": ErrorResponse}},
)
async def get_latest(service: SnapshotService = Depends(get_snapshot_service)) -> JSONResponse:
    """
    Return the most recent row of the published document.

    A stale row is served when the upstream is unavailable; 500 is only
    returned if no row has ever been fetched.
    """
    result = await service.get_latest_snapshot()
    headers = {**CORS_HEADERS, "X-Snapshot-Status": result.source.value}

    if result.snapshot is None:
        return JSONResponse(status_code=500, content=result.to_payload(), headers=headers)

    headers["X-Snapshot-Age"] = f"{result.snapshot.age(service.now()):.3f}"
    return JSONResponse(content=result.snapshot.to_dict(), headers=headers)
