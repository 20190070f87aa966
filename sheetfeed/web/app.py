"""
FastAPI application factory
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from sheetfeed import __version__
from sheetfeed.core.config import ConfigManager, SheetFeedConfig
from sheetfeed.core.logging import configure_logging, log_context
from sheetfeed.core.services import SnapshotService
from sheetfeed.web.routes import data_router, health_router
from sheetfeed.web.utils import CORS_HEADERS, get_request_id


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the snapshot service on startup unless one was injected."""
    owned: SnapshotService | None = None
    if getattr(app.state, "snapshot_service", None) is None:
        config: SheetFeedConfig = app.state.config or ConfigManager().get_config()
        app.state.config = config
        configure_logging(
            config.logging.level,
            serialize=config.logging.serialize,
            file_output=bool(config.logging.file),
            file_path=config.logging.file,
        )
        owned = SnapshotService.from_config(config)
        app.state.snapshot_service = owned
        logger.info(f"Serving latest row of {owned.fetcher.url} (ttl={config.cache.ttl}s)")

    yield

    if owned is not None:
        await owned.close()


def create_app(
    service: SnapshotService | None = None,
    config: SheetFeedConfig | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: pre-built service (tests); built from ``config`` at startup otherwise
        config: configuration; loaded from file and environment when omitted
    """
    app = FastAPI(
        title="sheetfeed",
        description="Latest row of a published spreadsheet, cached with stale-on-error fallback",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.snapshot_service = service
    app.state.config = config

    _setup_middleware(app)
    _setup_routes(app)
    _setup_exception_handlers(app)

    return app


def _setup_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        with log_context(trace_id=get_request_id(request), path=request.url.path) as trace_id:
            response = await call_next(request)
            response.headers["X-Request-ID"] = trace_id
            return response


def _setup_routes(app: FastAPI) -> None:
    app.include_router(data_router, prefix="/api", tags=["data"])
    app.include_router(health_router, tags=["health"])


def _setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Unexpected errors; refresh failures never reach here."""
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "internal server error"},
            headers=CORS_HEADERS,
        )


app = create_app()
