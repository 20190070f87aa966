"""Command line interface for sheetfeed."""

from __future__ import annotations

import asyncio
import sys

import typer

from sheetfeed.core.config import ConfigManager, SheetFeedConfig
from sheetfeed.core.logging import configure_logging
from sheetfeed.core.models import SnapshotResult
from sheetfeed.core.services import SnapshotService

from .formatters import create_formatter

FAILURE_EXIT_CODE = 1
VALIDATION_EXIT_CODE = 2


def get_snapshot_service(config: SheetFeedConfig) -> SnapshotService:
    """Factory hook for obtaining a :class:`SnapshotService`."""

    return SnapshotService.from_config(config)


async def _fetch_once(service: SnapshotService) -> SnapshotResult:
    try:
        return await service.get_latest_snapshot()
    finally:
        await service.close()


def create_app() -> typer.Typer:
    """Create the Typer application."""

    app = typer.Typer(add_completion=False, help="Latest row of a published spreadsheet")

    @app.callback()
    def main(
        ctx: typer.Context,
        log_level: str = typer.Option("WARNING", "--log-level", help="Logging level.", show_default=True),
    ) -> None:
        ctx.ensure_object(dict)
        ctx.obj["log_level"] = log_level.upper()
        configure_logging(log_level, serialize=False)

    @app.command("latest")
    def latest_command(
        url: str | None = typer.Option(None, "--url", help="Document URL (defaults to SHEETS_URL)."),
        format: str = typer.Option("table", "--format", "-f", help="Output format (table or json)."),
        no_color: bool = typer.Option(False, "--no-color", help="Disable colorized table output."),
    ) -> None:
        """Fetch the document once and print its last row."""

        try:
            formatter = create_formatter(format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        manager = ConfigManager()
        if url:
            manager.update_config(source={"url": url})
        try:
            service = get_snapshot_service(manager.get_config())
        except ValueError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc

        result = asyncio.run(_fetch_once(service))
        if result.snapshot is None:
            typer.echo(f"Error: {result.to_payload()['error']}", err=True)
            raise typer.Exit(code=FAILURE_EXIT_CODE)
        formatter.render(result.snapshot.to_dict(), stream=sys.stdout)

    @app.command("serve")
    def serve_command(
        host: str | None = typer.Option(None, "--host", help="Bind address."),
        port: int | None = typer.Option(None, "--port", help="Listening port (defaults to PORT or 3000)."),
        reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
    ) -> None:
        """Run the HTTP API."""

        from sheetfeed.web.main import run

        server = ConfigManager().get_config().server
        if host:
            server.host = host
        if port is not None:
            server.port = port
        server.reload = reload or server.reload
        run(server)

    return app


app = create_app()
