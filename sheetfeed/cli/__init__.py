"""Command line interface."""

from sheetfeed.cli.main import app, create_app

__all__ = ["app", "create_app"]
