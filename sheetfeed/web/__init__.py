"""HTTP surface for sheetfeed."""

from sheetfeed.web.app import create_app

__all__ = ["create_app"]
