"""sheetfeed - serve the latest row of a published spreadsheet export.

The upstream document is fetched at most once per cache TTL. When a refresh
fails the last good row keeps being served.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
