"""Service layer."""

from sheetfeed.core.services.snapshot import DocumentSource, SnapshotService

__all__ = ["DocumentSource", "SnapshotService"]
