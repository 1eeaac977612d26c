"""Directory watching for chunkwatch."""

from .service import FileOutcome, ScanResult, WatchService

__all__ = ["WatchService", "ScanResult", "FileOutcome"]
