"""Errors raised while splitting, reassembling, or verifying files."""

from __future__ import annotations

from pathlib import Path


class ChunkwatchError(Exception):
    """Base exception for chunk pipeline failures."""


class DirectoryReadError(ChunkwatchError):
    """Raised when the input directory cannot be listed."""

    def __init__(self, directory: Path, reason: str) -> None:
        super().__init__(f"Error reading input folder {directory}: {reason}")
        self.directory = directory


class UnsupportedExtensionError(ChunkwatchError):
    """Raised when a file's extension is in neither allow-list."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Unsupported file type: {path.suffix or '<none>'} ({path.name})")
        self.path = path


class StreamReadError(ChunkwatchError):
    """Raised when reading a source file fails part way through."""

    def __init__(self, path: Path, chunks_written: int, reason: str) -> None:
        super().__init__(
            f"Error reading file {path.name} after {chunks_written} chunk(s): {reason}"
        )
        self.path = path
        self.chunks_written = chunks_written


class ChunkWriteError(ChunkwatchError):
    """Raised when a chunk or reassembly file cannot be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Error writing {path}: {reason}")
        self.path = path


class ComparisonReadError(ChunkwatchError):
    """Raised when a file cannot be read or decoded for comparison."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Error reading {path} for comparison: {reason}")
        self.path = path


class MissingChunkError(ChunkwatchError):
    """Raised when an expected chunk file is absent during reassembly."""

    def __init__(self, path: Path, index: int) -> None:
        super().__init__(f"Missing chunk {index}: {path}")
        self.path = path
        self.index = index


__all__ = [
    "ChunkwatchError",
    "DirectoryReadError",
    "UnsupportedExtensionError",
    "StreamReadError",
    "ChunkWriteError",
    "MissingChunkError",
    "ComparisonReadError",
]
