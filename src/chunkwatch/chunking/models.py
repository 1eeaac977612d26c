"""Data models shared by the chunk pipelines."""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

FileMode = Literal["text", "binary"]
FileKind = Literal["text", "binary", "unsupported"]


class SourceFile(BaseModel):
    """A file picked up for splitting.

    Attributes:
        path: Location of the source file.
        size_bytes: Size on disk when the file was read.
        extension: Suffix exactly as it appears in the file name.
        mode: Pipeline the file is routed to.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    size_bytes: int
    extension: str
    mode: FileMode

    @classmethod
    def from_path(cls, path: Path, mode: FileMode) -> "SourceFile":
        """Stat ``path`` and describe it as a source file."""
        return cls(path=path, size_bytes=path.stat().st_size, extension=path.suffix, mode=mode)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def stem(self) -> str:
        return self.path.stem


class Chunk(BaseModel):
    """One persisted slice of a source file.

    ``start`` and ``end`` are character offsets for text sources and byte
    offsets for binary sources.
    """

    index: int
    start: int
    end: int
    path: Path

    @property
    def length(self) -> int:
        return self.end - self.start


class VerificationResult(BaseModel):
    """Outcome of an integrity check."""

    method: Literal["in_memory", "on_disk"]
    passed: bool
    reassembled_path: Optional[Path] = None


class SplitResult(BaseModel):
    """Everything a pipeline produced for a single source file."""

    source: SourceFile
    chunks: List[Chunk] = Field(default_factory=list)
    expected_chunks: int = 0
    verification: Optional[VerificationResult] = None
    marked_processed: bool = False

    @property
    def verified(self) -> bool:
        return self.verification is not None and self.verification.passed


__all__ = [
    "FileMode",
    "FileKind",
    "SourceFile",
    "Chunk",
    "VerificationResult",
    "SplitResult",
]
