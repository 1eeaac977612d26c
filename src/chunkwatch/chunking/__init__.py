"""Chunk splitting, reassembly, and verification."""

from .classifier import FileClassifier
from .errors import (
    ChunkWriteError,
    ChunkwatchError,
    ComparisonReadError,
    DirectoryReadError,
    MissingChunkError,
    StreamReadError,
    UnsupportedExtensionError,
)
from .models import Chunk, FileKind, FileMode, SourceFile, SplitResult, VerificationResult
from .pipeline import BinaryPipeline, ChunkPipeline, TextPipeline
from .reassembly import Reassembler, compare_files
from .splitter import expected_chunk_count, iter_byte_windows, split_text

__all__ = [
    "FileClassifier",
    "ChunkwatchError",
    "DirectoryReadError",
    "UnsupportedExtensionError",
    "StreamReadError",
    "ChunkWriteError",
    "MissingChunkError",
    "ComparisonReadError",
    "Chunk",
    "FileKind",
    "FileMode",
    "SourceFile",
    "SplitResult",
    "VerificationResult",
    "TextPipeline",
    "BinaryPipeline",
    "ChunkPipeline",
    "Reassembler",
    "compare_files",
    "expected_chunk_count",
    "iter_byte_windows",
    "split_text",
]
