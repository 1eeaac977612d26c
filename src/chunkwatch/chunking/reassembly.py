"""Rebuild files from their chunks and compare them with the original."""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import ChunkWriteError, ComparisonReadError, MissingChunkError
from .models import FileMode
from .naming import chunk_path, concatenated_path

LOGGER = logging.getLogger(__name__)


class Reassembler:
    """Concatenate chunk files, in index order, into a single file."""

    def reassemble(
        self,
        base: Path,
        extension: str,
        total_chunks: int,
        *,
        first_index: int = 0,
    ) -> Path:
        """Write chunks ``first_index .. first_index + total_chunks - 1`` to one file.

        The output is opened once and every chunk's bytes are appended before it
        is closed. Chunk content is not inspected; only presence is required.

        Args:
            base: Output prefix shared by the chunks (``<dir>/<stem>``).
            extension: Source extension appended to every name.
            total_chunks: Number of chunks to read.
            first_index: Index of the first chunk (0 for binary, 1 for text).

        Returns:
            Path: The ``<base>-concatenated<ext>`` file.

        Raises:
            MissingChunkError: If an expected chunk file does not exist.
            ChunkWriteError: If the output file cannot be written.
        """
        target = concatenated_path(base, extension)
        try:
            output = target.open("wb")
        except OSError as exc:
            raise ChunkWriteError(target, str(exc)) from exc

        with output:
            for index in range(first_index, first_index + total_chunks):
                source = chunk_path(base, index, extension)
                try:
                    data = source.read_bytes()
                except FileNotFoundError as exc:
                    raise MissingChunkError(source, index) from exc
                try:
                    output.write(data)
                except OSError as exc:
                    raise ChunkWriteError(target, str(exc)) from exc

        LOGGER.info("Chunks concatenated to %s", target)
        return target


def compare_files(
    original: Path,
    candidate: Path,
    mode: FileMode,
    *,
    encoding: str = "utf-8",
) -> bool:
    """Return whether ``candidate`` reproduces ``original`` exactly.

    Both files are read fully. Text mode compares decoded strings; binary mode
    compares raw bytes.

    Raises:
        ComparisonReadError: If either file cannot be read, or cannot be decoded
            with ``encoding`` in text mode.
    """
    if mode == "text":
        identical = _read_text(original, encoding) == _read_text(candidate, encoding)
    else:
        identical = _read_bytes(original) == _read_bytes(candidate)

    if identical:
        LOGGER.info("Files are identical. No data loss. (%s)", original.name)
    else:
        LOGGER.error("Files do not match. Data might be lost. (%s)", original.name)
    return identical


def _read_text(path: Path, encoding: str) -> str:
    try:
        with path.open("r", encoding=encoding, newline="") as handle:
            return handle.read()
    except (OSError, LookupError, UnicodeDecodeError) as exc:
        raise ComparisonReadError(path, str(exc)) from exc


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ComparisonReadError(path, str(exc)) from exc


__all__ = ["Reassembler", "compare_files"]
