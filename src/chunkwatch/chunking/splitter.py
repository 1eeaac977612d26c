"""Chunk boundary helpers for text content and binary streams."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

from .errors import StreamReadError


def expected_chunk_count(length: int, chunk_size: int) -> int:
    """Return ``ceil(length / chunk_size)``; zero for empty input."""
    _check_chunk_size(chunk_size)
    return -(-length // chunk_size)


def split_text(content: str, chunk_size: int) -> List[str]:
    """Cut ``content`` into consecutive slices of ``chunk_size`` characters.

    Every slice but the last has exactly ``chunk_size`` characters and the last
    holds the remainder. An empty string yields no slices.

    Raises:
        ValueError: If ``chunk_size`` is not positive.
    """
    _check_chunk_size(chunk_size)
    return [content[offset : offset + chunk_size] for offset in range(0, len(content), chunk_size)]


def iter_byte_windows(path: Path, chunk_size: int) -> Iterator[bytes]:
    """Yield ``path``'s content as successive windows of at most ``chunk_size`` bytes.

    The file is opened lazily on first iteration and read one window at a time,
    so memory stays bounded by ``chunk_size``. The generator cannot be restarted.

    Raises:
        ValueError: If ``chunk_size`` is not positive.
        StreamReadError: If opening or reading the file fails.
    """
    _check_chunk_size(chunk_size)
    return _read_windows(path, chunk_size)


def _read_windows(path: Path, chunk_size: int) -> Iterator[bytes]:
    delivered = 0
    try:
        with path.open("rb", buffering=chunk_size) as handle:
            while True:
                window = handle.read(chunk_size)
                if not window:
                    return
                yield window
                delivered += 1
    except OSError as exc:
        raise StreamReadError(path, delivered, str(exc)) from exc


def _check_chunk_size(chunk_size: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")


__all__ = ["expected_chunk_count", "split_text", "iter_byte_windows"]
