"""File naming conventions for chunk and reassembly outputs."""

from __future__ import annotations

from pathlib import Path


def output_base(output_dir: Path, source: Path) -> Path:
    """Return ``output_dir / <source stem>``, the prefix shared by all outputs."""
    return output_dir / source.stem


def chunk_path(base: Path, index: int, extension: str) -> Path:
    """Return ``<base>-chunk-<index><extension>``.

    Text chunks are numbered from 1 and binary chunks from 0; callers pass the
    index already adjusted for their mode.
    """
    return base.with_name(f"{base.name}-chunk-{index}{extension}")


def concatenated_path(base: Path, extension: str) -> Path:
    """Return ``<base>-concatenated<extension>``."""
    return base.with_name(f"{base.name}-concatenated{extension}")


__all__ = ["output_base", "chunk_path", "concatenated_path"]
