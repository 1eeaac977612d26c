"""Extension based routing of source files to a pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from chunkwatch.config.models import (
    DEFAULT_BINARY_EXTENSIONS,
    DEFAULT_TEXT_EXTENSIONS,
    ClassificationSettings,
)

from .models import FileKind


class FileClassifier:
    """Map file extensions onto ``text``, ``binary``, or ``unsupported``."""

    def __init__(
        self,
        text_extensions: Iterable[str] = DEFAULT_TEXT_EXTENSIONS,
        binary_extensions: Iterable[str] = DEFAULT_BINARY_EXTENSIONS,
    ) -> None:
        self.text_extensions = frozenset(ext.lower() for ext in text_extensions)
        self.binary_extensions = frozenset(ext.lower() for ext in binary_extensions)

    @classmethod
    def from_settings(cls, settings: ClassificationSettings) -> "FileClassifier":
        return cls(settings.text_extensions, settings.binary_extensions)

    def classify(self, extension: str) -> FileKind:
        """Return the pipeline kind for ``extension`` (compared case-insensitively)."""
        ext = extension.lower()
        if ext in self.text_extensions:
            return "text"
        if ext in self.binary_extensions:
            return "binary"
        return "unsupported"

    def classify_path(self, path: Path) -> FileKind:
        return self.classify(path.suffix)


__all__ = ["FileClassifier"]
