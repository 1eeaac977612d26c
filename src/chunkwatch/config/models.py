"""Configuration models describing chunkwatch settings."""

from __future__ import annotations

import codecs
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CHUNK_SIZE = 10 * 1024 * 1024
DEFAULT_TEXT_EXTENSIONS = [".txt", ".json", ".csv", ".html", ".xml", ".md", ".js", ".css"]
DEFAULT_BINARY_EXTENSIONS = [".pdf", ".jpg", ".jpeg", ".png", ".gif"]


class ChunkwatchBaseModel(BaseModel):
    """Shared configuration for chunkwatch Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ChunkingSettings(ChunkwatchBaseModel):
    """Settings controlling how files are cut into chunks.

    Attributes:
        chunk_size_bytes: Maximum chunk length. Characters in text mode, bytes in binary mode.
        text_encoding: Encoding used to decode text sources and encode text chunks.
            Encodings that prefix output with a byte order mark (``utf-8-sig``,
            ``utf-16``, ``utf-32``) are rejected: every chunk would carry its own
            mark and the chunks would no longer concatenate to the source bytes.
            Use an explicit-endian codec such as ``utf-16-le`` instead.
    """

    chunk_size_bytes: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    text_encoding: str = "utf-8"

    @field_validator("text_encoding")
    @classmethod
    def _reject_bom_encodings(cls, value: str) -> str:
        try:
            codecs.lookup(value)
            single, double = "a".encode(value), "aa".encode(value)
        except (LookupError, UnicodeError) as exc:
            raise ValueError(f"Unusable text encoding {value}: {exc}") from exc
        if single * 2 != double:
            raise ValueError(
                f"Text encoding {value} writes a byte order mark into every chunk; "
                "use a variant without one (for example utf-8 or utf-16-le)."
            )
        return value


class WatchSettings(ChunkwatchBaseModel):
    """Directory polling options.

    Attributes:
        input_dir: Directory scanned for new files.
        output_dir: Directory receiving chunk and reassembly files.
        poll_interval_seconds: Delay between scans.
        file_timeout_seconds: Maximum time a scan waits on one file; 0 disables the limit.
        persist_processed: Whether processed names survive restarts via a JSON ledger.
    """

    input_dir: str = "./input"
    output_dir: str = "./output"
    poll_interval_seconds: float = Field(default=10.0, gt=0)
    file_timeout_seconds: float = Field(default=0.0, ge=0)
    persist_processed: bool = False


class ClassificationSettings(ChunkwatchBaseModel):
    """Extension allow-lists used to route files to a pipeline.

    Attributes:
        text_extensions: Extensions handled by the text pipeline.
        binary_extensions: Extensions handled by the binary pipeline.
        unsupported_policy: ``skip`` reports an unsupported file once, ``retry``
            reports it on every scan.
    """

    text_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_TEXT_EXTENSIONS))
    binary_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_BINARY_EXTENSIONS))
    unsupported_policy: Literal["skip", "retry"] = "skip"

    @field_validator("text_extensions", "binary_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized: List[str] = []
        for raw in value:
            ext = raw.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            normalized.append(ext)
        return normalized


class VerificationSettings(ChunkwatchBaseModel):
    """Integrity check behavior.

    Attributes:
        policy: ``informational`` marks files processed whatever the check says;
            ``gate`` only marks files whose check passed.
        text_on_disk: Also reassemble text chunks from disk and compare files.
    """

    policy: Literal["informational", "gate"] = "informational"
    text_on_disk: bool = False


class LoggingSettings(ChunkwatchBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; rotation applies when set.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(ChunkwatchBaseModel):
    """CLI presentation defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class ChunkwatchConfig(ChunkwatchBaseModel):
    """Top-level configuration struct for chunkwatch."""

    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_TEXT_EXTENSIONS",
    "DEFAULT_BINARY_EXTENSIONS",
    "ChunkwatchBaseModel",
    "ChunkingSettings",
    "WatchSettings",
    "ClassificationSettings",
    "VerificationSettings",
    "LoggingSettings",
    "CLIOptions",
    "ChunkwatchConfig",
]
