"""Stores tracking which source files have already been split."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from .errors import StateError
from .models import LedgerState, ProcessedRecord

DEFAULT_STATE_DIRNAME = ".chunkwatch"
LEDGER_FILENAME = "processed.json"


class ProcessedSet:
    """In-memory record of processed and ignored file names.

    Names are never evicted; the set lives as long as the instance. Access is
    lock protected so a timed-out worker can still record its file safely.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, ProcessedRecord] = {}
        self._ignored: set[str] = set()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def names(self) -> list[str]:
        """Return processed names in insertion order."""
        with self._lock:
            return list(self._records)

    def get(self, name: str) -> ProcessedRecord | None:
        with self._lock:
            return self._records.get(name)

    def add(self, record: ProcessedRecord) -> None:
        """Record ``record.name`` as processed, replacing any earlier record.

        Raises:
            StateError: If the change cannot be persisted; the earlier record is restored.
        """
        with self._lock:
            previous = self._records.get(record.name)
            self._records[record.name] = record
        try:
            self._changed()
        except StateError:
            with self._lock:
                if previous is None:
                    self._records.pop(record.name, None)
                else:
                    self._records[record.name] = previous
            raise

    def ignore(self, name: str) -> None:
        """Remember ``name`` as unsupported so later scans can skip it quietly."""
        with self._lock:
            if name in self._ignored:
                return
            self._ignored.add(name)
        try:
            self._changed()
        except StateError:
            with self._lock:
                self._ignored.discard(name)
            raise

    def is_ignored(self, name: str) -> bool:
        with self._lock:
            return name in self._ignored

    def _changed(self) -> None:
        """Hook invoked after every mutation."""


class ProcessedLedger(ProcessedSet):
    """Processed set persisted as JSON so it survives restarts."""

    def __init__(self, path: Path) -> None:
        """Load the ledger at ``path`` if it exists.

        Args:
            path: JSON file backing the ledger.

        Raises:
            StateError: If the existing file cannot be parsed.
        """
        super().__init__()
        self._path = path
        self._write_lock = threading.Lock()
        self._state = self._read()
        self._records.update(self._state.records)
        self._ignored.update(self._state.ignored)

    @classmethod
    def for_output_dir(cls, output_dir: Path) -> "ProcessedLedger":
        """Return the ledger stored under ``<output_dir>/.chunkwatch``."""
        return cls(output_dir / DEFAULT_STATE_DIRNAME / LEDGER_FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> LedgerState:
        if not self._path.exists():
            return LedgerState()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return LedgerState.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StateError(f"Invalid processed ledger data in {self._path}: {exc}") from exc

    def _changed(self) -> None:
        # Snapshot and write happen under one lock so an older snapshot never lands last.
        with self._write_lock:
            with self._lock:
                self._state.records = dict(self._records)
                self._state.ignored = sorted(self._ignored)
                self._state.updated_at = datetime.now(timezone.utc)
                payload = self._state.model_dump(mode="json")
            self._write(payload)

    def _write(self, payload: dict[str, object]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StateError(f"Unable to write processed ledger {self._path}: {exc}") from exc


__all__ = [
    "DEFAULT_STATE_DIRNAME",
    "LEDGER_FILENAME",
    "ProcessedSet",
    "ProcessedLedger",
    "ProcessedRecord",
    "LedgerState",
    "StateError",
]
