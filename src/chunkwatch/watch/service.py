"""Polling watch service that feeds new files through the chunk pipeline."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from chunkwatch.chunking import (
    ChunkPipeline,
    ChunkwatchError,
    DirectoryReadError,
    SplitResult,
    UnsupportedExtensionError,
)
from chunkwatch.chunking.models import FileMode
from chunkwatch.config import ChunkwatchConfig
from chunkwatch.state import ProcessedLedger, ProcessedSet, StateError

LOGGER = logging.getLogger(__name__)

WORKER_JOIN_SECONDS = 5.0

OutcomeStatus = Literal["processed", "unverified", "failed", "unsupported", "timed_out"]


@dataclass(slots=True)
class FileOutcome:
    """What happened to one file during a scan.

    Attributes:
        path: Source file that was dispatched.
        status: Final status for the file in this scan.
        result: Pipeline result when the pipeline finished.
        error: Error message when processing failed.
    """

    path: Path
    status: OutcomeStatus
    result: Optional[SplitResult] = None
    error: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.path.name,
            "status": self.status,
            "error": self.error,
        }
        if self.result is not None:
            verification = self.result.verification
            payload.update(
                {
                    "mode": self.result.source.mode,
                    "size_bytes": self.result.source.size_bytes,
                    "chunks": [chunk.path.as_posix() for chunk in self.result.chunks],
                    "expected_chunks": self.result.expected_chunks,
                    "verification": verification.model_dump(mode="json") if verification else None,
                    "marked_processed": self.result.marked_processed,
                }
            )
        return payload


@dataclass(slots=True)
class ScanResult:
    """Outcome metadata describing one directory scan.

    Attributes:
        tick: Sequential scan number for this service.
        input_dir: Directory that was listed.
        output_dir: Directory receiving chunks.
        started_at: UTC timestamp of the scan.
        outcomes: Per-file outcomes for dispatched files.
        error: Directory read error that abandoned the scan, if any.
    """

    tick: int
    input_dir: Path
    output_dir: Path
    started_at: datetime
    outcomes: list[FileOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def counts(self) -> dict[str, int]:
        counts = dict.fromkeys(("processed", "unverified", "failed", "unsupported", "timed_out"), 0)
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        counts["chunks"] = sum(
            len(outcome.result.chunks) for outcome in self.outcomes if outcome.result is not None
        )
        return counts

    def to_payload(self) -> dict[str, Any]:
        return {
            "context": {
                "tick": self.tick,
                "input_dir": self.input_dir.as_posix(),
                "output_dir": self.output_dir.as_posix(),
                "started_at": self.started_at.isoformat(),
            },
            "counts": self.counts,
            "files": [outcome.to_payload() for outcome in self.outcomes],
            "error": self.error,
        }


class WatchService:
    """Poll an input directory and split every file not seen before."""

    def __init__(
        self,
        config: ChunkwatchConfig,
        *,
        input_dir: Path | None = None,
        output_dir: Path | None = None,
        store: ProcessedSet | None = None,
        interval_override: float | None = None,
    ) -> None:
        """Initialize the watch service.

        Args:
            config: Loaded chunkwatch configuration.
            input_dir: Directory to poll; defaults to ``watch.input_dir``.
            output_dir: Directory receiving chunks; defaults to ``watch.output_dir``.
            store: Processed-name store. Defaults to an in-memory set, or the JSON
                ledger under the output directory when ``watch.persist_processed`` is set.
            interval_override: Poll interval in seconds replacing the configured value.

        Raises:
            ValueError: If ``interval_override`` is not positive.
        """
        settings = config.watch
        self._config = config
        self._input_dir = (input_dir or Path(settings.input_dir)).expanduser().resolve()
        self._output_dir = (output_dir or Path(settings.output_dir)).expanduser().resolve()
        if interval_override is not None and interval_override <= 0:
            raise ValueError("Poll interval must be greater than zero.")
        self._interval = interval_override or settings.poll_interval_seconds
        self._timeout = settings.file_timeout_seconds
        if store is None:
            if settings.persist_processed:
                store = ProcessedLedger.for_output_dir(self._output_dir)
            else:
                store = ProcessedSet()
        self._store = store
        self._pipeline = ChunkPipeline(config, output_dir=self._output_dir, store=store)
        self._stop_event = threading.Event()
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()
        self._workers: list[threading.Thread] = []
        self._tick = 0

    @property
    def store(self) -> ProcessedSet:
        return self._store

    @property
    def pipeline(self) -> ChunkPipeline:
        return self._pipeline

    @property
    def input_dir(self) -> Path:
        return self._input_dir

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def scan_once(self) -> ScanResult:
        """List the input directory once and process every new file.

        Directory listing errors are logged and abandon the scan; per-file errors
        are logged and recorded on the outcome without stopping the scan.
        """
        self._tick += 1
        scan = ScanResult(
            tick=self._tick,
            input_dir=self._input_dir,
            output_dir=self._output_dir,
            started_at=datetime.now(timezone.utc),
        )
        try:
            entries = self._list_input()
        except DirectoryReadError as exc:
            LOGGER.error("%s", exc)
            scan.error = str(exc)
            return scan

        for path in entries:
            if self._stop_event.is_set():
                break
            name = path.name
            if name in self._store or self._store.is_ignored(name) or self._is_in_flight(name):
                continue
            scan.outcomes.append(self._dispatch(path))
        return scan

    def run(self, callback: Callable[[ScanResult], None] | None = None) -> None:
        """Scan immediately, then every poll interval, until :meth:`stop` is called.

        Args:
            callback: Optional callable invoked with each scan result.
        """
        self._stop_event.clear()
        LOGGER.info("Watching %s every %.1fs", self._input_dir, self._interval)
        while not self._stop_event.is_set():
            scan = self.scan_once()
            if callback is not None:
                callback(scan)
            if self._stop_event.wait(self._interval):
                break
        self.join_workers()

    def stop(self, timeout: float | None = WORKER_JOIN_SECONDS) -> None:
        """Ask the polling loop to exit after the current file.

        Args:
            timeout: Seconds to wait for timed-out workers still writing chunks;
                ``None`` waits for them indefinitely.
        """
        self._stop_event.set()
        self.join_workers(timeout)

    def join_workers(self, timeout: float | None = WORKER_JOIN_SECONDS) -> list[str]:
        """Wait for workers left behind by timed-out files.

        Args:
            timeout: Total seconds to wait across all workers; ``None`` waits indefinitely.

        Returns:
            list[str]: Names of workers still running when the wait ended.
        """
        with self._in_flight_lock:
            workers = list(self._workers)
        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)
        with self._in_flight_lock:
            self._workers = [worker for worker in self._workers if worker.is_alive()]
            pending = [worker.name for worker in self._workers]
        if pending:
            LOGGER.warning("Workers still running after stop: %s", ", ".join(pending))
        return pending

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _list_input(self) -> list[Path]:
        try:
            entries = sorted(self._input_dir.iterdir())
        except OSError as exc:
            raise DirectoryReadError(self._input_dir, str(exc)) from exc
        return [path for path in entries if not path.name.startswith(".") and path.is_file()]

    def _dispatch(self, path: Path) -> FileOutcome:
        kind = self._pipeline.classifier.classify_path(path)
        if kind == "unsupported":
            LOGGER.error("%s", UnsupportedExtensionError(path))
            if self._config.classification.unsupported_policy == "skip":
                try:
                    self._store.ignore(path.name)
                except StateError as exc:
                    LOGGER.error("Could not record %s as ignored: %s", path.name, exc)
            return FileOutcome(path=path, status="unsupported")

        if self._timeout > 0:
            return self._process_with_timeout(path, kind)
        return self._process(path, kind)

    def _process(self, path: Path, mode: FileMode) -> FileOutcome:
        try:
            result = self._pipeline.process(path, mode)
        except (ChunkwatchError, OSError, StateError) as exc:
            LOGGER.error("Processing %s failed: %s", path.name, exc)
            return FileOutcome(path=path, status="failed", error=str(exc))

        LOGGER.info(
            "Finished %s: %d chunk(s), verification %s",
            path.name,
            len(result.chunks),
            "Pass" if result.verified else "Fail",
        )
        status: OutcomeStatus = "processed" if result.verified else "unverified"
        return FileOutcome(path=path, status=status, result=result)

    def _process_with_timeout(self, path: Path, mode: FileMode) -> FileOutcome:
        """Run one file on a worker thread and stop waiting after the timeout.

        A timed-out file stays in flight until its worker finishes so later scans
        do not dispatch it a second time.
        """
        name = path.name
        holder: dict[str, Any] = {}

        def _work() -> None:
            try:
                holder["outcome"] = self._process(path, mode)
            except Exception as exc:
                holder["error"] = exc
            finally:
                with self._in_flight_lock:
                    self._in_flight.discard(name)

        with self._in_flight_lock:
            self._in_flight.add(name)
        worker = threading.Thread(target=_work, name=f"chunkwatch-{name}", daemon=True)
        worker.start()
        worker.join(self._timeout)
        if worker.is_alive():
            with self._in_flight_lock:
                self._workers = [thread for thread in self._workers if thread.is_alive()]
                self._workers.append(worker)
            LOGGER.error("Processing %s exceeded %.1fs; continuing without it", name, self._timeout)
            return FileOutcome(path=path, status="timed_out", error="timed out")
        if "error" in holder:
            raise holder["error"]
        return holder["outcome"]

    def _is_in_flight(self, name: str) -> bool:
        with self._in_flight_lock:
            return name in self._in_flight


__all__ = ["WatchService", "ScanResult", "FileOutcome"]
