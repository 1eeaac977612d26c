"""Tests for the polling watch service."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from chunkwatch.chunking import SplitResult
from chunkwatch.chunking.models import FileMode
from chunkwatch.config.models import (
    ChunkingSettings,
    ChunkwatchConfig,
    ClassificationSettings,
    WatchSettings,
)
from chunkwatch.state import DEFAULT_STATE_DIRNAME, ProcessedLedger, ProcessedSet
from chunkwatch.watch import ScanResult, WatchService


def _service(
    tmp_path: Path,
    *,
    store: ProcessedSet | None = None,
    unsupported_policy: str = "skip",
    **watch: object,
) -> WatchService:
    """Return a watch service over ``tmp_path/input`` with a tiny chunk size.

    Args:
        tmp_path: Temporary directory provided by pytest.
        store: Optional processed-name store to inject.
        unsupported_policy: Policy for unsupported extensions.
        **watch: Extra watch settings.

    Returns:
        WatchService: Configured service.
    """
    input_dir = tmp_path / "input"
    input_dir.mkdir(exist_ok=True)
    config = ChunkwatchConfig(
        chunking=ChunkingSettings(chunk_size_bytes=8),
        watch=WatchSettings(
            input_dir=str(input_dir),
            output_dir=str(tmp_path / "output"),
            poll_interval_seconds=0.01,
            **watch,
        ),
        classification=ClassificationSettings(unsupported_policy=unsupported_policy),
    )
    return WatchService(config, store=store)


def test_scan_once_processes_new_files_once(tmp_path: Path) -> None:
    service = _service(tmp_path)
    (service.input_dir / "notes.txt").write_text("0123456789abcdef!", encoding="utf-8")
    (service.input_dir / "logo.gif").write_bytes(b"GIF89a" + bytes(20))

    first = service.scan_once()

    assert [outcome.path.name for outcome in first.outcomes] == ["logo.gif", "notes.txt"]
    assert first.counts["processed"] == 2
    output = service.output_dir
    assert (output / "notes-chunk-1.txt").exists()
    assert (output / "notes-chunk-3.txt").read_text(encoding="utf-8") == "!"
    assert (output / "logo-chunk-0.gif").exists()
    assert (output / "logo-concatenated.gif").read_bytes() == b"GIF89a" + bytes(20)
    assert set(service.store.names()) == {"logo.gif", "notes.txt"}

    second = service.scan_once()

    assert second.tick == 2
    assert second.outcomes == []


def test_subdirectories_and_hidden_files_are_ignored(tmp_path: Path) -> None:
    service = _service(tmp_path)
    (service.input_dir / "nested").mkdir()
    (service.input_dir / "nested" / "inner.txt").write_text("x", encoding="utf-8")
    (service.input_dir / ".hidden.txt").write_text("x", encoding="utf-8")

    scan = service.scan_once()

    assert scan.outcomes == []


@pytest.mark.parametrize("policy", ["skip", "retry"])
def test_unsupported_files_never_enter_processed_set(tmp_path: Path, policy: str) -> None:
    service = _service(tmp_path, unsupported_policy=policy)
    (service.input_dir / "bundle.zip").write_bytes(b"PK\x03\x04")

    scans = [service.scan_once() for _ in range(3)]

    assert "bundle.zip" not in service.store
    reported = [scan.counts["unsupported"] for scan in scans]
    if policy == "skip":
        assert reported == [1, 0, 0]
        assert service.store.is_ignored("bundle.zip")
    else:
        assert reported == [1, 1, 1]
        assert not service.store.is_ignored("bundle.zip")


def test_missing_input_directory_abandons_scan(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.input_dir.rmdir()

    scan = service.scan_once()

    assert scan.error is not None
    assert "Error reading input folder" in scan.error
    assert scan.outcomes == []


def test_failed_file_is_reported_and_scan_continues(tmp_path: Path) -> None:
    service = _service(tmp_path)
    (service.input_dir / "bad.txt").write_bytes(b"\xff\xfe\xfa invalid utf-8")
    (service.input_dir / "good.txt").write_text("fine", encoding="utf-8")

    scan = service.scan_once()

    statuses = {outcome.path.name: outcome.status for outcome in scan.outcomes}
    assert statuses == {"bad.txt": "failed", "good.txt": "processed"}
    assert "bad.txt" not in service.store
    assert scan.to_payload()["counts"]["failed"] == 1


def test_persisted_ledger_survives_restart(tmp_path: Path) -> None:
    first = _service(tmp_path, persist_processed=True)
    (first.input_dir / "data.json").write_text('{"a": 1}', encoding="utf-8")
    first.scan_once()

    assert isinstance(first.store, ProcessedLedger)

    restarted = _service(tmp_path, persist_processed=True)
    assert restarted.scan_once().outcomes == []


def test_run_loop_stops_cleanly(tmp_path: Path) -> None:
    service = _service(tmp_path)
    (service.input_dir / "readme.md").write_text("# title", encoding="utf-8")
    seen: list[ScanResult] = []

    def _callback(scan: ScanResult) -> None:
        seen.append(scan)
        if len(seen) == 3:
            service.stop()

    service.run(_callback)

    assert len(seen) == 3
    assert seen[0].counts["processed"] == 1
    assert seen[1].outcomes == [] and seen[2].outcomes == []


def test_stalled_file_does_not_block_scan(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(tmp_path, file_timeout_seconds=0.05)
    (service.input_dir / "slow.txt").write_text("slow", encoding="utf-8")
    release = threading.Event()
    original = service.pipeline.process

    def _blocking(path: Path, mode: FileMode | None = None) -> SplitResult:
        release.wait(5)
        return original(path, mode)

    monkeypatch.setattr(service.pipeline, "process", _blocking)

    first = service.scan_once()
    assert [outcome.status for outcome in first.outcomes] == ["timed_out"]

    second = service.scan_once()
    assert second.outcomes == []

    release.set()
    assert service.join_workers(timeout=5) == []
    assert "slow.txt" in service.store


def test_ledger_write_failure_fails_file_and_scan_continues(tmp_path: Path) -> None:
    service = _service(tmp_path, persist_processed=True)
    service.output_dir.mkdir(exist_ok=True)
    (service.output_dir / DEFAULT_STATE_DIRNAME).write_text("in the way", encoding="utf-8")
    (service.input_dir / "a.txt").write_text("first", encoding="utf-8")
    (service.input_dir / "b.txt").write_text("second", encoding="utf-8")

    scan = service.scan_once()

    assert [outcome.path.name for outcome in scan.outcomes] == ["a.txt", "b.txt"]
    assert [outcome.status for outcome in scan.outcomes] == ["failed", "failed"]
    assert all("processed ledger" in (outcome.error or "") for outcome in scan.outcomes)
    assert len(service.store) == 0
    assert (service.output_dir / "b-chunk-1.txt").exists()

    (service.output_dir / DEFAULT_STATE_DIRNAME).unlink()
    retried = service.scan_once()
    assert [outcome.status for outcome in retried.outcomes] == ["processed", "processed"]


def test_stop_joins_timed_out_workers(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(tmp_path, file_timeout_seconds=0.05)
    (service.input_dir / "slow.txt").write_text("slow", encoding="utf-8")
    release = threading.Event()
    original = service.pipeline.process

    def _blocking(path: Path, mode: FileMode | None = None) -> SplitResult:
        release.wait(5)
        return original(path, mode)

    monkeypatch.setattr(service.pipeline, "process", _blocking)

    assert [outcome.status for outcome in service.scan_once().outcomes] == ["timed_out"]
    assert service.join_workers(timeout=0.01) == ["chunkwatch-slow.txt"]

    threading.Timer(0.05, release.set).start()
    service.stop(timeout=5)

    assert not any(thread.name == "chunkwatch-slow.txt" for thread in threading.enumerate())
    assert "slow.txt" in service.store
    assert (service.output_dir / "slow-chunk-1.txt").read_text(encoding="utf-8") == "slow"
