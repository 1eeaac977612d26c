"""Split, reassemble, and verify pipelines for text and binary files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from chunkwatch.config.models import ChunkwatchConfig
from chunkwatch.state import ProcessedRecord, ProcessedSet

from .classifier import FileClassifier
from .errors import ChunkWriteError, StreamReadError, UnsupportedExtensionError
from .models import Chunk, FileMode, SourceFile, SplitResult, VerificationResult
from .naming import chunk_path, output_base
from .reassembly import Reassembler, compare_files
from .splitter import expected_chunk_count, iter_byte_windows, split_text

LOGGER = logging.getLogger(__name__)

SplitCallback = Callable[[SplitResult], None]


def _verdict(passed: bool) -> str:
    return "Pass" if passed else "Fail"


class TextPipeline:
    """Load a text file in memory, write 1-based chunks, verify in memory.

    When ``verify_on_disk`` is set, the written chunks are also reassembled
    from disk and compared with the source file, mirroring the binary path.
    """

    first_index = 1

    def __init__(
        self,
        chunk_size: int,
        *,
        encoding: str = "utf-8",
        reassembler: Reassembler | None = None,
        verify_on_disk: bool = False,
    ) -> None:
        self.chunk_size = chunk_size
        self.encoding = encoding
        self.reassembler = reassembler or Reassembler()
        self.verify_on_disk = verify_on_disk

    def run(
        self,
        source: SourceFile,
        output_dir: Path,
        on_split: Optional[SplitCallback] = None,
    ) -> SplitResult:
        """Split ``source`` into ``output_dir`` and check the round trip.

        Raises:
            StreamReadError: If the source cannot be read or decoded.
            ChunkWriteError: If a chunk cannot be written. Earlier chunks stay on disk.
        """
        try:
            with source.path.open("r", encoding=self.encoding, newline="") as handle:
                content = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise StreamReadError(source.path, 0, str(exc)) from exc

        pieces = split_text(content, self.chunk_size)
        base = output_base(output_dir, source.path)
        result = SplitResult(source=source, expected_chunks=len(pieces))

        offset = 0
        for position, piece in enumerate(pieces):
            index = position + self.first_index
            target = chunk_path(base, index, source.extension)
            try:
                with target.open("w", encoding=self.encoding, newline="") as handle:
                    handle.write(piece)
            except OSError as exc:
                raise ChunkWriteError(target, str(exc)) from exc
            result.chunks.append(
                Chunk(index=index, start=offset, end=offset + len(piece), path=target)
            )
            offset += len(piece)
            LOGGER.info("Written chunk %d of text file %s", index, source.name)

        if on_split is not None:
            on_split(result)

        passed = "".join(pieces) == content
        LOGGER.info("Data Integrity Check for %s: %s", source.name, _verdict(passed))
        result.verification = VerificationResult(method="in_memory", passed=passed)

        if self.verify_on_disk:
            rebuilt = self.reassembler.reassemble(
                base, source.extension, len(pieces), first_index=self.first_index
            )
            on_disk = compare_files(source.path, rebuilt, "text", encoding=self.encoding)
            result.verification = VerificationResult(
                method="on_disk", passed=passed and on_disk, reassembled_path=rebuilt
            )
        return result


class BinaryPipeline:
    """Stream a file into 0-based chunks, then rebuild it from disk and compare."""

    first_index = 0

    def __init__(self, chunk_size: int, *, reassembler: Reassembler | None = None) -> None:
        self.chunk_size = chunk_size
        self.reassembler = reassembler or Reassembler()

    def run(
        self,
        source: SourceFile,
        output_dir: Path,
        on_split: Optional[SplitCallback] = None,
    ) -> SplitResult:
        """Split ``source`` into ``output_dir`` one window at a time and verify it.

        Raises:
            StreamReadError: If reading stops part way; no later chunks are written.
            ChunkWriteError: If a chunk or the reassembled file cannot be written.
            MissingChunkError: If a chunk disappears before reassembly.
            ComparisonReadError: If the source or rebuilt file cannot be reread.
        """
        total = expected_chunk_count(source.size_bytes, self.chunk_size)
        base = output_base(output_dir, source.path)
        result = SplitResult(source=source, expected_chunks=total)

        offset = 0
        for index, window in enumerate(iter_byte_windows(source.path, self.chunk_size)):
            target = chunk_path(base, index, source.extension)
            try:
                target.write_bytes(window)
            except OSError as exc:
                raise ChunkWriteError(target, str(exc)) from exc
            result.chunks.append(
                Chunk(index=index, start=offset, end=offset + len(window), path=target)
            )
            offset += len(window)
            LOGGER.info("Written chunk %d of binary file %s", index, source.name)

        LOGGER.info("Binary file %s split into %d chunks.", source.name, total)
        if len(result.chunks) != total:
            LOGGER.warning(
                "%s changed while streaming: expected %d chunk(s), wrote %d",
                source.name,
                total,
                len(result.chunks),
            )

        if on_split is not None:
            on_split(result)

        rebuilt = self.reassembler.reassemble(base, source.extension, total)
        passed = compare_files(source.path, rebuilt, "binary")
        result.verification = VerificationResult(
            method="on_disk", passed=passed, reassembled_path=rebuilt
        )
        return result


class ChunkPipeline:
    """Classify a file, route it to its pipeline, and record it as processed."""

    def __init__(
        self,
        config: ChunkwatchConfig,
        *,
        output_dir: Path | None = None,
        store: ProcessedSet | None = None,
        classifier: FileClassifier | None = None,
        reassembler: Reassembler | None = None,
    ) -> None:
        self.config = config
        self.output_dir = (output_dir or Path(config.watch.output_dir)).expanduser()
        self.store = store if store is not None else ProcessedSet()
        self.classifier = classifier or FileClassifier.from_settings(config.classification)
        reassembler = reassembler or Reassembler()
        chunking = config.chunking
        self.text = TextPipeline(
            chunking.chunk_size_bytes,
            encoding=chunking.text_encoding,
            reassembler=reassembler,
            verify_on_disk=config.verification.text_on_disk,
        )
        self.binary = BinaryPipeline(chunking.chunk_size_bytes, reassembler=reassembler)

    @property
    def gated(self) -> bool:
        return self.config.verification.policy == "gate"

    def process(self, path: Path, mode: FileMode | None = None) -> SplitResult:
        """Run ``path`` through the pipeline matching ``mode`` or its extension.

        Under the ``informational`` policy the file is recorded once its chunks
        are written, before verification. Under ``gate`` it is recorded only
        after a passing check.

        Raises:
            UnsupportedExtensionError: If no pipeline handles the extension.
            ChunkwatchError: Propagated from the selected pipeline.
        """
        if mode is None:
            kind = self.classifier.classify_path(path)
            if kind == "unsupported":
                raise UnsupportedExtensionError(path)
            mode = kind

        source = SourceFile.from_path(path, mode)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        pipeline = self.text if mode == "text" else self.binary

        def _on_split(partial: SplitResult) -> None:
            if not self.gated:
                self._mark(partial)

        result = pipeline.run(source, self.output_dir, on_split=_on_split)
        if self.gated:
            if result.verified:
                self._mark(result)
            else:
                LOGGER.warning(
                    "%s failed verification; it will be retried on the next scan", source.name
                )
        elif result.marked_processed:
            self._mark(result)
        return result

    def _mark(self, result: SplitResult) -> None:
        verification = result.verification
        self.store.add(
            ProcessedRecord(
                name=result.source.name,
                mode=result.source.mode,
                chunk_count=len(result.chunks),
                verified=verification.passed if verification is not None else None,
            )
        )
        result.marked_processed = True


__all__ = ["TextPipeline", "BinaryPipeline", "ChunkPipeline", "SplitCallback"]
