"""Batch dispatch for tagbridge.

Provides:
- Audio file collection from files and directories
- Sequential processing with continue-on-error mode
- Parallel tag reads over a thread pool, one file handle per worker call
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from tagbridge.model import TrackMetadata
from tagbridge.tagging import read_metadata

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

AUDIO_EXTENSIONS = (".mp3", ".flac", ".ogg", ".oga", ".opus", ".m4a", ".mp4", ".aiff", ".wav")


@dataclass
class BatchResult:
    """Result of a batch operation."""

    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[tuple[Any, Exception | str]] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Calculate success rate as a percentage."""
        if self.processed == 0:
            return 100.0
        return (self.succeeded / self.processed) * 100

    def add_success(self) -> None:
        self.processed += 1
        self.succeeded += 1

    def add_failure(self, item: Any, error: Exception | str) -> None:
        self.processed += 1
        self.failed += 1
        self.errors.append((item, error))


def process_batch(
    items: Sequence[T],
    processor: Callable[[T], R],
    continue_on_error: bool = True,
    progress_callback: Callable[[int, int], None] | None = None,
) -> tuple[list[R], BatchResult]:
    """Apply ``processor`` to each item in order.

    With ``continue_on_error`` a failing item is logged and recorded in the
    result; otherwise the exception propagates after logging.

    Returns:
        Tuple of (results for the items that succeeded, batch result summary)
    """
    result = BatchResult(total=len(items))
    results: list[R] = []

    for i, item in enumerate(items):
        try:
            results.append(processor(item))
            result.add_success()
        except Exception as e:
            result.add_failure(item, e)
            if not continue_on_error:
                log.error("Batch processing error (stopping): %s", e)
                raise
            log.warning("Batch processing error (continuing): %s", e)
        if progress_callback:
            progress_callback(i + 1, len(items))

    return results, result


def collect_audio_files(
    paths: Sequence[Path],
    extensions: tuple[str, ...] = AUDIO_EXTENSIONS,
    recursive: bool = True,
) -> list[Path]:
    """Resolve files and directories to a sorted, de-duplicated list of audio files.

    Explicitly named files are kept whatever their extension; directory
    contents are filtered by ``extensions``.
    """
    audio_files: set[Path] = set()
    wanted = {ext.lower() for ext in extensions}

    for path in paths:
        if path.is_file():
            audio_files.add(path.resolve())
        elif path.is_dir():
            candidates = path.rglob("*") if recursive else path.glob("*")
            audio_files.update(
                p.resolve() for p in candidates if p.is_file() and p.suffix.lower() in wanted
            )
        else:
            log.warning("Skipping %s: no such file or directory", path)

    return sorted(audio_files)


def read_batch(
    paths: Sequence[Path],
    workers: int = 4,
    progress_callback: Callable[[int, int], None] | None = None,
    continue_on_error: bool = True,
) -> tuple[list[TrackMetadata | None], BatchResult]:
    """Read tags from every path on a thread pool.

    ``read_metadata`` is called at most once per path and results keep the
    input order. An unreadable file yields None at its position. With
    ``continue_on_error`` off, the first failure cancels reads that have not
    started yet and stops collecting; every position not collected stays None.
    """
    result = BatchResult(total=len(paths))
    results: list[TrackMetadata | None] = [None] * len(paths)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = {executor.submit(read_metadata, path): i for i, path in enumerate(paths)}
        for done, future in enumerate(as_completed(futures), start=1):
            index = futures[future]
            try:
                metadata = future.result()
            except Exception as e:
                log.warning("Batch read error for %s: %s", paths[index], e)
                result.add_failure(paths[index], e)
            else:
                results[index] = metadata
                if metadata is None:
                    result.add_failure(paths[index], "unreadable")
                else:
                    result.add_success()
            if progress_callback:
                progress_callback(done, len(paths))
            if result.failed and not continue_on_error:
                cancelled = sum(f.cancel() for f in futures)
                log.error(
                    "Batch read stopped at %s; %d read(s) cancelled", paths[index], cancelled
                )
                break

    return results, result
