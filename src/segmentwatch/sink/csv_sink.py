from __future__ import annotations

import csv
import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, TextIO

from segmentwatch.schemas.core import PollResult, Segment


logger = logging.getLogger(__name__)


class SinkError(RuntimeError):
    """Raised when a row cannot be appended; losing rows silently is never acceptable."""


class CsvSink:
    """
    Append-only CSV writer, one file per metric kind.

    - The header is written only when the file is new (or empty); re-runs append to the same file.
    - Appends are serialized by a lock and flushed immediately, so a row is on disk before the
      next tick starts.
    """

    def __init__(self, path: Path, *, header: Sequence[str]) -> None:
        self._path = Path(path)
        self._header = list(header)
        self._lock = threading.Lock()
        self._fh: Optional[TextIO] = None
        self._writer: Optional[Any] = None
        self._rows_written = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def rows_written(self) -> int:
        return self._rows_written

    def open(self) -> "CsvSink":
        with self._lock:
            if self._fh is not None:
                return self
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                is_new = not self._path.exists() or self._path.stat().st_size == 0
                self._fh = self._path.open("a", encoding="utf-8", newline="")
                self._writer = csv.writer(self._fh, lineterminator="\n")
                if is_new:
                    self._writer.writerow(self._header)
                    self._fh.flush()
            except OSError as e:
                raise SinkError(f"Cannot open {self._path} for append: {e}") from e
        logger.info("Appending rows to %s", self._path)
        return self

    def append(self, fields: Sequence[str]) -> None:
        with self._lock:
            if self._fh is None or self._writer is None:
                raise SinkError(f"Sink for {self._path} is not open")
            try:
                self._writer.writerow(fields)
                self._fh.flush()
            except OSError as e:
                raise SinkError(f"Cannot append to {self._path}: {e}") from e
            self._rows_written += 1

    def close(self) -> None:
        with self._lock:
            if self._fh is None:
                return
            try:
                self._fh.flush()
                self._fh.close()
            except OSError as e:
                raise SinkError(f"Cannot close {self._path}: {e}") from e
            finally:
                self._fh = None
                self._writer = None

    def __enter__(self) -> "CsvSink":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def capacity_header(segment_ids: Sequence[str]) -> list[str]:
    cols = ["timestamp", "iteration"]
    for segment_id in segment_ids:
        cols += [f"{segment_id}_bikes", f"{segment_id}_capacity"]
    return cols


def format_capacity_row(result: PollResult, segment_ids: Sequence[str]) -> list[str]:
    fields = [result.timestamp, str(result.iteration)]
    for segment_id in segment_ids:
        totals = result.capacity.get(segment_id)
        fields += [str(totals.bikes if totals else 0), str(totals.capacity if totals else 0)]
    return fields


def headway_header(segments: Sequence[Segment]) -> list[str]:
    cols = ["timestamp", "iteration"]
    for seg in segments:
        label = seg.headway_label
        cols += [f"{label}_arrivals", f"{label}_headways", f"{label}_stddev"]
    return cols


def format_interval_list(intervals: Sequence[int]) -> str:
    return "[" + ", ".join(str(int(x)) for x in intervals) + "]"


def format_headway_row(result: PollResult, segments: Sequence[Segment]) -> list[str]:
    fields = [result.timestamp, str(result.iteration)]
    for seg in segments:
        stats = result.headway.get(seg.segment_id)
        count = stats.arrival_count if stats else 0
        intervals = stats.intervals if stats else ()
        stddev = stats.stddev if stats else 0.0
        fields += [str(count), format_interval_list(intervals), f"{stddev:.2f}"]
    return fields


def open_sinks(paths: Mapping[str, tuple[Path, Sequence[str]]]) -> dict[str, CsvSink]:
    """Open one sink per metric kind; already-opened sinks are closed if a later one fails."""

    opened: dict[str, CsvSink] = {}
    try:
        for kind, (path, header) in paths.items():
            opened[kind] = CsvSink(path, header=header).open()
    except SinkError:
        for sink in opened.values():
            sink.close()
        raise
    return opened
