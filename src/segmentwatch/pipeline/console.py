from __future__ import annotations

import sys
import threading
from typing import Optional, Sequence, TextIO

from segmentwatch.analytics.headway import HeadwayHistory
from segmentwatch.schemas.core import PollResult, Segment, SegmentMembership


class ConsoleReporter:
    """Per-tick banners and run summaries for operators watching the terminal."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        # Both feeds may print from different threads; keep each banner contiguous.
        self._lock = threading.Lock()

    def _emit(self, lines: Sequence[str]) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write("\n".join(lines) + "\n")
            stream.flush()

    def membership(self, membership: SegmentMembership, segments: Sequence[Segment]) -> None:
        self._emit(
            [f"{seg.name} ({seg.segment_id}) station IDs: {sorted(membership.get(seg.segment_id, ()))}" for seg in segments]
        )

    def capacity_tick(self, result: PollResult, segments: Sequence[Segment]) -> None:
        lines = ["=" * 46, f"Iteration {result.iteration} @ {result.timestamp}"]
        if not result.ok:
            lines.append("  WARNING: station status unavailable, reporting zeros")
        for seg in segments:
            totals = result.capacity.get(seg.segment_id)
            lines += [
                f"{seg.segment_id.upper()} ({seg.name})",
                f"  Available Bikes: {totals.bikes if totals else 0}",
                f"  Total Capacity:  {totals.capacity if totals else 0}",
            ]
        lines.append("=" * 46)
        self._emit(lines)

    def capacity_final(self, completed: int) -> None:
        self._emit([f"Finished capacity collection ({completed} ticks)."])

    def headway_tick(self, result: PollResult, segments: Sequence[Segment]) -> None:
        lines = ["-" * 48, f"Poll {result.iteration} @ {result.timestamp}"]
        if result.latency_ms is not None:
            lines.append(f"Latency: {result.latency_ms} ms")
        if not result.ok:
            lines.append("WARNING: trip updates unavailable, reporting zeros")
        for seg in segments:
            stats = result.headway.get(seg.segment_id)
            count = stats.arrival_count if stats else 0
            intervals = list(stats.intervals) if stats else []
            stddev = stats.stddev if stats else 0.0
            lines.append(f"{seg.name} ({seg.headway_label}): arrivals={count}  headways={intervals}  std={stddev:.2f}")
        self._emit(lines)

    def headway_final(self, history: HeadwayHistory, segments: Sequence[Segment]) -> None:
        lines = ["", "================ FINAL SEGMENT HEADWAY SUMMARY ================"]
        for seg in segments:
            summary = history.summary(seg.segment_id)
            if summary is None:
                lines.append(f"{seg.name}: NO DATA")
                continue
            lines.append(
                f"{seg.name} FINAL: samples={summary.samples} avg={summary.mean:.2f} min  std={summary.stddev:.2f}"
            )
        lines.append("===============================================================")
        self._emit(lines)
