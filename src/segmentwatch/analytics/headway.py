from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from segmentwatch.schemas.core import ArrivalEvent, HeadwayStats, HistorySummary


def compute_headways(arrivals: Iterable[int]) -> list[int]:
    """
    Minutes between consecutive sorted arrival times (epoch seconds).

    Seconds are converted with integer division, so a 119s gap reports as 1 minute.
    """

    ordered = sorted(int(a) for a in arrivals)
    if len(ordered) < 2:
        return []
    return [(later - earlier) // 60 for earlier, later in zip(ordered, ordered[1:])]


def population_stddev(values: Sequence[float]) -> float:
    """Standard deviation dividing by N; 0.0 for fewer than two values."""

    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def analyze_headways(arrivals: Iterable[ArrivalEvent], boundary_stop_id: str) -> HeadwayStats:
    times = sorted(a.predicted_arrival_epoch_s for a in arrivals if a.stop_id == boundary_stop_id)
    intervals = compute_headways(times)
    return HeadwayStats(
        arrival_count=len(times),
        arrivals=tuple(times),
        intervals=tuple(intervals),
        stddev=population_stddev(intervals),
    )


class HeadwayHistory:
    """Run-long, append-only headway intervals per segment."""

    def __init__(self, segment_ids: Sequence[str]) -> None:
        self._intervals: dict[str, list[int]] = {segment_id: [] for segment_id in segment_ids}

    def extend(self, segment_id: str, intervals: Iterable[int]) -> None:
        self._intervals.setdefault(segment_id, []).extend(int(x) for x in intervals)

    def intervals(self, segment_id: str) -> tuple[int, ...]:
        return tuple(self._intervals.get(segment_id, ()))

    def summary(self, segment_id: str) -> Optional[HistorySummary]:
        values = self._intervals.get(segment_id) or []
        if not values:
            return None
        return HistorySummary(
            samples=len(values),
            mean=float(np.mean(np.asarray(values, dtype=float))),
            stddev=population_stddev(values),
        )
