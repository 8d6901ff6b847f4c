from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Optional, Sequence

from segmentwatch.analytics.capacity import aggregate_capacity, empty_capacity
from segmentwatch.analytics.headway import HeadwayHistory, analyze_headways
from segmentwatch.ingestion.gbfs_client import GbfsClient
from segmentwatch.ingestion.gtfs_rt import TripUpdatesClient
from segmentwatch.pipeline.console import ConsoleReporter
from segmentwatch.preprocessing.geofence import assign_segments, shared_stations
from segmentwatch.schemas.core import HeadwayStats, PollResult, Segment, SegmentMembership
from segmentwatch.sink.csv_sink import CsvSink, format_capacity_row, format_headway_row


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SetupFailure(RuntimeError):
    """One-time startup work failed; the run must not start."""


def _elapsed_ms(started: float, clock: Callable[[], float]) -> int:
    return int(round((clock() - started) * 1000))


class CapacityPoller:
    """Bike/dock totals per segment from GBFS station_status."""

    name = "capacity"

    def __init__(
        self,
        *,
        client: GbfsClient,
        segments: Sequence[Segment],
        sink: CsvSink,
        console: ConsoleReporter,
        radius_m: float = 500.0,
        now_fn: Callable[[], datetime] = datetime.now,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._segments = list(segments)
        self._segment_ids = [seg.segment_id for seg in self._segments]
        self._sink = sink
        self._console = console
        self._radius_m = float(radius_m)
        self._now = now_fn
        self._clock = clock
        self._membership: Optional[SegmentMembership] = None

    @property
    def membership(self) -> SegmentMembership:
        if self._membership is None:
            raise RuntimeError("CapacityPoller.setup() has not run")
        return self._membership

    def setup(self) -> None:
        try:
            stations = self._client.list_stations()
        except Exception as e:
            raise SetupFailure(f"Could not load station information: {e}") from e
        if not stations:
            raise SetupFailure("Station information returned no stations")

        self._membership = assign_segments(stations, self._segments, radius_m=self._radius_m)
        overlap = shared_stations(self._membership)
        if overlap:
            logger.warning("%s stations fall inside more than one segment and count toward each: %s", len(overlap), overlap)
        self._console.membership(self._membership, self._segments)

    def tick(self, iteration: int) -> PollResult:
        timestamp = self._now().strftime(TIMESTAMP_FORMAT)
        started = self._clock()
        try:
            snapshots = self._client.fetch_status_snapshot()
            totals = aggregate_capacity(snapshots, self.membership, segment_ids=self._segment_ids)
            result = PollResult(
                timestamp=timestamp,
                iteration=iteration,
                capacity=totals,
                latency_ms=_elapsed_ms(started, self._clock),
            )
        except Exception as e:
            logger.warning("Capacity tick %s failed, writing zeros: %s", iteration, e)
            logger.debug("Capacity tick %s traceback", iteration, exc_info=True)
            result = PollResult(
                timestamp=timestamp,
                iteration=iteration,
                capacity=empty_capacity(self._segment_ids),
                ok=False,
            )

        self._sink.append(format_capacity_row(result, self._segment_ids))
        self._console.capacity_tick(result, self._segments)
        return result

    def finish(self, completed: int) -> None:
        self._console.capacity_final(completed)


class HeadwayPoller:
    """Boundary-stop headways per segment from GTFS-realtime trip updates."""

    name = "headway"

    def __init__(
        self,
        *,
        client: TripUpdatesClient,
        segments: Sequence[Segment],
        sink: CsvSink,
        console: ConsoleReporter,
        history: Optional[HeadwayHistory] = None,
        now_fn: Callable[[], datetime] = datetime.now,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        missing = [seg.segment_id for seg in segments if not seg.boundary_stop_id]
        if missing:
            raise ValueError(f"Segments without a boundary stop cannot report headways: {missing}")
        self._client = client
        self._segments = list(segments)
        self._sink = sink
        self._console = console
        self.history = history or HeadwayHistory([seg.segment_id for seg in self._segments])
        self._now = now_fn
        self._clock = clock

    def setup(self) -> None:
        for seg in self._segments:
            logger.info("Headway segment %s measured at stop %s", seg.segment_id, seg.boundary_stop_id)

    def tick(self, iteration: int) -> PollResult:
        timestamp = self._now().strftime(TIMESTAMP_FORMAT)
        started = self._clock()
        try:
            arrivals = self._client.fetch_arrivals()
            latency_ms = _elapsed_ms(started, self._clock)
            stats = {
                seg.segment_id: analyze_headways(arrivals, seg.boundary_stop_id or "")
                for seg in self._segments
            }
            result = PollResult(timestamp=timestamp, iteration=iteration, headway=stats, latency_ms=latency_ms)
        except Exception as e:
            logger.warning("Headway tick %s failed, writing zeros: %s", iteration, e)
            logger.debug("Headway tick %s traceback", iteration, exc_info=True)
            result = PollResult(
                timestamp=timestamp,
                iteration=iteration,
                headway={seg.segment_id: HeadwayStats() for seg in self._segments},
                latency_ms=_elapsed_ms(started, self._clock),
                ok=False,
            )

        for segment_id, seg_stats in result.headway.items():
            self.history.extend(segment_id, seg_stats.intervals)

        self._sink.append(format_headway_row(result, self._segments))
        self._console.headway_tick(result, self._segments)
        return result

    def finish(self, completed: int) -> None:
        self._console.headway_final(self.history, self._segments)
