from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional


@dataclass(frozen=True)
class ReferencePoint:
    name: str
    lat: float
    lon: float


@dataclass(frozen=True)
class Segment:
    segment_id: str
    name: str
    reference_points: tuple[ReferencePoint, ...]
    boundary_stop_id: Optional[str] = None
    boundary_label: Optional[str] = None

    @property
    def headway_label(self) -> str:
        return self.boundary_label or self.segment_id


# segment_id -> station ids inside that segment's geofence
SegmentMembership = Mapping[str, frozenset[str]]


@dataclass(frozen=True)
class StationSnapshot:
    station_id: str
    lat: float = 0.0
    lon: float = 0.0
    bikes_available: int = 0
    docks_available: int = 0
    name: str = ""

    @property
    def capacity(self) -> int:
        return self.bikes_available + self.docks_available


@dataclass(frozen=True)
class ArrivalEvent:
    stop_id: str
    predicted_arrival_epoch_s: int


@dataclass(frozen=True)
class CapacityTotals:
    bikes: int = 0
    capacity: int = 0


@dataclass(frozen=True)
class HeadwayStats:
    arrival_count: int = 0
    arrivals: tuple[int, ...] = ()
    intervals: tuple[int, ...] = ()
    stddev: float = 0.0


@dataclass(frozen=True)
class HistorySummary:
    samples: int
    mean: float
    stddev: float


@dataclass(frozen=True)
class PollResult:
    timestamp: str
    iteration: int
    capacity: Mapping[str, CapacityTotals] = field(default_factory=dict)
    headway: Mapping[str, HeadwayStats] = field(default_factory=dict)
    latency_ms: Optional[int] = None
    ok: bool = True
