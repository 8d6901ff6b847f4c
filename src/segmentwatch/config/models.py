from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from segmentwatch.schemas.core import Segment


FeedKind = Literal["capacity", "headway"]


@dataclass(frozen=True)
class PollingSettings:
    iterations: int = 240
    interval_s: float = 60.0


@dataclass(frozen=True)
class GeofenceSettings:
    radius_m: float = 500.0


@dataclass(frozen=True)
class HttpSettings:
    max_retries: int = 1
    backoff_factor: float = 0.5
    user_agent: str = "segmentwatch/0.1.0"


@dataclass(frozen=True)
class CapacityFeedSettings:
    station_information_url: str
    station_status_url: str
    timeout_s: float
    segments: list[str]
    output_path: Path


@dataclass(frozen=True)
class HeadwayFeedSettings:
    trip_updates_url: str
    timeout_s: float
    segments: list[str]
    output_path: Path


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    polling: PollingSettings
    geofence: GeofenceSettings
    http: HttpSettings
    segments: list[Segment]
    capacity: CapacityFeedSettings
    headway: HeadwayFeedSettings
    logging: LoggingSettings

    def segment(self, segment_id: str) -> Segment:
        for seg in self.segments:
            if seg.segment_id == segment_id:
                return seg
        raise KeyError(segment_id)
