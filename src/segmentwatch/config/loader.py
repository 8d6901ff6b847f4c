from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from segmentwatch.config.models import (
    AppConfig,
    CapacityFeedSettings,
    GeofenceSettings,
    HeadwayFeedSettings,
    HttpSettings,
    LoggingSettings,
    PollingSettings,
)
from segmentwatch.schemas.core import ReferencePoint, Segment


logger = logging.getLogger(__name__)

RECOMMENDED_TIMEOUT_S = (5.0, 8.0)


def load_dotenv_if_available(path: str = ".env") -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except ModuleNotFoundError:
        return
    load_dotenv(path)


def _as_path(value: str, *, base_dir: Path) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_dir / candidate)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_segment(raw: Mapping[str, Any]) -> Segment:
    segment_id = str(raw.get("id") or "").strip()
    if not segment_id:
        raise ValueError(f"Segment missing `id`: {raw}")

    points_raw = raw.get("reference_points") or []
    points = tuple(
        ReferencePoint(name=str(p.get("name", "")), lat=float(p["lat"]), lon=float(p["lon"]))
        for p in points_raw
    )

    boundary = raw.get("boundary_stop") or {}
    stop_id = boundary.get("stop_id")
    label = boundary.get("label")
    return Segment(
        segment_id=segment_id,
        name=str(raw.get("name", segment_id)),
        reference_points=points,
        boundary_stop_id=None if stop_id in (None, "") else str(stop_id),
        boundary_label=None if not label else str(label),
    )


def _validate(config: AppConfig) -> None:
    if config.polling.iterations < 1:
        raise ValueError(f"polling.iterations must be >= 1 (got {config.polling.iterations})")
    if config.polling.interval_s < 0:
        raise ValueError(f"polling.interval_seconds must be >= 0 (got {config.polling.interval_s})")
    if config.geofence.radius_m <= 0:
        raise ValueError(f"geofence.radius_m must be > 0 (got {config.geofence.radius_m})")

    seen: set[str] = set()
    for seg in config.segments:
        if seg.segment_id in seen:
            raise ValueError(f"Duplicate segment id: {seg.segment_id}")
        seen.add(seg.segment_id)

    for feed_name, timeout_s, segment_ids in (
        ("capacity", config.capacity.timeout_s, config.capacity.segments),
        ("headway", config.headway.timeout_s, config.headway.segments),
    ):
        if not 0 < timeout_s <= 60:
            raise ValueError(f"{feed_name}.timeout_seconds must be in (0, 60] (got {timeout_s})")
        low, high = RECOMMENDED_TIMEOUT_S
        if not low <= timeout_s <= high:
            logger.warning(
                "%s.timeout_seconds=%s is outside the recommended %s-%ss band", feed_name, timeout_s, low, high
            )
        unknown = [s for s in segment_ids if s not in seen]
        if unknown:
            raise ValueError(f"{feed_name}.segments references unknown segment(s): {unknown}")

    for segment_id in config.headway.segments:
        if config.segment(segment_id).boundary_stop_id is None:
            raise ValueError(f"Segment {segment_id!r} is used for headways but has no boundary_stop")


def load_config(path: Optional[str | Path] = None, *, base_dir: Optional[Path] = None) -> AppConfig:
    """
    Load typed collector config from JSON.

    - Path resolution is relative to `base_dir` (defaults to current working directory).
    - `.env` is loaded when python-dotenv is installed (dev convenience).
    - Feed URLs, tick count, tick interval and log level can be overridden from the environment.
    """

    load_dotenv_if_available()

    config_path = Path(
        path
        or os.getenv("SEGMENTWATCH_CONFIG_PATH", "config/default.json")
    ).resolve()
    base_dir = (base_dir or Path.cwd()).resolve()

    raw = json.loads(config_path.read_text(encoding="utf-8"))

    polling_raw: Mapping[str, Any] = raw.get("polling", {})
    polling = PollingSettings(
        iterations=_env_int("SEGMENTWATCH_ITERATIONS", int(polling_raw.get("iterations", 240))),
        interval_s=_env_float(
            "SEGMENTWATCH_INTERVAL_SECONDS", float(polling_raw.get("interval_seconds", 60.0))
        ),
    )

    geofence_raw: Mapping[str, Any] = raw.get("geofence", {})
    geofence = GeofenceSettings(radius_m=float(geofence_raw.get("radius_m", 500.0)))

    http_raw: Mapping[str, Any] = raw.get("http", {})
    http = HttpSettings(
        max_retries=int(http_raw.get("max_retries", 1)),
        backoff_factor=float(http_raw.get("backoff_factor", 0.5)),
        user_agent=str(http_raw.get("user_agent", "segmentwatch/0.1.0")),
    )

    segments = [_parse_segment(s) for s in raw.get("segments", [])]
    if not segments:
        raise ValueError("Config missing required field: segments")

    capacity_raw: Mapping[str, Any] = raw.get("capacity", {})
    info_url = capacity_raw.get("station_information_url")
    status_url = capacity_raw.get("station_status_url")
    if not info_url or not status_url:
        raise ValueError(
            "Config missing required fields: capacity.station_information_url and/or capacity.station_status_url"
        )
    capacity = CapacityFeedSettings(
        station_information_url=_env_str("GBFS_STATION_INFORMATION_URL", str(info_url)),
        station_status_url=_env_str("GBFS_STATION_STATUS_URL", str(status_url)),
        timeout_s=float(capacity_raw.get("timeout_seconds", 8.0)),
        segments=[str(s) for s in capacity_raw.get("segments", [s.segment_id for s in segments])],
        output_path=_as_path(
            str(capacity_raw.get("output_path", "bluebikes_orange_capacity.csv")), base_dir=base_dir
        ),
    )

    headway_raw: Mapping[str, Any] = raw.get("headway", {})
    trip_updates_url = headway_raw.get("trip_updates_url")
    if not trip_updates_url:
        raise ValueError("Config missing required field: headway.trip_updates_url")
    headway = HeadwayFeedSettings(
        trip_updates_url=_env_str("GTFS_RT_TRIP_UPDATES_URL", str(trip_updates_url)),
        timeout_s=float(headway_raw.get("timeout_seconds", 5.0)),
        segments=[
            str(s)
            for s in headway_raw.get(
                "segments", [s.segment_id for s in segments if s.boundary_stop_id is not None]
            )
        ],
        output_path=_as_path(
            str(headway_raw.get("output_path", "orange_segment_headways.csv")), base_dir=base_dir
        ),
    )

    logging_raw: Mapping[str, Any] = raw.get("logging", {})
    file_value = logging_raw.get("file")
    log_file = None if not file_value else _as_path(str(file_value), base_dir=base_dir)
    logging_settings = LoggingSettings(
        level=_env_str("SEGMENTWATCH_LOG_LEVEL", str(logging_raw.get("level", "INFO"))),
        format=str(logging_raw.get("format", "%(asctime)s %(levelname)s %(name)s - %(message)s")),
        file=log_file,
    )

    config = AppConfig(
        polling=polling,
        geofence=geofence,
        http=http,
        segments=segments,
        capacity=capacity,
        headway=headway,
        logging=logging_settings,
    )
    _validate(config)
    return config
