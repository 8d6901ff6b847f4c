from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from segmentwatch.ingestion.http_base import FeedClient, FeedDecodeError
from segmentwatch.schemas.core import StationSnapshot


logger = logging.getLogger(__name__)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def extract_stations(raw: bytes | str) -> list[Mapping[str, Any]]:
    """
    Pull `data.stations` out of a GBFS document.

    A payload that is not JSON raises `FeedDecodeError`; a JSON document without the
    station list decodes to an empty list.
    """

    try:
        doc = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FeedDecodeError(f"GBFS payload is not valid JSON: {e}") from e

    data = doc.get("data") if isinstance(doc, Mapping) else None
    stations = data.get("stations") if isinstance(data, Mapping) else None
    if not isinstance(stations, list):
        logger.warning("GBFS payload has no data.stations list; treating as empty")
        return []
    return [s for s in stations if isinstance(s, Mapping)]


def parse_station_information(item: Mapping[str, Any]) -> StationSnapshot:
    return StationSnapshot(
        station_id=_as_str(item.get("station_id")),
        name=_as_str(item.get("name")),
        lat=_as_float(item.get("lat")),
        lon=_as_float(item.get("lon")),
    )


def parse_station_status(item: Mapping[str, Any]) -> StationSnapshot:
    return StationSnapshot(
        station_id=_as_str(item.get("station_id")),
        bikes_available=_as_int(item.get("num_bikes_available")),
        docks_available=_as_int(item.get("num_docks_available")),
    )


def decode_station_information(raw: bytes | str) -> list[StationSnapshot]:
    return [parse_station_information(item) for item in extract_stations(raw)]


def decode_station_status(raw: bytes | str) -> list[StationSnapshot]:
    return [parse_station_status(item) for item in extract_stations(raw)]


# `GbfsClient` pairs the shared `FeedClient` with the two GBFS endpoints this collector needs:
# station_information (coordinates, fetched once) and station_status (counts, every tick).
class GbfsClient:
    def __init__(self, *, http: FeedClient, station_information_url: str, station_status_url: str) -> None:
        self._http = http
        self._information_url = station_information_url
        self._status_url = station_status_url

    def list_stations(self) -> list[StationSnapshot]:
        stations = decode_station_information(self._http.get_bytes(self._information_url))
        logger.info("Loaded %s stations from %s", len(stations), self._information_url)
        return stations

    def fetch_status_snapshot(self) -> list[StationSnapshot]:
        return decode_station_status(self._http.get_bytes(self._status_url))
