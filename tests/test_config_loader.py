from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from segmentwatch.config.loader import load_config


_ENV_VARS = (
    "SEGMENTWATCH_CONFIG_PATH",
    "SEGMENTWATCH_ITERATIONS",
    "SEGMENTWATCH_INTERVAL_SECONDS",
    "SEGMENTWATCH_LOG_LEVEL",
    "GBFS_STATION_INFORMATION_URL",
    "GBFS_STATION_STATUS_URL",
    "GTFS_RT_TRIP_UPDATES_URL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _raw_config() -> dict:
    return {
        "polling": {"iterations": 10, "interval_seconds": 30},
        "geofence": {"radius_m": 400},
        "segments": [
            {
                "id": "south",
                "name": "Forest Hills to Ruggles",
                "reference_points": [{"name": "Ruggles", "lat": 42.3364, "lon": -71.0892}],
                "boundary_stop": {"stop_id": "70010", "label": "ruggles"},
            },
            {
                "id": "east",
                "name": "No boundary stop",
                "reference_points": [{"name": "Somewhere", "lat": 42.36, "lon": -71.05}],
            },
        ],
        "capacity": {
            "station_information_url": "https://example.com/info.json",
            "station_status_url": "https://example.com/status.json",
            "timeout_seconds": 8,
            "segments": ["south", "east"],
            "output_path": "out/capacity.csv",
        },
        "headway": {
            "trip_updates_url": "https://example.com/TripUpdates.pb",
            "timeout_seconds": 5,
            "segments": ["south"],
            "output_path": "out/headways.csv",
        },
        "logging": {"level": "INFO"},
    }


def _write(tmp_path: Path, raw: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    return path


def test_load_config_parses_segments_and_resolves_paths(tmp_path: Path) -> None:
    cfg = load_config(_write(tmp_path, _raw_config()), base_dir=tmp_path)

    assert cfg.polling.iterations == 10
    assert cfg.polling.interval_s == 30.0
    assert cfg.geofence.radius_m == 400.0
    assert [s.segment_id for s in cfg.segments] == ["south", "east"]
    assert cfg.segment("south").boundary_stop_id == "70010"
    assert cfg.segment("south").headway_label == "ruggles"
    assert cfg.segment("east").boundary_stop_id is None
    assert cfg.capacity.output_path == tmp_path / "out" / "capacity.csv"
    assert cfg.headway.segments == ["south"]
    with pytest.raises(KeyError):
        cfg.segment("west")


def test_env_overrides_urls_and_cadence(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SEGMENTWATCH_ITERATIONS", "3")
    monkeypatch.setenv("SEGMENTWATCH_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("SEGMENTWATCH_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("GTFS_RT_TRIP_UPDATES_URL", "https://mirror.example.com/TripUpdates.pb")

    cfg = load_config(_write(tmp_path, _raw_config()), base_dir=tmp_path)

    assert cfg.polling.iterations == 3
    assert cfg.polling.interval_s == 0.5
    assert cfg.logging.level == "DEBUG"
    assert cfg.headway.trip_updates_url == "https://mirror.example.com/TripUpdates.pb"
    assert cfg.capacity.station_status_url == "https://example.com/status.json"


def test_invalid_env_number_keeps_file_value(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SEGMENTWATCH_ITERATIONS", "lots")
    cfg = load_config(_write(tmp_path, _raw_config()), base_dir=tmp_path)
    assert cfg.polling.iterations == 10


def test_config_path_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SEGMENTWATCH_CONFIG_PATH", str(_write(tmp_path, _raw_config())))
    assert load_config(base_dir=tmp_path).polling.iterations == 10


@pytest.mark.parametrize(
    "mutate, message",
    [
        (lambda raw: raw["capacity"].update(segments=["south", "west"]), "unknown segment"),
        (lambda raw: raw["headway"].update(segments=["east"]), "no boundary_stop"),
        (lambda raw: raw["headway"].update(timeout_seconds=0), "timeout_seconds"),
        (lambda raw: raw["polling"].update(iterations=0), "iterations"),
        (lambda raw: raw["segments"].append(dict(raw["segments"][0])), "Duplicate segment"),
        (lambda raw: raw["capacity"].pop("station_status_url"), "station_status_url"),
        (lambda raw: raw.pop("segments"), "segments"),
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, mutate, message: str) -> None:
    raw = _raw_config()
    mutate(raw)
    with pytest.raises(ValueError, match=message):
        load_config(_write(tmp_path, raw), base_dir=tmp_path)


def test_timeout_outside_recommended_band_is_logged(tmp_path: Path, caplog) -> None:
    raw = _raw_config()
    raw["capacity"]["timeout_seconds"] = 30

    with caplog.at_level(logging.WARNING, logger="segmentwatch.config.loader"):
        cfg = load_config(_write(tmp_path, raw), base_dir=tmp_path)

    assert cfg.capacity.timeout_s == 30.0
    messages = [r.getMessage() for r in caplog.records]
    assert any("capacity.timeout_seconds=30.0" in m for m in messages)
    assert not any("headway.timeout_seconds" in m for m in messages)
