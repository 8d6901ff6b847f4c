from __future__ import annotations

import json
from pathlib import Path

import pandas as pd


def _segments_with_suffix(df: pd.DataFrame, suffix: str) -> list[str]:
    return [c[: -len(suffix)] for c in df.columns if c.endswith(suffix)]


def summarize_capacity_csv(path: Path) -> pd.DataFrame:
    """
    Summarize a capacity CSV written by the collector.

    Returns one row per segment with columns:
    `segment`, `ticks`, `zero_ticks`, `mean_bikes`, `min_bikes`, `max_bikes`, `mean_capacity`, `utilization`.

    Ticks with zero capacity (feed outage or no member stations) are counted in `zero_ticks` and
    excluded from the means.
    """

    df = pd.read_csv(path)
    rows = []
    for segment in _segments_with_suffix(df, "_bikes"):
        bikes = pd.to_numeric(df[f"{segment}_bikes"], errors="coerce").fillna(0)
        capacity = pd.to_numeric(df[f"{segment}_capacity"], errors="coerce").fillna(0)
        live = capacity > 0
        mean_bikes = float(bikes[live].mean()) if live.any() else 0.0
        mean_capacity = float(capacity[live].mean()) if live.any() else 0.0
        rows.append(
            {
                "segment": segment,
                "ticks": int(len(df)),
                "zero_ticks": int((~live).sum()),
                "mean_bikes": mean_bikes,
                "min_bikes": int(bikes[live].min()) if live.any() else 0,
                "max_bikes": int(bikes[live].max()) if live.any() else 0,
                "mean_capacity": mean_capacity,
                "utilization": (mean_bikes / mean_capacity) if mean_capacity else 0.0,
            }
        )
    return pd.DataFrame(
        rows,
        columns=["segment", "ticks", "zero_ticks", "mean_bikes", "min_bikes", "max_bikes", "mean_capacity", "utilization"],
    )


def _parse_interval_list(value: object) -> list[int]:
    if not isinstance(value, str) or not value.strip():
        return []
    parsed = json.loads(value)
    return [int(x) for x in parsed] if isinstance(parsed, list) else []


def summarize_headway_csv(path: Path) -> pd.DataFrame:
    """
    Pool every tick's headway intervals per boundary stop.

    Returns columns: `segment`, `polls`, `arrivals`, `samples`, `mean_headway_min`, `std_headway_min`
    (population standard deviation, matching the live run summary).
    """

    df = pd.read_csv(path)
    rows = []
    for label in _segments_with_suffix(df, "_headways"):
        intervals = df[f"{label}_headways"].map(_parse_interval_list)
        pooled = pd.Series([x for chunk in intervals for x in chunk], dtype=float)
        arrivals = pd.to_numeric(df.get(f"{label}_arrivals"), errors="coerce").fillna(0)
        rows.append(
            {
                "segment": label,
                "polls": int(len(df)),
                "arrivals": int(arrivals.sum()),
                "samples": int(len(pooled)),
                "mean_headway_min": float(pooled.mean()) if len(pooled) else 0.0,
                "std_headway_min": float(pooled.std(ddof=0)) if len(pooled) > 1 else 0.0,
            }
        )
    return pd.DataFrame(
        rows, columns=["segment", "polls", "arrivals", "samples", "mean_headway_min", "std_headway_min"]
    )
