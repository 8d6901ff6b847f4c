from __future__ import annotations

from pathlib import Path

import pytest

from segmentwatch.analytics.summary import summarize_capacity_csv, summarize_headway_csv


def test_capacity_summary_skips_zero_capacity_ticks(tmp_path: Path) -> None:
    path = tmp_path / "capacity.csv"
    path.write_text(
        "\n".join(
            [
                "timestamp,iteration,south_bikes,south_capacity,north_bikes,north_capacity",
                "2026-10-18 08:00:00,1,10,40,0,0",
                "2026-10-18 08:01:00,2,0,0,0,0",
                "2026-10-18 08:02:00,3,20,40,0,0",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    summary = summarize_capacity_csv(path).set_index("segment")

    assert summary.loc["south", "ticks"] == 3
    assert summary.loc["south", "zero_ticks"] == 1
    assert summary.loc["south", "mean_bikes"] == pytest.approx(15.0)
    assert summary.loc["south", "min_bikes"] == 10
    assert summary.loc["south", "max_bikes"] == 20
    assert summary.loc["south", "utilization"] == pytest.approx(15.0 / 40.0)
    assert summary.loc["north", "zero_ticks"] == 3
    assert summary.loc["north", "mean_bikes"] == 0.0


def test_headway_summary_pools_intervals_across_polls(tmp_path: Path) -> None:
    path = tmp_path / "headways.csv"
    path.write_text(
        "\n".join(
            [
                "timestamp,iteration,sullivan_arrivals,sullivan_headways,sullivan_stddev,"
                "ruggles_arrivals,ruggles_headways,ruggles_stddev",
                '2026-10-18 08:00:00,1,3,"[4, 6]",1.00,0,[],0.00',
                '2026-10-18 08:01:00,2,2,[5],0.00,1,[],0.00',
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    summary = summarize_headway_csv(path).set_index("segment")

    assert summary.loc["sullivan", "polls"] == 2
    assert summary.loc["sullivan", "arrivals"] == 5
    assert summary.loc["sullivan", "samples"] == 3
    assert summary.loc["sullivan", "mean_headway_min"] == pytest.approx(5.0)
    assert summary.loc["sullivan", "std_headway_min"] == pytest.approx((2.0 / 3.0) ** 0.5)
    assert summary.loc["ruggles", "samples"] == 0
    assert summary.loc["ruggles", "std_headway_min"] == 0.0
