from __future__ import annotations

import math
import random

import pytest

from segmentwatch.analytics.headway import (
    HeadwayHistory,
    analyze_headways,
    compute_headways,
    population_stddev,
)
from segmentwatch.schemas.core import ArrivalEvent


def _events(stop_id: str, times: list[int]) -> list[ArrivalEvent]:
    return [ArrivalEvent(stop_id=stop_id, predicted_arrival_epoch_s=t) for t in times]


def test_evenly_spaced_arrivals() -> None:
    stats = analyze_headways(_events("X", [100, 160, 220]), "X")
    assert stats.arrival_count == 3
    assert stats.intervals == (1, 1)
    assert stats.stddev == 0.0


def test_other_stops_are_filtered_out() -> None:
    arrivals = _events("X", [0, 600]) + _events("Y", [60, 120, 180]) + _events("X1", [300])
    stats = analyze_headways(arrivals, "X")
    assert stats.arrival_count == 2
    assert stats.arrivals == (0, 600)
    assert stats.intervals == (10,)


def test_intervals_do_not_depend_on_input_order() -> None:
    times = [1_700_000_000 + s for s in (0, 240, 600, 1500, 1620, 2400, 2460)]
    expected = analyze_headways(_events("X", times), "X")

    rng = random.Random(7)
    for _ in range(10):
        shuffled = list(times)
        rng.shuffle(shuffled)
        assert analyze_headways(_events("X", shuffled), "X") == expected


@pytest.mark.parametrize("times", [[], [1_700_000_000]])
def test_fewer_than_two_arrivals_yield_no_intervals(times: list[int]) -> None:
    stats = analyze_headways(_events("X", times), "X")
    assert stats.intervals == ()
    assert stats.stddev == 0.0
    assert not math.isnan(stats.stddev)


def test_seconds_to_minutes_truncates() -> None:
    assert compute_headways([0, 119, 179, 300]) == [1, 1, 2]


def test_population_stddev_matches_closed_form() -> None:
    assert population_stddev([1, 2, 3]) == pytest.approx(math.sqrt(2 / 3))
    assert population_stddev([4, 4, 4, 4]) == 0.0
    assert population_stddev([5]) == 0.0
    assert population_stddev([]) == 0.0


def test_history_accumulates_across_polls() -> None:
    history = HeadwayHistory(["north", "south"])
    history.extend("north", [4, 6])
    history.extend("north", [5])
    history.extend("south", [])

    assert history.intervals("north") == (4, 6, 5)
    summary = history.summary("north")
    assert summary is not None
    assert summary.samples == 3
    assert summary.mean == pytest.approx(5.0)
    assert summary.stddev == pytest.approx(math.sqrt(2 / 3))
    assert history.summary("south") is None
