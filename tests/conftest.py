from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    """
    Keep a `src/` layout while allowing `pytest` to run without requiring an editable install.
    """

    project_root = Path(__file__).resolve().parents[1]
    src_path = project_root / "src"
    sys.path.insert(0, str(src_path))


@pytest.fixture
def two_segments():
    from segmentwatch.schemas.core import ReferencePoint, Segment

    south = Segment(
        segment_id="south",
        name="Forest Hills to Ruggles",
        reference_points=(
            ReferencePoint("Forest Hills", 42.2988, -71.1131),
            ReferencePoint("Ruggles", 42.3364, -71.0892),
        ),
        boundary_stop_id="70010",
        boundary_label="ruggles",
    )
    north = Segment(
        segment_id="north",
        name="Malden Center to Sullivan",
        reference_points=(
            ReferencePoint("Malden Center", 42.4267, -71.0744),
            ReferencePoint("Sullivan", 42.3840, -71.0770),
        ),
        boundary_stop_id="70030",
        boundary_label="sullivan",
    )
    return south, north
