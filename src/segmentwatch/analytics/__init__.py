__all__ = [
    "aggregate_capacity",
    "analyze_headways",
    "compute_headways",
    "population_stddev",
    "HeadwayHistory",
]

from segmentwatch.analytics.capacity import aggregate_capacity
from segmentwatch.analytics.headway import (
    HeadwayHistory,
    analyze_headways,
    compute_headways,
    population_stddev,
)
