from __future__ import annotations

from typing import Iterable, Optional, Sequence

from segmentwatch.schemas.core import CapacityTotals, SegmentMembership, StationSnapshot


def aggregate_capacity(
    snapshots: Iterable[StationSnapshot],
    membership: SegmentMembership,
    *,
    segment_ids: Optional[Sequence[str]] = None,
) -> dict[str, CapacityTotals]:
    """
    Sum bikes and bikes+docks per segment for one status snapshot.

    Stations missing from `membership` (e.g. added after startup) are ignored.
    """

    ids = list(segment_ids) if segment_ids is not None else list(membership)
    bikes = {segment_id: 0 for segment_id in ids}
    capacity = {segment_id: 0 for segment_id in ids}

    for snap in snapshots:
        for segment_id in ids:
            if snap.station_id in membership.get(segment_id, frozenset()):
                bikes[segment_id] += snap.bikes_available
                capacity[segment_id] += snap.capacity

    return {
        segment_id: CapacityTotals(bikes=bikes[segment_id], capacity=capacity[segment_id])
        for segment_id in ids
    }


def empty_capacity(segment_ids: Sequence[str]) -> dict[str, CapacityTotals]:
    return {segment_id: CapacityTotals() for segment_id in segment_ids}
