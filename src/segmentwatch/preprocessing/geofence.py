from __future__ import annotations

import logging
from typing import Iterable, Sequence

from segmentwatch.schemas.core import Segment, SegmentMembership, StationSnapshot
from segmentwatch.utils.geo import haversine_m


logger = logging.getLogger(__name__)


def within_geofence(station: StationSnapshot, segment: Segment, *, radius_m: float) -> bool:
    for point in segment.reference_points:
        if haversine_m(station.lat, station.lon, point.lat, point.lon) <= radius_m:
            return True
    return False


def assign_segments(
    stations: Iterable[StationSnapshot],
    segments: Sequence[Segment],
    *,
    radius_m: float = 500.0,
) -> SegmentMembership:
    """
    Map stations onto segments using a circular buffer around each reference point.

    A station joins every segment that has at least one reference point within `radius_m`;
    stations near no reference point are left out of every segment (not an error).

    MVP note: this is a plain haversine loop (no spatial index), fine for a few thousand stations.
    """

    members: dict[str, set[str]] = {seg.segment_id: set() for seg in segments}
    for station in stations:
        for seg in segments:
            if within_geofence(station, seg, radius_m=radius_m):
                members[seg.segment_id].add(station.station_id)

    membership = {segment_id: frozenset(ids) for segment_id, ids in members.items()}
    for segment_id, ids in membership.items():
        logger.info("Segment %s: %s stations within %.0fm", segment_id, len(ids), radius_m)
    return membership


def shared_stations(membership: SegmentMembership) -> dict[str, list[str]]:
    """Station id -> segments, for stations counted toward more than one segment."""

    owners: dict[str, list[str]] = {}
    for segment_id, ids in membership.items():
        for station_id in ids:
            owners.setdefault(station_id, []).append(segment_id)
    return {sid: sorted(segs) for sid, segs in owners.items() if len(segs) > 1}
