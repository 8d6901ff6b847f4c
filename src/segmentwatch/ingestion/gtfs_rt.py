from __future__ import annotations

import logging

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from segmentwatch.ingestion.http_base import FeedClient, FeedDecodeError
from segmentwatch.schemas.core import ArrivalEvent


logger = logging.getLogger(__name__)


def decode_arrivals(raw: bytes) -> list[ArrivalEvent]:
    """
    Flatten a GTFS-realtime TripUpdates message into predicted arrivals.

    Stop time updates without a stop id, or whose arrival carries no absolute time
    (delay-only predictions), are skipped.
    """

    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(raw)
    except DecodeError as e:
        raise FeedDecodeError(f"GTFS-realtime payload could not be parsed: {e}") from e

    arrivals: list[ArrivalEvent] = []
    for entity in feed.entity:
        if not entity.HasField("trip_update"):
            continue
        for stu in entity.trip_update.stop_time_update:
            if not stu.stop_id or not stu.HasField("arrival"):
                continue
            if not stu.arrival.HasField("time"):
                continue
            arrivals.append(ArrivalEvent(stop_id=stu.stop_id, predicted_arrival_epoch_s=int(stu.arrival.time)))
    return arrivals


class TripUpdatesClient:
    def __init__(self, *, http: FeedClient, trip_updates_url: str) -> None:
        self._http = http
        self._url = trip_updates_url

    def fetch_arrivals(self) -> list[ArrivalEvent]:
        arrivals = decode_arrivals(self._http.get_bytes(self._url))
        logger.debug("Decoded %s predicted arrivals from %s", len(arrivals), self._url)
        return arrivals
