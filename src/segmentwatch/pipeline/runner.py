from __future__ import annotations

import concurrent.futures
import logging
import sys
import threading
from contextlib import ExitStack
from typing import Optional, Sequence

from segmentwatch.config.models import AppConfig, FeedKind
from segmentwatch.ingestion.gbfs_client import GbfsClient
from segmentwatch.ingestion.gtfs_rt import TripUpdatesClient
from segmentwatch.ingestion.http_base import FeedClient
from segmentwatch.pipeline.console import ConsoleReporter
from segmentwatch.pipeline.pollers import CapacityPoller, HeadwayPoller, SetupFailure
from segmentwatch.pipeline.scheduler import PollScheduler
from segmentwatch.sink.csv_sink import SinkError, capacity_header, headway_header, open_sinks


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SETUP_FAILURE = 1
EXIT_SINK_FAILURE = 2

FEEDS: tuple[FeedKind, ...] = ("capacity", "headway")


def parse_feeds(value: Optional[str]) -> list[FeedKind]:
    if value is None:
        return list(FEEDS)
    feeds = [f.strip().lower() for f in value.split(",") if f.strip()]
    unknown = [f for f in feeds if f not in FEEDS]
    if unknown or not feeds:
        raise ValueError(f"--feeds must be a comma-separated subset of {list(FEEDS)} (got {value!r})")
    # Preserve order, drop duplicates.
    return list(dict.fromkeys(feeds))  # type: ignore[arg-type]


def _feed_client(config: AppConfig, timeout_s: float) -> FeedClient:
    return FeedClient(
        timeout_s=timeout_s,
        max_retries=config.http.max_retries,
        backoff_factor=config.http.backoff_factor,
        user_agent=config.http.user_agent,
    )


def run_collectors(
    config: AppConfig,
    *,
    feeds: Sequence[FeedKind] = FEEDS,
    stop_event: Optional[threading.Event] = None,
    console: Optional[ConsoleReporter] = None,
    gbfs: Optional[GbfsClient] = None,
    trip_updates: Optional[TripUpdatesClient] = None,
) -> int:
    """
    Run the requested collectors to completion and return a process exit code.

    Every feed finishes INIT before any feed starts ticking. With more than one feed, each
    scheduler gets its own thread; a sink failure in one stops all of them.
    """

    stop_event = stop_event or threading.Event()
    console = console or ConsoleReporter()

    capacity_segments = [config.segment(s) for s in config.capacity.segments]
    headway_segments = [config.segment(s) for s in config.headway.segments]

    with ExitStack() as stack:
        sink_specs = {}
        if "capacity" in feeds:
            sink_specs["capacity"] = (config.capacity.output_path, capacity_header(config.capacity.segments))
        if "headway" in feeds:
            sink_specs["headway"] = (config.headway.output_path, headway_header(headway_segments))
        try:
            sinks = open_sinks(sink_specs)
        except SinkError as e:
            logger.error("Cannot open output: %s", e)
            print(f"FATAL: {e}", file=sys.stderr)
            return EXIT_SINK_FAILURE
        for sink in sinks.values():
            stack.callback(sink.close)

        schedulers: list[PollScheduler] = []
        if "capacity" in feeds:
            if gbfs is None:
                http = stack.enter_context(_feed_client(config, config.capacity.timeout_s))
                gbfs = GbfsClient(
                    http=http,
                    station_information_url=config.capacity.station_information_url,
                    station_status_url=config.capacity.station_status_url,
                )
            poller = CapacityPoller(
                client=gbfs,
                segments=capacity_segments,
                sink=sinks["capacity"],
                console=console,
                radius_m=config.geofence.radius_m,
            )
            schedulers.append(
                PollScheduler(
                    poller,
                    iterations=config.polling.iterations,
                    interval_s=config.polling.interval_s,
                    stop_event=stop_event,
                )
            )
        if "headway" in feeds:
            if trip_updates is None:
                http = stack.enter_context(_feed_client(config, config.headway.timeout_s))
                trip_updates = TripUpdatesClient(http=http, trip_updates_url=config.headway.trip_updates_url)
            poller = HeadwayPoller(
                client=trip_updates,
                segments=headway_segments,
                sink=sinks["headway"],
                console=console,
            )
            schedulers.append(
                PollScheduler(
                    poller,
                    iterations=config.polling.iterations,
                    interval_s=config.polling.interval_s,
                    stop_event=stop_event,
                )
            )

        try:
            for scheduler in schedulers:
                scheduler.initialize()
        except SetupFailure as e:
            logger.error("Setup failed: %s", e)
            print(f"FATAL: setup failed: {e}", file=sys.stderr)
            return EXIT_SETUP_FAILURE

        exit_code = _run_schedulers(schedulers)
        for kind, sink in sinks.items():
            logger.info("%s: %s rows written to %s", kind, sink.rows_written, sink.path)
        return exit_code


def _stop_all(schedulers: Sequence[PollScheduler]) -> None:
    for scheduler in schedulers:
        scheduler.stop()


def _run_schedulers(schedulers: Sequence[PollScheduler]) -> int:
    if len(schedulers) == 1:
        try:
            schedulers[0].run()
        except SinkError as e:
            logger.error("%s: output failed: %s", schedulers[0].name, e)
            print(f"FATAL: {e}", file=sys.stderr)
            return EXIT_SINK_FAILURE
        return EXIT_OK

    exit_code = EXIT_OK
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(schedulers), thread_name_prefix="poll") as executor:
        futures = {executor.submit(s.run): s for s in schedulers}
        for future in concurrent.futures.as_completed(futures):
            scheduler = futures[future]
            try:
                completed = future.result()
                logger.info("%s: %s ticks completed", scheduler.name, completed)
            except SinkError as e:
                logger.error("%s: output failed, stopping all feeds: %s", scheduler.name, e)
                print(f"FATAL: {e}", file=sys.stderr)
                _stop_all(schedulers)
                exit_code = EXIT_SINK_FAILURE
            except Exception:
                logger.exception("%s: scheduler crashed, stopping all feeds", scheduler.name)
                _stop_all(schedulers)
                raise
    return exit_code
