from __future__ import annotations

import sys
from pathlib import Path

# Allow running scripts without requiring an editable install (`pip install -e .`).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
from dataclasses import replace
import logging
import signal
import threading

from segmentwatch.config.loader import load_config
from segmentwatch.pipeline.runner import EXIT_SETUP_FAILURE, parse_feeds, run_collectors
from segmentwatch.utils.logging import configure_logging


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Poll the bike-share station feed and/or the GTFS-realtime trip updates feed at a fixed cadence "
            "and append per-segment capacity and headway rows to CSV. Stop with Ctrl+C."
        )
    )
    parser.add_argument("--config", default=None, help="Config JSON path.")
    parser.add_argument("--feeds", default=None, help="Comma-separated subset of: capacity,headway (default: both).")
    parser.add_argument("--iterations", type=int, default=None, help="Number of ticks (overrides config).")
    parser.add_argument("--interval-seconds", type=float, default=None, help="Seconds between tick starts.")
    parser.add_argument("--log-level", default=None, help="Override logging level (e.g. DEBUG).")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        feeds = parse_feeds(args.feeds)
    except (OSError, ValueError) as e:
        print(f"FATAL: invalid configuration: {e}", file=sys.stderr)
        return EXIT_SETUP_FAILURE

    polling = config.polling
    if args.iterations is not None:
        if args.iterations < 1:
            print("FATAL: --iterations must be >= 1", file=sys.stderr)
            return EXIT_SETUP_FAILURE
        polling = replace(polling, iterations=args.iterations)
    if args.interval_seconds is not None:
        polling = replace(polling, interval_s=max(args.interval_seconds, 0.0))
    config = replace(config, polling=polling)

    try:
        configure_logging(config.logging, level_override=args.log_level)
    except ValueError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return EXIT_SETUP_FAILURE

    stop_event = threading.Event()

    def _handle_signal(_signum, _frame) -> None:  # type: ignore[no-untyped-def]
        if not stop_event.is_set():
            logger.info("Stop requested; finishing the current tick.")
        stop_event.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)

    return run_collectors(config, feeds=feeds, stop_event=stop_event)


if __name__ == "__main__":
    sys.exit(main())
