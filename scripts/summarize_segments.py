from __future__ import annotations

import sys
from pathlib import Path

# Allow running scripts without requiring an editable install (`pip install -e .`).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
import logging

from segmentwatch.analytics.summary import summarize_capacity_csv, summarize_headway_csv
from segmentwatch.config.loader import load_config
from segmentwatch.utils.logging import configure_logging


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarize capacity and headway CSV files written by collect_segments.py.")
    parser.add_argument("--config", default=None, help="Config JSON path (used for default output paths).")
    parser.add_argument("--capacity-csv", default=None)
    parser.add_argument("--headway-csv", default=None)
    args = parser.parse_args()

    config = load_config(args.config)
    configure_logging(config.logging)

    capacity_path = Path(args.capacity_csv) if args.capacity_csv else config.capacity.output_path
    headway_path = Path(args.headway_csv) if args.headway_csv else config.headway.output_path

    if capacity_path.exists():
        print(f"Capacity ({capacity_path})")
        print(summarize_capacity_csv(capacity_path).to_string(index=False))
    else:
        logger.warning("No capacity output at %s", capacity_path)

    if headway_path.exists():
        print(f"\nHeadways ({headway_path})")
        print(summarize_headway_csv(headway_path).to_string(index=False))
    else:
        logger.warning("No headway output at %s", headway_path)


if __name__ == "__main__":
    main()
