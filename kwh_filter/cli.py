"""
Command-line interface for computing kWh totals per time window.

Usage:
    python -m kwh_filter.cli --device DEVICE_ID --token TOKEN
    python -m kwh_filter.cli --device DEVICE_ID --token TOKEN --from-date 2025-09-20 --to-date 2025-09-22
    python -m kwh_filter.cli --token TOKEN --window section-1 --window section-3 --progress
"""
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List

from .config import DEFAULT_DEVICE_ID, PACING_DELAY_SECONDS, load_window_table
from .coordinator import WindowCoordinator
from .errors import ValidationError
from .logging_setup import setup_logging
from .models import Credentials, TimeWindow
from .ranges import default_date_range, validate_inputs

logger = logging.getLogger(__name__)


def _print_summary(windows: List[TimeWindow], elapsed: float):
    """Print per-window totals."""
    logger.info(f"\n{'='*50}")
    logger.info("SUMMARY")
    logger.info(f"{'='*50}")
    for w in windows:
        sign = "+" if w.is_positive else "-"
        logger.info(f"  {w.window_id:<12} {w.from_time}-{w.to_time}  {w.display_total:>12} kWh [{sign}]")
    logger.info(f"Time: {elapsed:.1f}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sum netkvah telemetry per time-of-day window")
    parser.add_argument(
        "--device", "-d",
        type=str,
        default=DEFAULT_DEVICE_ID,
        help="Device ID (default: KWH_FILTER_DEVICE_ID)"
    )
    parser.add_argument(
        "--token", "-t",
        type=str,
        required=True,
        help="API bearer token"
    )
    parser.add_argument(
        "--from-date",
        type=str,
        default=None,
        help="First day, YYYY-MM-DD (default: three days ago)"
    )
    parser.add_argument(
        "--to-date",
        type=str,
        default=None,
        help="Last day, YYYY-MM-DD (default: today)"
    )
    parser.add_argument(
        "--window", "-w",
        action="append",
        default=None,
        help="Window ID to run (repeatable, default: all)"
    )
    parser.add_argument(
        "--windows-file",
        type=str,
        default=None,
        help="JSON file with the window table"
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=PACING_DELAY_SECONDS,
        help=f"Seconds between consecutive calls (default: {PACING_DELAY_SECONDS})"
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar per window"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.INFO, Path(args.log_file) if args.log_file else None)

    if not args.device:
        logger.error("No device ID given and KWH_FILTER_DEVICE_ID is not set")
        return 1

    try:
        table = load_window_table(args.windows_file)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load window table: {e}")
        return 1

    windows = [TimeWindow.from_config(entry) for entry in table]
    if args.window:
        windows = [w for w in windows if w.window_id in args.window]
        if not windows:
            logger.error(f"No windows match {args.window}")
            return 1

    date_range = default_date_range()
    date_range.from_date = args.from_date or date_range.from_date
    date_range.to_date = args.to_date or date_range.to_date

    # Any invalid window fails the whole run
    for w in windows:
        try:
            validate_inputs(date_range, w.from_time, w.to_time)
        except ValidationError as e:
            logger.error(f"Window {w.window_id}: {e}")
            return 1

    start_time = time.time()
    try:
        with WindowCoordinator(
            Credentials(args.device, args.token),
            windows=windows,
            date_range=date_range,
            delay=args.delay,
            progress=args.progress,
        ) as coordinator:
            results = coordinator.run_all()
    except ValidationError as e:
        logger.error(str(e))
        return 1

    _print_summary(results, time.time() - start_time)
    return 0


if __name__ == "__main__":
    sys.exit(main())
