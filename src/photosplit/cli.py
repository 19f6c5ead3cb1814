"""
Command-line entry point.

Usage:
    # Extract photos from every scan under scans/ into photos/
    photosplit scans/ photos/

    # Smaller photos, no padding, more sensitive edges
    photosplit scans/ photos/ --min-area 5000 --pad 0 --canny-low 30

    # Custom configuration file, single worker
    photosplit scans/ photos/ --config my_config.yaml --workers 1
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from photosplit.batch import run_batch
from photosplit.config_loader import DEFAULT_CONFIG_PATH, apply_overrides, load_config
from photosplit.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photosplit",
        description="Extract individual photos from scanned sheets and save them straightened.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("input_dir", type=Path, help="Directory containing scanned images")
    parser.add_argument("output_dir", type=Path, help="Directory where photos are written")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Configuration YAML file",
    )
    parser.add_argument(
        "--min-area",
        type=float,
        default=None,
        help="Minimum contour area (px^2) to treat as a photo (config: 20000)",
    )
    parser.add_argument(
        "--pad",
        type=int,
        default=None,
        help="Padding (px) added around the scan to catch edge-touching photos (config: 12)",
    )
    parser.add_argument(
        "--canny-low",
        type=float,
        default=None,
        help="Lower Canny threshold; raise to be less sensitive (config: 50)",
    )
    parser.add_argument(
        "--canny-high",
        type=float,
        default=None,
        help="Upper Canny threshold; values <= low become 3x low (config: 150)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker processes (default: one per CPU core)",
    )
    parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        default=None,
        help="Only process files directly inside input_dir",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    # Configuration problems abort before any file is touched
    try:
        config = apply_overrides(
            load_config(args.config),
            min_area=args.min_area,
            pad=args.pad,
            canny_low=args.canny_low,
            canny_high=args.canny_high,
            workers=args.workers,
            recursive=args.recursive,
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_USAGE

    try:
        summary = run_batch(args.input_dir, args.output_dir, config)
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_USAGE
    except OSError as e:
        logger.error(f"Cannot prepare output directory {args.output_dir}: {e}")
        return EXIT_USAGE

    logger.info(
        f"Done: {summary.files} file(s), {summary.photos} photo(s) saved, "
        f"{summary.dropped} candidate(s) dropped, {len(summary.failed)} file(s) failed"
    )
    for path, message in summary.failed:
        logger.error(f"Failed: {path}: {message}")

    return EXIT_OK if summary.ok else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
