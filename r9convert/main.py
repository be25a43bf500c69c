"""
R9 to Garmin converter - command line entry point.

Usage:
    r9convert convert <input-dir> <output-dir> [--verbose] [--workers N]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from tqdm import tqdm

from r9convert.config import BOUNDARY_WINDOW_S, MAX_WORKERS, AirframeInfo
from r9convert.errors import ConversionError, OutputDirectoryError
from r9convert.services.converter import R9ToGarminConverter


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="r9convert",
        description="Convert Avidyne R9 CSV logs into Garmin-format flight logs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert a directory of R9 logs")
    convert.add_argument("input_dir", type=Path, help="Directory containing R9 *_ENGINE/FLIGHT/SYSTEM.CSV files")
    convert.add_argument("output_dir", type=Path, help="Existing directory to write Garmin logs into")
    convert.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log skipped rows and files (hides the progress bar)"
    )
    convert.add_argument(
        "--workers", "-w",
        type=int,
        default=MAX_WORKERS,
        help=f"Number of files parsed in parallel (default: {MAX_WORKERS})"
    )
    convert.add_argument(
        "--window",
        type=float,
        default=BOUNDARY_WINDOW_S,
        help=f"Seconds between power-on markers merged into one flight (default: {BOUNDARY_WINDOW_S})"
    )
    convert.add_argument("--aircraft-ident", help="Tail number written to the airframe metadata line")
    convert.add_argument("--system-id", help="System ID written to the airframe metadata line")
    convert.add_argument("--product", help="Product name written to the airframe metadata line")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.ERROR,
        format=LOG_FORMAT,
    )


def run_convert(args: argparse.Namespace) -> int:
    if not args.output_dir.is_dir():
        raise OutputDirectoryError(args.output_dir)

    airframe = AirframeInfo().with_overrides(
        aircraft_ident=args.aircraft_ident,
        system_id=args.system_id,
        product=args.product,
    )
    converter = R9ToGarminConverter(airframe=airframe, window=args.window, max_workers=args.workers)

    if args.verbose:
        converter.parse_directory(args.input_dir)
    else:
        with tqdm(total=100, unit="%", desc="Parsing R9 logs") as bar:
            def progress(fraction: float, message: str) -> None:
                bar.set_postfix_str(message, refresh=False)
                bar.update(round(fraction * 100) - bar.n)

            converter.parse_directory(args.input_dir, progress)

    written = converter.write(args.output_dir)
    logger.info(f"Wrote {len(written)} flight logs to {args.output_dir}")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        return run_convert(args)
    except (ConversionError, OSError) as e:
        logger.critical(f"Conversion failed: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
