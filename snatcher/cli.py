"""Command-line interface for snatcher."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import SnatchConfig
from .core.pipeline import SnatchError, SnatchPipeline
from .data.report import RunReport

DESCRIPTION = """\
"snatcher" locates the main JS bundle of a production React/CRA site, grabs its
sourcemap and reconstructs only the top-level source files (omitting
node_modules, webpack, etc.). It then writes a JSON report with metadata and
potential package names.
"""


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="snatcher", description=DESCRIPTION)

    parser.add_argument(
        "base_url",
        help="Base URL of the site to scan (e.g. https://example.com/ or https://user.github.io/app/)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output directory (default: recovered-files or SNATCHER_OUTPUT_DIR env)"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed per network request (default: 15 or SNATCHER_TIMEOUT env)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def print_summary(report: RunReport) -> None:
    print(f"\nSkipped {report.skipped_sources} sources, wrote {report.written_sources}, "
          f"out of {report.total_sources} total.")
    if report.missing_sources:
        print(f"{report.missing_sources} sources had no embedded content.")
    if report.failed_sources:
        print(f"{report.failed_sources} sources could not be written.")
    print(f"Possible node packages: [{', '.join(report.possible_node_packages)}]")


async def snatch(config: SnatchConfig) -> int:
    """Run one snatch and return the process exit code."""
    print(f"Snatcher scanning HTML at: {config.base_url}")

    pipeline = SnatchPipeline(config)
    try:
        report = await pipeline.run()
    except SnatchError as e:
        print(f"✗ {e.reason}", file=sys.stderr)
        return 1

    print(f"\nSnatched sourcemap from: {report.map_url}")
    print(f"Created JSON report => {pipeline.report_path}")
    print_summary(report)
    print("\nSnatcher is done!")
    return 0


async def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)

    try:
        config = SnatchConfig(
            base_url=args.base_url,
            output_dir=args.output,
            debug=args.debug,
            timeout=args.timeout,
        )
    except ValueError as e:
        parser.error(str(e))

    exit_code = await snatch(config)
    sys.exit(exit_code)


def cli_entry_point():
    """Entry point for pip-installed command."""
    asyncio.run(main())


if __name__ == "__main__":
    asyncio.run(main())
