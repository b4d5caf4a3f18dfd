#!/usr/bin/env python3
"""
WebAssembly Profile Reporter
============================
Main entry point: aggregates a profile CSV, resolves function names from
the profiled modules and prints a time-sorted report.
"""

import argparse
import logging
import sys
from typing import List, Optional

from config import Config
from models import U32_MAX
from profiler import Profiler
from utils import ProfilerError, setup_logging

__version__ = '0.1.0'

# Setup logging
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wasm-profiler",
        description="Summarize WebAssembly function timings from a profile CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s profile.csv                         # Functions shown by index
  %(prog)s profile.csv app.wasm                # Names from app.wasm's name section
  %(prog)s profile.csv main.wasm lib.wasm      # Modules 0 and 1
  %(prog)s profile.csv app.wasm --report r.html
        """
    )

    parser.add_argument(
        "profile",
        help="Profiling result in CSV format"
    )

    parser.add_argument(
        "modules",
        nargs="*",
        help="WebAssembly modules on which profiling was run, in module index order"
    )

    parser.add_argument(
        "--report",
        help="Also save a report at the given path (.txt, .json, .csv or .html)"
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file (.json or .yaml)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from configuration)"
    )

    parser.add_argument(
        "--log-file",
        help="Also write logs to this file"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def run(args: argparse.Namespace) -> Profiler:
    """Load the profile and every module named on the command line."""
    profiler = Profiler.import_profile_from_file(args.profile)

    if len(args.modules) > U32_MAX + 1:
        raise ProfilerError(f"Too many modules: {len(args.modules)}")

    for module_index, module_path in enumerate(args.modules):
        profiler.load_module_from_file(module_index, module_path)

    return profiler


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        try:
            Config.from_file(args.config)
        except (OSError, ValueError) as e:
            parser.error(f"cannot load configuration {args.config}: {e}")

    # Setup logging
    setup_logging("DEBUG" if args.verbose else args.log_level, args.log_file)

    try:
        profiler = run(args)

        if args.report:
            profiler.report_generator().save_report(args.report)
            logger.info(f"Report saved to: {args.report}")

    except (ProfilerError, OSError) as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return 1

    profiler.print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
