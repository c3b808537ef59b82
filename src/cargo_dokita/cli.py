"""Command line entrypoint.

Usage::

    cargo-dokita [dokita] [--project-path PATH] [--format human|json] [-v]

Exits 0 when no errors or warnings remain, 1 when some do, 2 when the project
cannot be analyzed at all.
"""

import argparse
import logging
import sys
from typing import Optional

from . import __version__
from .errors import DokitaError
from .pipeline import analyze_project
from .reporting import format_human, format_json

logger = logging.getLogger(__name__)

EXIT_ENVIRONMENT_ERROR = 2

# Invoked as a cargo subcommand, cargo passes the subcommand name first
CARGO_SUBCOMMAND = "dokita"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-dokita",
        description="Analyze a Rust/Cargo project for common issues and best practices.",
    )
    parser.add_argument(
        "-p",
        "--project-path",
        default="./",
        help="Path to the Rust project to analyze (default: current directory)",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=("human", "json"),
        default="human",
        help="Output format (default: human)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug output)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _log_level(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def main(argv: Optional[list[str]] = None) -> int:
    args_in = list(sys.argv[1:] if argv is None else argv)
    if args_in and args_in[0] == CARGO_SUBCOMMAND:
        args_in = args_in[1:]

    args = build_parser().parse_args(args_in)

    logging.basicConfig(
        level=_log_level(args.verbose),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        report = analyze_project(args.project_path)
    except DokitaError as e:
        logger.debug("Analysis aborted", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ENVIRONMENT_ERROR

    if args.format == "json":
        print(format_json(report))
    else:
        print(format_human(report))

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
