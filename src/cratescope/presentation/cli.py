"""Command-line interface.

    cratescope analyze TARGET [-o OUT] [--ext .rs]... [--exclude PAT]...
                       [--crate-name NAME] [--workers N] [--config FILE]
                       [--generated-at TS] [-v | -q]

Exit codes: 0 success, 1 output failure, 2 configuration error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler

from cratescope import __version__
from cratescope.application.reporters.console import ConsoleReporter
from cratescope.application.services.pipeline import run_analysis
from cratescope.domain.configuration import AnalysisConfig
from cratescope.domain.exceptions import ConfigError, OutputRootError
from cratescope.infrastructure.config_loader import load_config

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_OUTPUT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``cratescope`` command."""
    parser = argparse.ArgumentParser(
        prog="cratescope",
        description="Static structure and call-graph extraction for Rust source trees.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    pa = sub.add_parser("analyze", help="Analyze a Rust source tree and write structure JSON")
    pa.add_argument("target", nargs="?", type=Path, help="Root of the source tree")
    pa.add_argument("-o", "--output", type=Path, dest="output_dir", help="Output directory")
    pa.add_argument(
        "--ext",
        action="append",
        dest="extensions",
        metavar="EXT",
        help="File extension to include (repeatable, default .rs)",
    )
    pa.add_argument(
        "--exclude",
        action="append",
        metavar="PAT",
        help="Exclude pattern (repeatable, replaces the defaults)",
    )
    pa.add_argument("--crate-name", dest="crate_name", help="First module path segment")
    pa.add_argument("--workers", type=int, help="Worker threads (1 = sequential)")
    pa.add_argument("--config", type=Path, help="TOML configuration file")
    pa.add_argument("--generated-at", dest="generated_at", help="Fixed ISO-8601 timestamp")

    verbosity = pa.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Warnings and errors only")
    pa.set_defaults(func=cmd_analyze)

    return parser


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Route log records through rich on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def config_from_args(args: argparse.Namespace) -> AnalysisConfig:
    """Layer command-line values over the config file.

    Raises:
        ConfigError: Invalid value or missing target
    """
    values: dict[str, Any] = load_config(args.config) if args.config else {}

    overrides = {
        "target_dir": args.target,
        "output_dir": args.output_dir,
        "extensions": tuple(args.extensions) if args.extensions else None,
        "exclude": tuple(args.exclude) if args.exclude else None,
        "crate_name": args.crate_name,
        "workers": args.workers,
        "generated_at": args.generated_at,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})

    if "target_dir" not in values:
        raise ConfigError("target_dir", "no target given on the command line or in the config")
    return AnalysisConfig(**values)


def cmd_analyze(args: argparse.Namespace) -> int:
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        config = config_from_args(args)
        result = run_analysis(config)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR
    except OutputRootError as e:
        logger.error("%s", e)
        return EXIT_OUTPUT_ERROR

    sys.stdout.write(ConsoleReporter().report(result, color=sys.stdout.isatty()))

    if not result.ok:
        logger.error("%s", result.output_error)
        return EXIT_OUTPUT_ERROR
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the ``cratescope`` script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
