#!/usr/bin/env python3
"""CLI entry point for healthfold package.

Usage:
    python -m healthfold export.zip > records.csv
    python -m healthfold export.zip --mode schemaless --key-order document
    python -m healthfold export.zip --strict -v --output records.csv
    python -m healthfold --init-config healthfold.toml
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from healthfold import __version__
from healthfold.errors import HealthfoldError

LOG_LEVEL_ENV = "HEALTHFOLD_LOG_LEVEL"

logger = logging.getLogger("healthfold")


def configure_logging(verbose: int = 0, quiet: bool = False) -> None:
    """Send diagnostics to stderr, once per process.

    -q shows errors only, default shows warnings, -v adds progress and
    timings, -vv adds debug detail. With neither flag, HEALTHFOLD_LOG_LEVEL
    (e.g. "info") sets the level.
    """
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        env_level = os.environ.get(LOG_LEVEL_ENV, "").upper()
        level = logging.getLevelName(env_level) if env_level else logging.WARNING
        if not isinstance(level, int):
            level = logging.WARNING

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthfold",
        description="Convert the Record entries of a health export zip to CSV.",
    )
    parser.add_argument("archive", nargs="?", help="Path to export.zip")
    parser.add_argument("--config", default=None, help="Path to healthfold.toml config file")
    parser.add_argument("--mode", choices=["fixed", "schemaless"], default=None,
                        help="Fixed nine-column schema (default) or columns from the first record")
    parser.add_argument("--strict", action=argparse.BooleanOptionalAction, default=None,
                        help="Abort on the first record missing a required attribute")
    parser.add_argument("--key-order", choices=["sorted", "document"], default=None,
                        help="Schema-less column order")
    parser.add_argument("--stream", action=argparse.BooleanOptionalAction, default=None,
                        help="Parse export.xml incrementally instead of loading it into memory")
    parser.add_argument("--output", "-o", default=None, help="Write CSV here instead of stdout")
    parser.add_argument("--init-config", metavar="PATH", default=None,
                        help="Write a default config file to PATH and exit")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0,
                           help="Show progress (-v) or debug (-vv) diagnostics")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only show errors")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    if args.init_config:
        _handle_init_config(args)
        return

    if args.archive is None:
        parser.error("the following arguments are required: archive")

    try:
        _handle_convert(args)
    except HealthfoldError as e:
        logger.error("Error: %s", e)
        sys.exit(1)


def _handle_init_config(args):
    from healthfold.config import write_default_config

    try:
        path = write_default_config(args.init_config)
    except HealthfoldError as e:
        logger.error("Error: %s", e)
        sys.exit(1)
    print(f"Config generated at {path}", file=sys.stderr)


def _handle_convert(args):
    from healthfold.config import load_config
    from healthfold.pipeline import convert

    config = load_config(args.config).override(
        mode=args.mode,
        strict=args.strict,
        key_order=args.key_order,
        stream=args.stream,
    )

    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as sink:
            stats = convert(args.archive, sink, config)
    else:
        stats = convert(args.archive, sys.stdout, config)

    if stats.records_skipped or stats.rows_skipped:
        logger.warning(
            "%d of %d records were not written",
            stats.records_skipped + stats.rows_skipped, stats.records_read,
        )


if __name__ == "__main__":
    main()
