"""Command-line entry point — fetch sources and write the entry snapshot."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from fieldnotes.config import load_config
from fieldnotes.jobs import ALL_SOURCES, run_fetch

logger = logging.getLogger("fieldnotes")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fieldnotes-fetch",
        description="Fetch gists and Zenn posts into a static-site entry snapshot.",
    )
    parser.add_argument(
        "--source",
        choices=[ALL_SOURCES, "gist", "zenn"],
        default=ALL_SOURCES,
        help="which source to query (default: all)",
    )
    parser.add_argument(
        "--force", action="store_true", help="ignore cached validators and refetch"
    )
    parser.add_argument(
        "--limit", type=_positive_int, default=None, help="maximum items per source"
    )
    parser.add_argument(
        "--since", default=None, help="drop entries published before this date"
    )
    parser.add_argument("--env-file", default=None, help="path to a .env file")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load config, and run one fetch."""
    args = build_parser().parse_args(argv)
    config = load_config(args.env_file)

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "fieldnotes fetch starting (source=%s, force=%s, limit=%s, since=%s)",
        args.source, args.force, args.limit, args.since,
    )

    try:
        asyncio.run(
            run_fetch(
                config,
                source=args.source,
                force=args.force,
                limit=args.limit,
                since=args.since,
            )
        )
    except OSError:
        logger.exception("Failed to write snapshot")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
