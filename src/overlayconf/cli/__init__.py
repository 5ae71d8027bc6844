"""
overlayconf CLI package.

Each command lives in its own module exposing ``SUMMARY``,
``register_args(parser)`` and ``main(args) -> int``.
"""
from __future__ import annotations

import argparse
import importlib
import sys
from typing import List, Optional

from overlayconf import __version__
from overlayconf.core.stdlib_logging import configure_logging

COMMANDS = ("order", "resolve")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="overlayconf",
        description="Resolve overlay package configuration across partitions.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostics written to stderr (default: logging.level from settings)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name in COMMANDS:
        module = importlib.import_module(f"overlayconf.cli.{name}")
        sub = subparsers.add_parser(name, help=module.SUMMARY, description=module.SUMMARY)
        module.register_args(sub)
        sub.set_defaults(_main=module.main)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or "WARNING")
    return int(args._main(args))


if __name__ == "__main__":
    sys.exit(main())
