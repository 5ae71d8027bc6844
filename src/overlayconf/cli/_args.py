"""Argument helpers shared by the CLI commands."""
from __future__ import annotations

import argparse


def add_root_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        help="Directory holding the partition mount points",
    )


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_settings_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--settings",
        type=str,
        help="Settings file (default: <root>/overlayconf.yaml if present)",
    )


__all__ = ["add_json_flag", "add_root_arg", "add_settings_flag"]
