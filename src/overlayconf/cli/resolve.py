"""
overlayconf resolve command.

SUMMARY: Resolve and print the overlay configuration table
"""
from __future__ import annotations

import argparse

from overlayconf.cli._args import add_json_flag, add_root_arg, add_settings_flag
from overlayconf.cli._output import OutputFormatter
from overlayconf.core.resolver import OverlayConfig
from overlayconf.core.settings import load_settings
from overlayconf.core.stdlib_logging import configure_logging
from overlayconf.exceptions import OverlayConfigError

SUMMARY = "Resolve and print the overlay configuration table"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_root_arg(parser)
    parser.add_argument(
        "--package",
        help="Only show this overlay package",
    )
    add_settings_flag(parser)
    add_json_flag(parser)


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=args.json)
    try:
        settings = load_settings(args.root, settings_path=args.settings)
        if args.log_level is None:
            configure_logging(settings.log_level)
        overlay_config = OverlayConfig(args.root, settings=settings)
    except OverlayConfigError as exc:
        formatter.error(exc)
        return 1

    info = overlay_config.get_overlay_info()
    if args.package:
        entry = info["overlays"].get(args.package)
        if entry is None:
            formatter.text(f"Overlay not found: {args.package}")
            return 1
        info["overlays"] = {args.package: entry}

    if args.json:
        formatter.json_output(info)
        return 0

    formatter.text(f"Partition order: {info['partitionOrder']}")
    formatter.text("=" * 60)
    for name, entry in info["overlays"].items():
        formatter.text(
            f"{name}  partition={entry['partition']} index={entry['configIndex']} "
            f"enabled={_flag(entry['enabled'])} mutable={_flag(entry['mutable'])}"
        )
    return 0
