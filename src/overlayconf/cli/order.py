"""
overlayconf order command.

SUMMARY: Show the effective partition order
"""
from __future__ import annotations

import argparse
from pathlib import Path

from overlayconf.cli._args import add_json_flag, add_root_arg, add_settings_flag
from overlayconf.cli._output import OutputFormatter
from overlayconf.core.partition_order import partition_order_path, resolve_order
from overlayconf.core.partitions import default_partitions, format_partition_order
from overlayconf.core.settings import load_settings
from overlayconf.core.stdlib_logging import configure_logging
from overlayconf.exceptions import OverlayConfigError

SUMMARY = "Show the effective partition order"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_root_arg(parser)
    add_settings_flag(parser)
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=args.json)
    try:
        root = Path(args.root)
        settings = load_settings(root, settings_path=args.settings)
        if args.log_level is None:
            configure_logging(settings.log_level)
        defaults = default_partitions(
            root,
            settings.partition_paths,
            overlay_dir=settings.overlay_dir,
            config_dir=settings.config_dir,
        )
        order_file = partition_order_path(defaults, settings.partition_order_file)
        order, accepted = resolve_order(order_file, defaults)
    except OverlayConfigError as exc:
        formatter.error(exc)
        return 1

    if args.json:
        formatter.json_output(
            {
                "partitionOrder": [p.name for p in order],
                "accepted": accepted,
                "orderFile": str(order_file),
            }
        )
    else:
        formatter.text(format_partition_order(order))
        formatter.text(f"source: {order_file if accepted else 'default'}")
    return 0
