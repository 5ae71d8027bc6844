"""overlayconf core library.

Partition model, partition order validation, overlay scanning, policy
parsing and the resolution engine.
"""
from __future__ import annotations

from .cache import clear_overlay_config_cache, get_overlay_config, rescan
from .config_parser import ConfigSource, ParsedConfiguration, PartitionPolicy, XmlConfigSource
from .partition_order import resolve_order, sort_partitions
from .partitions import (
    DEFAULT_PARTITION_ORDER,
    OverlayPartition,
    PartitionSpec,
    default_partitions,
    format_partition_order,
    parse_partition,
)
from .resolver import Configuration, OverlayConfig, ResolutionResult, resolve
from .scanner import ManifestOverlayScanner, OverlayPackage, OverlayScanner, PackageProvider
from .settings import ResolverSettings, load_settings

__all__ = [
    "Configuration",
    "ConfigSource",
    "DEFAULT_PARTITION_ORDER",
    "ManifestOverlayScanner",
    "OverlayConfig",
    "OverlayPackage",
    "OverlayPartition",
    "OverlayScanner",
    "PackageProvider",
    "ParsedConfiguration",
    "PartitionPolicy",
    "PartitionSpec",
    "ResolutionResult",
    "ResolverSettings",
    "XmlConfigSource",
    "clear_overlay_config_cache",
    "default_partitions",
    "format_partition_order",
    "get_overlay_config",
    "load_settings",
    "parse_partition",
    "rescan",
    "resolve",
    "resolve_order",
    "sort_partitions",
]
