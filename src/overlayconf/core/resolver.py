"""Overlay configuration resolution.

``resolve`` computes the effective partition order, scans every partition in
that order and merges the per-partition policy fragments into one read-only
table keyed by package name::

    result = resolve(Path("/"))
    result.configurations["com.example.overlay"].config_index

``config_index`` is the position of the package's governing partition in the
effective order, so all packages of one partition share an index. When a
package appears in several partitions the last one processed wins, for both
its flags and its index.
"""
from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, MutableSequence, Optional, Tuple, Union

from overlayconf.core.config_parser import ConfigSource, ParsedConfiguration, PartitionPolicy, XmlConfigSource
from overlayconf.core.partition_order import partition_order_path, resolve_order, sort_partitions as _sort_partitions
from overlayconf.core.partitions import (
    OverlayPartition,
    PartitionSpec,
    check_total_order,
    default_partitions,
    format_partition_order,
)
from overlayconf.core.scanner import ManifestOverlayScanner, OverlayPackage, OverlayScanner, PackageProvider
from overlayconf.core.settings import ResolverSettings, load_settings
from overlayconf.exceptions import ScanRootError

logger = logging.getLogger(__name__)

ScannerFactory = Callable[[], OverlayScanner]


@dataclass(frozen=True)
class Configuration:
    """Final policy of one overlay package."""

    parsed_config: ParsedConfiguration
    config_index: int

    @property
    def package_name(self) -> str:
        return self.parsed_config.package_name

    @property
    def enabled(self) -> bool:
        return self.parsed_config.enabled

    @property
    def mutable(self) -> bool:
        return self.parsed_config.mutable

    @property
    def partition(self) -> str:
        return self.parsed_config.policy


@dataclass(frozen=True)
class ResolutionResult:
    """Immutable outcome of one ``resolve`` call."""

    configurations: Mapping[str, Configuration]
    partition_order: Tuple[PartitionSpec, ...]
    order_accepted: bool

    @property
    def partition_order_string(self) -> str:
        return format_partition_order(self.partition_order)

    def get(self, package_name: str) -> Optional[Configuration]:
        return self.configurations.get(package_name)


def _ensure_root(root_dir: Path) -> Path:
    try:
        if root_dir.is_dir():
            return root_dir
    except OSError as exc:
        raise ScanRootError(f"Cannot access root directory {root_dir}: {exc}", context={"root": str(root_dir)}) from exc
    raise ScanRootError(f"Root directory does not exist: {root_dir}", context={"root": str(root_dir)})


def _collect_fragments(
    partition: PartitionSpec,
    packages: Callable[[PartitionSpec], Iterable[OverlayPackage]],
    config_source: ConfigSource,
) -> Dict[str, ParsedConfiguration]:
    """Return the fragments of one partition, keyed by package name.

    Errors never leave this function. A policy that cannot be loaded counts
    as empty. A failing package is skipped. A failing enumeration keeps the
    fragments collected before it.
    """
    try:
        policy = config_source.load(partition)
    except Exception as exc:
        logger.warning("Cannot load config of partition %s, using no declarations: %s", partition.name, exc)
        policy = PartitionPolicy(partition=partition.name)
    fragments: Dict[str, ParsedConfiguration] = {}
    try:
        for package in packages(partition):
            if not package.package_name:
                logger.warning("Skipping overlay package without a name in %s", partition.name)
                continue
            if package.package_name in fragments:
                logger.warning("Overlay %s found more than once in %s; using the last one", package.package_name, partition.name)
            try:
                fragment = config_source.fragment(package, policy)
            except Exception as exc:
                logger.warning("Skipping overlay %s in %s: %s", package.package_name, partition.name, exc)
                continue
            if fragment is not None:
                fragments[package.package_name] = fragment
    except Exception as exc:
        logger.warning("Scan of partition %s stopped early: %s", partition.name, exc)

    for name in sorted(set(policy.declarations) - set(fragments)):
        logger.warning(
            "Config of partition %s declares overlay %s, which is not in that partition",
            partition.name,
            name,
        )
    logger.debug("Partition %s: %d overlay(s)", partition.name, len(fragments))
    return fragments


def resolve(
    root_dir: Union[str, Path],
    scanner_factory: Optional[ScannerFactory] = None,
    package_provider: Optional[PackageProvider] = None,
    *,
    config_source: Optional[ConfigSource] = None,
    settings: Optional[ResolverSettings] = None,
) -> ResolutionResult:
    """Resolve the overlay configuration of the partitions under ``root_dir``.

    Args:
        root_dir: Directory holding the partition mount points.
        scanner_factory: Creates the scanner for each partition. Defaults to
            ``ManifestOverlayScanner``.
        package_provider: Pre-parsed packages; used instead of scanning.
        config_source: Policy source. Defaults to ``XmlConfigSource``.
        settings: Resolver settings. Defaults to ``load_settings(root_dir)``.

    Raises:
        ScanRootError: If ``root_dir`` is missing or inaccessible.
        SettingsError: If settings are loaded here and are invalid.
    """
    root = _ensure_root(Path(root_dir))
    if settings is None:
        settings = load_settings(root)

    defaults = default_partitions(
        root,
        settings.partition_paths,
        overlay_dir=settings.overlay_dir,
        config_dir=settings.config_dir,
    )
    order, accepted = resolve_order(partition_order_path(defaults, settings.partition_order_file), defaults)
    order = tuple(order)
    check_total_order(order)

    if config_source is None:
        config_source = XmlConfigSource(settings.config_file, settings.max_merge_depth)

    if package_provider is not None:
        packages = package_provider.iter_packages
    else:
        factory = scanner_factory or (lambda: ManifestOverlayScanner(settings.manifest_name))

        def packages(partition: PartitionSpec) -> Iterable[OverlayPackage]:
            return factory().scan(partition)

    def collect(partition: PartitionSpec) -> Dict[str, ParsedConfiguration]:
        return _collect_fragments(partition, packages, config_source)

    if settings.scan_workers > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=settings.scan_workers) as executor:
            # map() yields in submission order, so the merge below stays serial.
            scanned = list(executor.map(collect, order))
    else:
        scanned = [collect(partition) for partition in order]

    table: Dict[str, Configuration] = {}
    for index, (partition, fragments) in enumerate(zip(order, scanned)):
        for name, fragment in fragments.items():
            previous = table.get(name)
            if previous is not None:
                logger.info(
                    "Overlay %s: policy from %s replaces %s",
                    name,
                    partition.name,
                    previous.partition,
                )
            table[name] = Configuration(parsed_config=fragment, config_index=index)

    logger.info(
        "Resolved %d overlay(s); partition order: %s%s",
        len(table),
        format_partition_order(order),
        "" if accepted else " (default)",
    )
    return ResolutionResult(
        configurations=MappingProxyType(table),
        partition_order=order,
        order_accepted=accepted,
    )


class OverlayConfig:
    """Query surface over one resolution of a root directory.

    Usage:
        config = OverlayConfig(Path("/"))
        config.get_configuration("com.example.overlay")
        config.get_partition_order()  # "system, vendor, ..."
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        scanner_factory: Optional[ScannerFactory] = None,
        package_provider: Optional[PackageProvider] = None,
        *,
        config_source: Optional[ConfigSource] = None,
        settings: Optional[ResolverSettings] = None,
    ) -> None:
        self.root_dir = Path(root_dir)
        self._result = resolve(
            self.root_dir,
            scanner_factory,
            package_provider,
            config_source=config_source,
            settings=settings,
        )

    @property
    def result(self) -> ResolutionResult:
        return self._result

    @property
    def order_accepted(self) -> bool:
        return self._result.order_accepted

    def get_configuration(self, package_name: str) -> Optional[Configuration]:
        return self._result.get(package_name)

    def get_partition_order(self) -> str:
        return self._result.partition_order_string

    def sort_partitions(
        self,
        partition_order_file: Union[str, Path],
        partitions: MutableSequence[Union[PartitionSpec, OverlayPartition]],
    ) -> bool:
        """Reorder ``partitions`` in place when the file is accepted."""
        return _sort_partitions(partition_order_file, partitions)

    def is_enabled(self, package_name: str) -> bool:
        config = self.get_configuration(package_name)
        return config.enabled if config is not None else False

    def is_mutable(self, package_name: str) -> bool:
        config = self.get_configuration(package_name)
        return config.mutable if config is not None else True

    def get_sorted_overlays(self) -> List[str]:
        """Package names by partition precedence, then static priority, then name."""

        def key(config: Configuration) -> Tuple[int, int, str]:
            package = config.parsed_config.package
            priority = package.priority if package is not None else 0
            return config.config_index, priority, config.package_name

        return [c.package_name for c in sorted(self._result.configurations.values(), key=key)]

    def get_overlay_info(self) -> Dict[str, Any]:
        """JSON-serializable dump of the resolution."""
        overlays: Dict[str, Any] = {}
        for name in self.get_sorted_overlays():
            config = self._result.configurations[name]
            package = config.parsed_config.package
            overlays[name] = {
                "enabled": config.enabled,
                "mutable": config.mutable,
                "configIndex": config.config_index,
                "partition": config.partition,
                "targetPackage": package.target_package if package else None,
                "static": package.is_static if package else False,
                "priority": package.priority if package else 0,
            }
        return {
            "partitionOrder": self.get_partition_order(),
            "orderAccepted": self.order_accepted,
            "overlays": overlays,
        }


__all__ = [
    "Configuration",
    "OverlayConfig",
    "ResolutionResult",
    "ScannerFactory",
    "resolve",
]
