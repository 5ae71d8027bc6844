"""Overlay package discovery.

An overlay package is a directory below ``<partition>/overlay`` holding a
YAML manifest (``overlay.yaml`` by default)::

    package: com.example.overlay.theme
    targetPackage: android
    targetName: ThemeResources   # optional
    static: false                # optional
    priority: 0                  # optional, only meaningful for static overlays

Scanning is pluggable: the resolver accepts any object implementing
``OverlayScanner`` (created through a zero-argument factory), or a
``PackageProvider`` that hands out already-parsed packages.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, runtime_checkable

import yaml

from overlayconf.core.partitions import PartitionSpec
from overlayconf.core.schemas import SchemaValidationError, validate_payload
from overlayconf.core.utils import read_yaml
from overlayconf.exceptions import ManifestError

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "overlay.yaml"


@dataclass(frozen=True)
class OverlayPackage:
    """Descriptor of one overlay package found in a partition."""

    package_name: str
    target_package: str
    partition: str
    path: Optional[Path] = None
    target_name: Optional[str] = None
    is_static: bool = False
    priority: int = 0


@runtime_checkable
class OverlayScanner(Protocol):
    """Enumerates the overlay packages of one partition."""

    def scan(self, partition: PartitionSpec) -> Iterator[OverlayPackage]:
        """Yield the partition's packages lazily (single pass)."""
        ...


@runtime_checkable
class PackageProvider(Protocol):
    """Source of pre-parsed overlay packages, used instead of a scanner."""

    def iter_packages(self, partition: PartitionSpec) -> Iterable[OverlayPackage]:
        ...


def load_manifest(path: Path, partition: PartitionSpec) -> OverlayPackage:
    """Read and validate one manifest.

    Raises:
        ManifestError: If the file cannot be read or fails validation.
    """
    try:
        data = read_yaml(path, default=None, raise_on_error=True)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"Cannot read overlay manifest {path}: {exc}", context={"path": str(path)}) from exc

    try:
        validate_payload(data, "overlay-manifest")
    except SchemaValidationError as exc:
        raise ManifestError(
            f"Invalid overlay manifest {path}: {exc}",
            context={"path": str(path), "errors": exc.errors},
        ) from exc

    return OverlayPackage(
        package_name=data["package"],
        target_package=data["targetPackage"],
        target_name=data.get("targetName"),
        is_static=bool(data.get("static", False)),
        priority=int(data.get("priority", 0)),
        partition=partition.name,
        path=path.parent,
    )


class ManifestOverlayScanner:
    """Finds overlay manifests below each partition's overlay directory.

    Directories are walked in sorted order so results are deterministic. The
    partition's config directory is never descended into. Manifests that fail
    to load are logged and skipped.
    """

    def __init__(self, manifest_name: str = DEFAULT_MANIFEST_NAME) -> None:
        self.manifest_name = manifest_name

    def _iter_manifest_paths(self, partition: PartitionSpec) -> Iterator[Path]:
        overlay_dir = partition.overlay_dir
        config_dir = partition.config_dir
        if not overlay_dir.is_dir():
            return
        for dirpath, dirnames, filenames in os.walk(overlay_dir, onerror=self._on_walk_error):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if current / d != config_dir)
            if self.manifest_name in filenames:
                yield current / self.manifest_name

    @staticmethod
    def _on_walk_error(exc: OSError) -> None:
        logger.warning("Skipping unreadable overlay directory: %s", exc)

    def scan(self, partition: PartitionSpec) -> Iterator[OverlayPackage]:
        for path in self._iter_manifest_paths(partition):
            try:
                yield load_manifest(path, partition)
            except ManifestError as exc:
                logger.warning("Skipping overlay package in %s: %s", partition.name, exc)


__all__ = [
    "DEFAULT_MANIFEST_NAME",
    "ManifestOverlayScanner",
    "OverlayPackage",
    "OverlayScanner",
    "PackageProvider",
    "load_manifest",
]
