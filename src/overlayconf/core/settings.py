"""Resolver settings (YAML, layered).

Sources (lowest to highest priority):
1. Bundled defaults: ``overlayconf/data/config/defaults.yaml``
2. Settings file: ``<root>/overlayconf.yaml`` or an explicit path

The merged mapping is validated against ``settings.schema.yaml``. Settings are
developer input, so an invalid file fails closed with ``SettingsError``
instead of falling back to defaults.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from overlayconf.core.schemas import SchemaValidationError, validate_payload
from overlayconf.core.utils import deep_merge, read_yaml
from overlayconf.data import read_yaml as read_bundled_yaml
from overlayconf.exceptions import SettingsError

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "overlayconf.yaml"


@dataclass(frozen=True)
class ResolverSettings:
    """Typed view of the merged settings mapping."""

    partition_paths: Mapping[str, str]
    partition_order_file: str
    overlay_dir: str
    manifest_name: str
    config_dir: str
    config_file: str
    max_merge_depth: int
    scan_workers: int
    log_level: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResolverSettings":
        partitions = data["partitions"]
        scanner = data["scanner"]
        return cls(
            partition_paths=dict(partitions["paths"]),
            partition_order_file=str(partitions["orderFile"]),
            overlay_dir=str(scanner["overlayDir"]),
            manifest_name=str(scanner["manifestName"]),
            config_dir=str(scanner["configDir"]),
            config_file=str(scanner["configFile"]),
            max_merge_depth=int(data["parser"]["maxMergeDepth"]),
            scan_workers=int(data["scan"]["workers"]),
            log_level=str(data["logging"]["level"]),
        )


def default_settings_mapping() -> Dict[str, Any]:
    """Return a private copy of the bundled defaults."""
    return copy.deepcopy(read_bundled_yaml("config", "defaults.yaml"))


def load_settings_mapping(
    root_dir: Optional[Path] = None,
    *,
    settings_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Merge defaults, the settings file and in-memory overrides.

    An explicit ``settings_path`` must exist; the implicit
    ``<root_dir>/overlayconf.yaml`` is optional.
    """
    merged = default_settings_mapping()

    path: Optional[Path] = None
    if settings_path is not None:
        path = Path(settings_path)
        if not path.exists():
            raise SettingsError(f"Settings file not found: {path}", context={"path": str(path)})
    elif root_dir is not None:
        candidate = Path(root_dir) / SETTINGS_FILENAME
        if candidate.exists():
            path = candidate

    if path is not None:
        try:
            data = read_yaml(path, default={}, raise_on_error=True)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise SettingsError(f"Cannot read settings file {path}: {exc}", context={"path": str(path)}) from exc
        if not isinstance(data, dict):
            raise SettingsError(
                f"Settings file {path} must contain a mapping",
                context={"path": str(path)},
            )
        logger.debug("Loaded resolver settings from %s", path)
        merged = deep_merge(merged, data)

    if overrides:
        merged = deep_merge(merged, dict(overrides))

    try:
        validate_payload(merged, "settings")
    except SchemaValidationError as exc:
        raise SettingsError(
            str(exc),
            context={"path": str(path) if path else None, "errors": exc.errors},
        ) from exc
    return merged


def load_settings(
    root_dir: Optional[Path] = None,
    *,
    settings_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ResolverSettings:
    """Load and validate resolver settings for ``root_dir``."""
    return ResolverSettings.from_mapping(
        load_settings_mapping(root_dir, settings_path=settings_path, overrides=overrides)
    )


__all__ = [
    "SETTINGS_FILENAME",
    "ResolverSettings",
    "default_settings_mapping",
    "load_settings",
    "load_settings_mapping",
]
