"""Partition policy files.

Each partition may declare the policy of its own overlays in
``<partition>/overlay/config/config.xml``::

    <config>
      <merge path="auto-generated/extra.xml"/>
      <overlay package="com.example.overlay" enabled="true" mutable="false"/>
    </config>

``enabled`` defaults to false and ``mutable`` to true. ``<merge>`` inlines
another file, resolved relative to the partition's config directory, at the
position of the element.

Problems are isolated as narrowly as possible: a bad ``<overlay>`` entry is
skipped, a bad merged file is skipped, and a bad top-level file leaves the
partition with no declarations. None of them abort resolution.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Protocol, runtime_checkable

from overlayconf.core.partitions import PartitionSpec
from overlayconf.core.scanner import OverlayPackage
from overlayconf.exceptions import ConfigParseError

logger = logging.getLogger(__name__)

CONFIG_TAG = "config"
OVERLAY_TAG = "overlay"
MERGE_TAG = "merge"

DEFAULT_CONFIG_FILE = "config.xml"
DEFAULT_MAX_MERGE_DEPTH = 5

DEFAULT_ENABLED = False
DEFAULT_MUTABLE = True


@dataclass(frozen=True)
class OverlayDeclaration:
    """One ``<overlay>`` element."""

    package_name: str
    enabled: bool
    mutable: bool
    source: Path


@dataclass(frozen=True)
class PartitionPolicy:
    """Declarations read from one partition's policy file and its merges."""

    partition: str
    declarations: Mapping[str, OverlayDeclaration] = field(default_factory=dict)
    files: tuple[Path, ...] = ()

    def get(self, package_name: str) -> Optional[OverlayDeclaration]:
        return self.declarations.get(package_name)


@dataclass(frozen=True)
class ParsedConfiguration:
    """Policy of one package as declared by one partition."""

    package_name: str
    enabled: bool
    mutable: bool
    policy: str
    package: Optional[OverlayPackage] = None


@runtime_checkable
class ConfigSource(Protocol):
    """Turns packages plus partition policy into policy fragments."""

    def load(self, partition: PartitionSpec) -> PartitionPolicy:
        ...

    def fragment(self, package: OverlayPackage, policy: PartitionPolicy) -> Optional[ParsedConfiguration]:
        ...


def parse_bool(raw: Optional[str], default: bool, *, attr: str) -> bool:
    """Parse a ``true``/``false`` attribute value (case-insensitive)."""
    if raw is None:
        return default
    low = raw.strip().lower()
    if low in {"true", "false"}:
        return low == "true"
    raise ConfigParseError(f"Attribute {attr}={raw!r} is not a boolean", context={"attr": attr, "value": raw})


def parse_overlay_element(element: ET.Element, source: Path) -> OverlayDeclaration:
    """Build a declaration from an ``<overlay>`` element.

    Raises:
        ConfigParseError: On a missing package name or a non-boolean flag.
    """
    package_name = (element.get("package") or "").strip()
    if not package_name:
        raise ConfigParseError(f"<overlay> without package in {source}", context={"path": str(source)})
    return OverlayDeclaration(
        package_name=package_name,
        enabled=parse_bool(element.get("enabled"), DEFAULT_ENABLED, attr="enabled"),
        mutable=parse_bool(element.get("mutable"), DEFAULT_MUTABLE, attr="mutable"),
        source=source,
    )


class _ParseState:
    def __init__(self, config_dir: Path) -> None:
        self.config_dir = config_dir.resolve()
        self.declarations: Dict[str, OverlayDeclaration] = {}
        self.files: List[Path] = []


class XmlConfigSource:
    """Reads ``config.xml`` policy files.

    Fragment rules:
    - static overlays are always enabled and immutable; declarations naming
      them are ignored
    - a declared overlay takes its declared flags
    - an undeclared overlay is disabled and mutable
    """

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE, max_merge_depth: int = DEFAULT_MAX_MERGE_DEPTH) -> None:
        self.config_file = config_file
        self.max_merge_depth = max_merge_depth

    def load(self, partition: PartitionSpec) -> PartitionPolicy:
        path = partition.config_dir / self.config_file
        if not path.is_file():
            return PartitionPolicy(partition=partition.name)

        state = _ParseState(partition.config_dir)
        try:
            self._parse_file(path, state, depth=0)
        except ConfigParseError as exc:
            logger.warning("Ignoring overlay config of partition %s: %s", partition.name, exc)
            return PartitionPolicy(partition=partition.name)

        return PartitionPolicy(
            partition=partition.name,
            declarations=MappingProxyType(dict(state.declarations)),
            files=tuple(state.files),
        )

    def _parse_file(self, path: Path, state: _ParseState, depth: int) -> None:
        try:
            root = ET.parse(path).getroot()
        except (OSError, ET.ParseError) as exc:
            raise ConfigParseError(f"Cannot parse {path}: {exc}", context={"path": str(path)}) from exc
        if root.tag != CONFIG_TAG:
            raise ConfigParseError(
                f"Unexpected root element <{root.tag}> in {path}, expected <{CONFIG_TAG}>",
                context={"path": str(path), "tag": root.tag},
            )
        state.files.append(path.resolve())

        for element in root:
            if element.tag == OVERLAY_TAG:
                self._add_declaration(element, path, state)
            elif element.tag == MERGE_TAG:
                self._merge(element, path, state, depth)
            else:
                logger.warning("Ignoring unknown element <%s> in %s", element.tag, path)

    def _add_declaration(self, element: ET.Element, path: Path, state: _ParseState) -> None:
        try:
            declaration = parse_overlay_element(element, path)
        except ConfigParseError as exc:
            logger.warning("Skipping overlay declaration: %s (in %s)", exc, path)
            return
        previous = state.declarations.get(declaration.package_name)
        if previous is not None:
            logger.warning(
                "Overlay %s declared more than once (%s, %s); keeping the first",
                declaration.package_name,
                previous.source,
                path,
            )
            return
        state.declarations[declaration.package_name] = declaration

    def _merge(self, element: ET.Element, path: Path, state: _ParseState, depth: int) -> None:
        raw = (element.get("path") or "").strip()
        if not raw:
            logger.warning("Skipping <merge> without path in %s", path)
            return
        if Path(raw).is_absolute():
            logger.warning("Skipping <merge path=%r> in %s: path must be relative", raw, path)
            return

        target = (state.config_dir / raw).resolve()
        if not target.is_relative_to(state.config_dir):
            logger.warning("Skipping <merge path=%r> in %s: outside %s", raw, path, state.config_dir)
            return
        if target in state.files:
            logger.warning("Skipping <merge path=%r> in %s: already merged", raw, path)
            return
        if depth + 1 > self.max_merge_depth:
            logger.warning("Skipping <merge path=%r> in %s: maximum merge depth %d exceeded", raw, path, self.max_merge_depth)
            return
        if not target.is_file():
            logger.warning("Skipping <merge path=%r> in %s: file not found", raw, path)
            return

        try:
            self._parse_file(target, state, depth + 1)
        except ConfigParseError as exc:
            logger.warning("Skipping merged config: %s", exc)

    def fragment(self, package: OverlayPackage, policy: PartitionPolicy) -> Optional[ParsedConfiguration]:
        declaration = policy.get(package.package_name)
        if package.is_static:
            if declaration is not None:
                logger.warning(
                    "Ignoring declaration of static overlay %s in %s; static overlays are always enabled and immutable",
                    package.package_name,
                    declaration.source,
                )
            return ParsedConfiguration(
                package_name=package.package_name,
                enabled=True,
                mutable=False,
                policy=policy.partition,
                package=package,
            )
        if declaration is None:
            return ParsedConfiguration(
                package_name=package.package_name,
                enabled=DEFAULT_ENABLED,
                mutable=DEFAULT_MUTABLE,
                policy=policy.partition,
                package=package,
            )
        return ParsedConfiguration(
            package_name=package.package_name,
            enabled=declaration.enabled,
            mutable=declaration.mutable,
            policy=policy.partition,
            package=package,
        )


__all__ = [
    "CONFIG_TAG",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_ENABLED",
    "DEFAULT_MAX_MERGE_DEPTH",
    "DEFAULT_MUTABLE",
    "MERGE_TAG",
    "OVERLAY_TAG",
    "ConfigSource",
    "OverlayDeclaration",
    "ParsedConfiguration",
    "PartitionPolicy",
    "XmlConfigSource",
    "parse_bool",
    "parse_overlay_element",
]
