"""Builders for on-disk partition layouts used by the tests."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import yaml

ALL_PARTITIONS = ("system", "vendor", "odm", "oem", "product", "system_ext")
DEFAULT_ORDER_STRING = "system, vendor, odm, oem, product, system_ext"


def order_xml(names: Iterable[str], root_tag: str = "partition-order") -> str:
    lines = [f"<{root_tag}>"]
    lines.extend(f'  <partition name="{n}"/>' for n in names)
    lines.append(f"</{root_tag}>")
    return "\n".join(lines) + "\n"


def overlay_xml(*entries: str, merges: Iterable[str] = ()) -> str:
    """Build a config.xml body; ``entries`` are raw ``<overlay .../>`` lines."""
    lines = ["<config>"]
    lines.extend(f'  <merge path="{m}"/>' for m in merges)
    lines.extend(f"  {e}" for e in entries)
    lines.append("</config>")
    return "\n".join(lines) + "\n"


def overlay_entry(package: str, *, enabled: Optional[bool] = None, mutable: Optional[bool] = None) -> str:
    attrs = [f'package="{package}"']
    if enabled is not None:
        attrs.append(f'enabled="{str(enabled).lower()}"')
    if mutable is not None:
        attrs.append(f'mutable="{str(mutable).lower()}"')
    return f"<overlay {' '.join(attrs)}/>"


class PartitionTree:
    """Writes partitions, overlay manifests and policy files under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write(self, relative: str, content: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def add_overlay(
        self,
        partition: str,
        package: str,
        *,
        target: str = "android",
        static: Optional[bool] = None,
        priority: Optional[int] = None,
        dirname: Optional[str] = None,
    ) -> Path:
        manifest = {"package": package, "targetPackage": target}
        if static is not None:
            manifest["static"] = static
        if priority is not None:
            manifest["priority"] = priority
        return self.write(
            f"{partition}/overlay/{dirname or package}/overlay.yaml",
            yaml.safe_dump(manifest, sort_keys=True),
        )

    def write_config(self, partition: str, content: str, name: str = "config.xml") -> Path:
        return self.write(f"{partition}/overlay/config/{name}", content)

    def write_order(self, names: Iterable[str], root_tag: str = "partition-order") -> Path:
        return self.write("product/overlay/partition_order.xml", order_xml(names, root_tag))

    def config_index_of(self, partition: str, order_string: str) -> int:
        return order_string.split(", ").index(partition)
