"""Partition model.

The known partitions form a closed enumeration. Declaration order of
``OverlayPartition`` is the compiled-in default precedence order
(low to high): system, vendor, odm, oem, product, system_ext.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Union

from overlayconf.exceptions import UnknownPartitionError


class OverlayPartition(str, Enum):
    SYSTEM = "system"
    VENDOR = "vendor"
    ODM = "odm"
    OEM = "oem"
    PRODUCT = "product"
    SYSTEM_EXT = "system_ext"

    @property
    def default_rank(self) -> int:
        """Position of this partition in the compiled-in default order."""
        return _DEFAULT_RANKS[self]


_DEFAULT_RANKS = {p: i for i, p in enumerate(OverlayPartition)}

DEFAULT_PARTITION_ORDER: tuple[OverlayPartition, ...] = tuple(OverlayPartition)


def parse_partition(raw: Union[str, OverlayPartition, None]) -> OverlayPartition:
    """Return the partition named ``raw``.

    Names are matched exactly; ``"SYSTEM"`` or ``" system"`` are unknown.

    Raises:
        UnknownPartitionError: If ``raw`` is not a known partition name.
    """
    if isinstance(raw, OverlayPartition):
        return raw
    for partition in OverlayPartition:
        if raw == partition.value:
            return partition
    raise UnknownPartitionError(
        f"Unknown partition: {raw!r} (expected one of: "
        + ", ".join(p.value for p in OverlayPartition)
        + ")",
        context={"name": raw},
    )


@dataclass(frozen=True)
class PartitionSpec:
    """A known partition mounted at ``root``."""

    partition: OverlayPartition
    root: Path
    overlay_dir_name: str = "overlay"
    config_dir_name: str = "config"

    @property
    def name(self) -> str:
        return self.partition.value

    @property
    def default_rank(self) -> int:
        return self.partition.default_rank

    @property
    def overlay_dir(self) -> Path:
        return self.root / self.overlay_dir_name

    @property
    def config_dir(self) -> Path:
        return self.overlay_dir / self.config_dir_name

    def __str__(self) -> str:
        return self.name


def default_partitions(
    root_dir: Union[str, Path],
    layout: Optional[Mapping[str, str]] = None,
    *,
    overlay_dir: str = "overlay",
    config_dir: str = "config",
) -> tuple[PartitionSpec, ...]:
    """Return every known partition under ``root_dir`` in default order.

    Args:
        root_dir: Directory holding the partition mount points.
        layout: Partition name to path relative to ``root_dir``. Partitions
            missing from the layout are mounted at ``<root_dir>/<name>``.
        overlay_dir: Name of the overlay directory inside each partition.
        config_dir: Name of the config directory inside the overlay directory.
    """
    root = Path(root_dir)
    layout = layout or {}
    for name in layout:
        parse_partition(name)
    return tuple(
        PartitionSpec(
            partition=p,
            root=root / layout.get(p.value, p.value),
            overlay_dir_name=overlay_dir,
            config_dir_name=config_dir,
        )
        for p in DEFAULT_PARTITION_ORDER
    )


def _partition_name(item: Union[PartitionSpec, OverlayPartition, str]) -> str:
    if isinstance(item, PartitionSpec):
        return item.name
    if isinstance(item, OverlayPartition):
        return item.value
    return str(item)


def format_partition_order(order: Iterable[Union[PartitionSpec, OverlayPartition, str]]) -> str:
    """Render an order for diagnostics: ``"system, vendor, ..."``."""
    return ", ".join(_partition_name(p) for p in order)


def check_total_order(order: Sequence[Union[PartitionSpec, OverlayPartition]]) -> None:
    """Verify that ``order`` names every known partition exactly once.

    Raises:
        ValueError: On a missing or repeated partition.
    """
    names = [_partition_name(p) for p in order]
    if sorted(names) != sorted(p.value for p in OverlayPartition):
        raise ValueError(f"Not a total partition order: {format_partition_order(names)}")


__all__ = [
    "DEFAULT_PARTITION_ORDER",
    "OverlayPartition",
    "PartitionSpec",
    "check_total_order",
    "default_partitions",
    "format_partition_order",
    "parse_partition",
]
