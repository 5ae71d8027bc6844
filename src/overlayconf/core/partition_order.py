"""Partition order override file.

The precedence of the partitions can be overridden by a single XML file::

    <partition-order>
      <partition name="system_ext"/>
      <partition name="vendor"/>
      ...
    </partition-order>

The file is applied as a unit or not at all: any problem with it keeps the
default order.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, MutableSequence, Sequence, Tuple, TypeVar, Union

from overlayconf.core.partitions import OverlayPartition, PartitionSpec, parse_partition
from overlayconf.exceptions import PartitionOrderError, UnknownPartitionError

logger = logging.getLogger(__name__)

ROOT_TAG = "partition-order"
ENTRY_TAG = "partition"
NAME_ATTR = "name"

# Partition whose overlay directory holds the override file.
ORDER_PARTITION = OverlayPartition.PRODUCT

P = TypeVar("P", PartitionSpec, OverlayPartition)


def _key(item: Union[PartitionSpec, OverlayPartition]) -> OverlayPartition:
    return item.partition if isinstance(item, PartitionSpec) else item


def read_partition_order(path: Union[str, Path], known: Sequence[P]) -> Tuple[P, ...]:
    """Parse the override file strictly and return the listed order.

    Args:
        path: Override file location.
        known: The full set of known partitions (any order).

    Returns:
        A new tuple holding the members of ``known`` in file order.

    Raises:
        PartitionOrderError: For an absent, unreadable, malformed or
            incomplete file. ``context["reason"]`` names the problem.
    """
    path = Path(path)
    ctx: Dict[str, object] = {"path": str(path)}

    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise PartitionOrderError(f"No partition order file at {path}", context={**ctx, "reason": "absent"}) from exc
    except OSError as exc:
        raise PartitionOrderError(
            f"Cannot read partition order file {path}: {exc}",
            context={**ctx, "reason": "unreadable"},
        ) from exc

    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise PartitionOrderError(f"Malformed XML in {path}: {exc}", context={**ctx, "reason": "malformed"}) from exc

    if root.tag != ROOT_TAG:
        raise PartitionOrderError(
            f"Unexpected root element <{root.tag}> in {path}, expected <{ROOT_TAG}>",
            context={**ctx, "reason": "root-element", "tag": root.tag},
        )

    by_partition = {_key(item): item for item in known}
    ordered: List[P] = []
    seen = set()
    for entry in root:
        if entry.tag != ENTRY_TAG:
            raise PartitionOrderError(
                f"Unexpected element <{entry.tag}> in {path}",
                context={**ctx, "reason": "element", "tag": entry.tag},
            )
        name = entry.get(NAME_ATTR)
        try:
            partition = parse_partition(name)
        except UnknownPartitionError as exc:
            raise PartitionOrderError(str(exc), context={**ctx, "reason": "unknown", "name": name}) from exc
        if partition not in by_partition:
            raise PartitionOrderError(
                f"Partition {name!r} is not mounted",
                context={**ctx, "reason": "unknown", "name": name},
            )
        if partition in seen:
            raise PartitionOrderError(
                f"Partition {name!r} listed more than once in {path}",
                context={**ctx, "reason": "duplicate", "name": name},
            )
        seen.add(partition)
        ordered.append(by_partition[partition])

    missing = [p.value for p in by_partition if p not in seen]
    if missing:
        raise PartitionOrderError(
            f"Partition order file {path} is missing: {', '.join(missing)}",
            context={**ctx, "reason": "missing", "missing": missing},
        )
    return tuple(ordered)


def partition_order_path(partitions: Sequence[PartitionSpec], file_name: Union[str, Path]) -> Path:
    """Return where the override file lives for the given partition layout.

    The file sits in the overlay directory of the product partition, wherever
    that partition is mounted.
    """
    for spec in partitions:
        if spec.partition is ORDER_PARTITION:
            return spec.overlay_dir / file_name
    raise ValueError(f"No {ORDER_PARTITION.value} partition in layout")


def resolve_order(path: Union[str, Path], default_order: Sequence[P]) -> Tuple[Sequence[P], bool]:
    """Return ``(order, accepted)`` for the override file at ``path``.

    On acceptance ``order`` is a new tuple in file order. Otherwise
    ``default_order`` itself is returned, unmodified. Never raises for
    problems with the file.
    """
    try:
        order = read_partition_order(path, default_order)
    except PartitionOrderError as exc:
        if exc.context.get("reason") == "absent":
            logger.debug("%s", exc)
        else:
            logger.warning("Ignoring partition order file, keeping default order: %s", exc)
        return default_order, False
    logger.info("Using partition order from %s", path)
    return order, True


def sort_partitions(path: Union[str, Path], partitions: MutableSequence[P]) -> bool:
    """Reorder ``partitions`` in place if the override file is accepted.

    The list is left exactly as supplied when the file is rejected.
    """
    order, accepted = resolve_order(path, tuple(partitions))
    if accepted:
        partitions[:] = list(order)
    return accepted


__all__ = [
    "ENTRY_TAG",
    "NAME_ATTR",
    "ORDER_PARTITION",
    "ROOT_TAG",
    "partition_order_path",
    "read_partition_order",
    "resolve_order",
    "sort_partitions",
]
