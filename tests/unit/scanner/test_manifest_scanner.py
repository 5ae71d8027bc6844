from __future__ import annotations

import logging

import pytest

from overlayconf.core.partitions import OverlayPartition, PartitionSpec, default_partitions
from overlayconf.core.scanner import ManifestOverlayScanner, OverlayPackage, OverlayScanner, load_manifest
from overlayconf.exceptions import ManifestError

from helpers.partition_tree import PartitionTree


def _spec(tree: PartitionTree, name: str) -> PartitionSpec:
    return {s.name: s for s in default_partitions(tree.root)}[name]


def test_scanner_satisfies_protocol() -> None:
    assert isinstance(ManifestOverlayScanner(), OverlayScanner)


def test_missing_partition_yields_nothing(partition_tree: PartitionTree) -> None:
    assert list(ManifestOverlayScanner().scan(_spec(partition_tree, "odm"))) == []


def test_scan_reads_manifests_in_sorted_order(partition_tree: PartitionTree) -> None:
    partition_tree.add_overlay("vendor", "com.example.b", dirname="b")
    partition_tree.add_overlay("vendor", "com.example.a", dirname="a", static=True, priority=3)
    partition_tree.add_overlay("vendor", "com.example.nested", dirname="nested/deeper")

    packages = list(ManifestOverlayScanner().scan(_spec(partition_tree, "vendor")))

    assert [p.package_name for p in packages] == ["com.example.a", "com.example.b", "com.example.nested"]
    first = packages[0]
    assert first == OverlayPackage(
        package_name="com.example.a",
        target_package="android",
        partition="vendor",
        path=partition_tree.root / "vendor" / "overlay" / "a",
        is_static=True,
        priority=3,
    )


def test_scan_is_lazy(partition_tree: PartitionTree) -> None:
    partition_tree.add_overlay("system", "com.example.a")
    result = ManifestOverlayScanner().scan(_spec(partition_tree, "system"))
    assert not isinstance(result, list)
    assert next(iter(result)).package_name == "com.example.a"


def test_config_directory_is_not_scanned(partition_tree: PartitionTree) -> None:
    partition_tree.write(
        "product/overlay/config/overlay.yaml",
        "package: com.example.hidden\ntargetPackage: android\n",
    )
    partition_tree.add_overlay("product", "com.example.visible")
    names = [p.package_name for p in ManifestOverlayScanner().scan(_spec(partition_tree, "product"))]
    assert names == ["com.example.visible"]


def test_invalid_manifest_is_skipped_and_logged(
    partition_tree: PartitionTree, caplog: pytest.LogCaptureFixture
) -> None:
    partition_tree.write("oem/overlay/broken/overlay.yaml", "package: [not, a, name\n")
    partition_tree.write("oem/overlay/incomplete/overlay.yaml", "package: com.example.incomplete\n")
    partition_tree.add_overlay("oem", "com.example.good")

    with caplog.at_level(logging.WARNING, logger="overlayconf"):
        names = [p.package_name for p in ManifestOverlayScanner().scan(_spec(partition_tree, "oem"))]

    assert names == ["com.example.good"]
    assert "broken" in caplog.text
    assert "targetPackage" in caplog.text


def test_custom_manifest_name(partition_tree: PartitionTree) -> None:
    partition_tree.write("odm/overlay/x/rro.yaml", "package: com.example.x\ntargetPackage: android\n")
    scanner = ManifestOverlayScanner(manifest_name="rro.yaml")
    assert [p.package_name for p in scanner.scan(_spec(partition_tree, "odm"))] == ["com.example.x"]


def test_load_manifest_validates_types(partition_tree: PartitionTree) -> None:
    path = partition_tree.write(
        "system/overlay/x/overlay.yaml",
        "package: com.example.x\ntargetPackage: android\nstatic: 'yes'\n",
    )
    spec = PartitionSpec(OverlayPartition.SYSTEM, partition_tree.root / "system")
    with pytest.raises(ManifestError) as exc:
        load_manifest(path, spec)
    assert any("static" in e for e in exc.value.context["errors"])


def test_load_manifest_rejects_non_mapping(partition_tree: PartitionTree) -> None:
    path = partition_tree.write("system/overlay/x/overlay.yaml", "")
    spec = PartitionSpec(OverlayPartition.SYSTEM, partition_tree.root / "system")
    with pytest.raises(ManifestError):
        load_manifest(path, spec)
