from __future__ import annotations

import logging

import pytest

from overlayconf.core.config_parser import (
    ConfigSource,
    ParsedConfiguration,
    XmlConfigSource,
    parse_bool,
)
from overlayconf.core.partitions import PartitionSpec, default_partitions
from overlayconf.core.scanner import OverlayPackage
from overlayconf.exceptions import ConfigParseError

from helpers.partition_tree import PartitionTree, overlay_entry, overlay_xml


def _spec(tree: PartitionTree, name: str) -> PartitionSpec:
    return {s.name: s for s in default_partitions(tree.root)}[name]


def _package(name: str, partition: str = "vendor", *, static: bool = False) -> OverlayPackage:
    return OverlayPackage(package_name=name, target_package="android", partition=partition, is_static=static)


def test_source_satisfies_protocol() -> None:
    assert isinstance(XmlConfigSource(), ConfigSource)


def test_missing_config_gives_empty_policy(partition_tree: PartitionTree) -> None:
    policy = XmlConfigSource().load(_spec(partition_tree, "vendor"))
    assert policy.partition == "vendor"
    assert dict(policy.declarations) == {}


def test_declarations_and_defaults(partition_tree: PartitionTree) -> None:
    partition_tree.write_config(
        "vendor",
        overlay_xml(
            overlay_entry("com.example.a", enabled=True, mutable=False),
            overlay_entry("com.example.b"),
            '<overlay package="com.example.c" enabled="TRUE"/>',
        ),
    )
    policy = XmlConfigSource().load(_spec(partition_tree, "vendor"))

    a, b, c = (policy.get(n) for n in ("com.example.a", "com.example.b", "com.example.c"))
    assert (a.enabled, a.mutable) == (True, False)
    assert (b.enabled, b.mutable) == (False, True)
    assert (c.enabled, c.mutable) == (True, True)


def test_malformed_declaration_is_skipped(partition_tree: PartitionTree, caplog: pytest.LogCaptureFixture) -> None:
    partition_tree.write_config(
        "vendor",
        overlay_xml(
            '<overlay enabled="true"/>',
            '<overlay package="com.example.bad" enabled="maybe"/>',
            overlay_entry("com.example.good", enabled=True),
        ),
    )
    with caplog.at_level(logging.WARNING, logger="overlayconf"):
        policy = XmlConfigSource().load(_spec(partition_tree, "vendor"))
    assert list(policy.declarations) == ["com.example.good"]
    assert "maybe" in caplog.text


def test_repeated_declaration_keeps_first(partition_tree: PartitionTree) -> None:
    partition_tree.write_config(
        "vendor",
        overlay_xml(
            overlay_entry("com.example.a", enabled=True),
            overlay_entry("com.example.a", enabled=False),
        ),
    )
    policy = XmlConfigSource().load(_spec(partition_tree, "vendor"))
    assert policy.get("com.example.a").enabled is True


@pytest.mark.parametrize(
    "content",
    [
        "<overlays><overlay package='com.example.a' enabled='true'/></overlays>",
        "<config><overlay package='com.example.a'",
    ],
)
def test_bad_top_level_file_contributes_nothing(partition_tree: PartitionTree, content: str) -> None:
    partition_tree.write_config("vendor", content)
    policy = XmlConfigSource().load(_spec(partition_tree, "vendor"))
    assert dict(policy.declarations) == {}


def test_merge_inlines_files_in_position(partition_tree: PartitionTree) -> None:
    partition_tree.write_config(
        "product",
        overlay_xml(overlay_entry("com.example.a", enabled=False), merges=["generated/extra.xml"]),
    )
    partition_tree.write_config(
        "product",
        overlay_xml(overlay_entry("com.example.a", enabled=True), overlay_entry("com.example.b", enabled=True)),
        name="generated/extra.xml",
    )
    policy = XmlConfigSource().load(_spec(partition_tree, "product"))

    # The merge element comes first, so its declaration of "a" wins.
    assert policy.get("com.example.a").enabled is True
    assert policy.get("com.example.b").enabled is True
    assert len(policy.files) == 2


def test_merge_cycle_is_skipped(partition_tree: PartitionTree) -> None:
    partition_tree.write_config("odm", overlay_xml(overlay_entry("com.example.a"), merges=["b.xml"]))
    partition_tree.write_config("odm", overlay_xml(overlay_entry("com.example.b"), merges=["config.xml"]), name="b.xml")
    policy = XmlConfigSource().load(_spec(partition_tree, "odm"))
    assert sorted(policy.declarations) == ["com.example.a", "com.example.b"]


@pytest.mark.parametrize("merge_path", ["../escape.xml", "missing.xml", "/etc/passwd"])
def test_rejected_merges_are_skipped(partition_tree: PartitionTree, merge_path: str) -> None:
    partition_tree.write("odm/overlay/escape.xml", overlay_xml(overlay_entry("com.example.escaped")))
    partition_tree.write_config("odm", overlay_xml(overlay_entry("com.example.a"), merges=[merge_path]))
    policy = XmlConfigSource().load(_spec(partition_tree, "odm"))
    assert list(policy.declarations) == ["com.example.a"]


def test_bad_merged_file_only_drops_that_file(partition_tree: PartitionTree) -> None:
    partition_tree.write_config("odm", overlay_xml(overlay_entry("com.example.a"), merges=["bad.xml"]))
    partition_tree.write_config("odm", "<config><overlay", name="bad.xml")
    policy = XmlConfigSource().load(_spec(partition_tree, "odm"))
    assert list(policy.declarations) == ["com.example.a"]


def test_merge_depth_is_bounded(partition_tree: PartitionTree) -> None:
    partition_tree.write_config("oem", overlay_xml(merges=["d1.xml"]))
    partition_tree.write_config("oem", overlay_xml(overlay_entry("com.example.d1"), merges=["d2.xml"]), name="d1.xml")
    partition_tree.write_config("oem", overlay_xml(overlay_entry("com.example.d2")), name="d2.xml")

    policy = XmlConfigSource(max_merge_depth=1).load(_spec(partition_tree, "oem"))
    assert list(policy.declarations) == ["com.example.d1"]

    policy = XmlConfigSource(max_merge_depth=2).load(_spec(partition_tree, "oem"))
    assert sorted(policy.declarations) == ["com.example.d1", "com.example.d2"]


def test_fragment_rules(partition_tree: PartitionTree) -> None:
    partition_tree.write_config(
        "vendor",
        overlay_xml(
            overlay_entry("com.example.declared", enabled=True, mutable=False),
            overlay_entry("com.example.static", enabled=False, mutable=True),
        ),
    )
    source = XmlConfigSource()
    policy = source.load(_spec(partition_tree, "vendor"))

    declared = source.fragment(_package("com.example.declared"), policy)
    assert declared == ParsedConfiguration(
        package_name="com.example.declared",
        enabled=True,
        mutable=False,
        policy="vendor",
        package=_package("com.example.declared"),
    )

    undeclared = source.fragment(_package("com.example.other"), policy)
    assert (undeclared.enabled, undeclared.mutable) == (False, True)

    static = source.fragment(_package("com.example.static", static=True), policy)
    assert (static.enabled, static.mutable) == (True, False)


def test_parse_bool() -> None:
    assert parse_bool(None, True, attr="x") is True
    assert parse_bool(" False ", True, attr="x") is False
    with pytest.raises(ConfigParseError):
        parse_bool("1", False, attr="x")
