import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'overlayconf' and tests/ importable for helpers
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from helpers.cache_utils import reset_overlayconf_caches
from helpers.partition_tree import PartitionTree


@pytest.fixture(autouse=True)
def _reset_global_caches():
    """Ensure process-wide caches are fresh for each test."""
    reset_overlayconf_caches()
    yield
    reset_overlayconf_caches()


@pytest.fixture
def partition_tree(tmp_path: Path) -> PartitionTree:
    """An empty device root under tmp_path; partitions are created on demand."""
    root = tmp_path / "device"
    root.mkdir()
    return PartitionTree(root)


@pytest.fixture
def order_file(partition_tree: PartitionTree) -> Path:
    """Location of the partition order override file (not created)."""
    return partition_tree.root / "product" / "overlay" / "partition_order.xml"
