"""Cache utilities for test isolation."""
from __future__ import annotations


def reset_overlayconf_caches() -> None:
    """Reset every module-level cache in overlayconf."""
    from overlayconf.core.cache import clear_overlay_config_cache
    from overlayconf.core.stdlib_logging import reset_logging_for_tests
    from overlayconf.data import clear_caches

    clear_overlay_config_cache()
    reset_logging_for_tests()
    clear_caches()
