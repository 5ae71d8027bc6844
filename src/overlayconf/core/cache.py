"""Process-wide resolution cache.

One ``OverlayConfig`` per canonical root directory, created on first use and
kept until it is explicitly invalidated with ``rescan`` or
``clear_overlay_config_cache``. Nothing on disk is watched: changes to the
partitions are only picked up after an invalidation.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Union

from .resolver import OverlayConfig

logger = logging.getLogger(__name__)

_overlay_configs: Dict[Path, OverlayConfig] = {}
_lock = threading.Lock()


def _cache_key(root_dir: Union[str, Path]) -> Path:
    return Path(root_dir).expanduser().resolve()


def get_overlay_config(root_dir: Union[str, Path], **kwargs: Any) -> OverlayConfig:
    """Return the cached resolution for ``root_dir``, resolving on first use.

    Keyword arguments are passed to ``OverlayConfig`` on a cache miss and
    ignored on a hit.
    """
    key = _cache_key(root_dir)
    with _lock:
        config = _overlay_configs.get(key)
        if config is None:
            logger.debug("Resolving overlay configuration for %s", key)
            config = OverlayConfig(key, **kwargs)
            _overlay_configs[key] = config
        return config


def rescan(root_dir: Union[str, Path], **kwargs: Any) -> OverlayConfig:
    """Drop the cached resolution for ``root_dir`` and resolve again."""
    key = _cache_key(root_dir)
    with _lock:
        _overlay_configs.pop(key, None)
        logger.info("Re-scanning overlay configuration for %s", key)
        config = OverlayConfig(key, **kwargs)
        _overlay_configs[key] = config
        return config


def is_cached(root_dir: Union[str, Path]) -> bool:
    key = _cache_key(root_dir)
    with _lock:
        return key in _overlay_configs


def clear_overlay_config_cache() -> None:
    """Forget every cached resolution."""
    with _lock:
        _overlay_configs.clear()


__all__ = [
    "clear_overlay_config_cache",
    "get_overlay_config",
    "is_cached",
    "rescan",
]
