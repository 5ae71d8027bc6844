from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

_CONFIGURED_TARGET: str | None = None
_INSTALLED_HANDLER: logging.Handler | None = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str = "INFO", *, log_path: Optional[Path] = None) -> None:
    """Send ``overlayconf`` log records to ``log_path`` or stderr.

    Idempotent per-process: if already configured for the same target, only
    the level is updated. Switching targets replaces the previously installed
    handler.
    """
    global _CONFIGURED_TARGET, _INSTALLED_HANDLER

    target = str(Path(log_path).resolve()) if log_path is not None else "<stderr>"
    logger = logging.getLogger("overlayconf")
    logger.setLevel(_level_from_name(level))

    if _CONFIGURED_TARGET == target and _INSTALLED_HANDLER is not None:
        _INSTALLED_HANDLER.setLevel(_level_from_name(level))
        return

    if _INSTALLED_HANDLER is not None:
        logger.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
        _INSTALLED_HANDLER = None

    if log_path is not None:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    _INSTALLED_HANDLER = handler
    _CONFIGURED_TARGET = target


def reset_logging_for_tests() -> None:
    """Test-only: remove the installed handler."""
    global _CONFIGURED_TARGET, _INSTALLED_HANDLER
    logger = logging.getLogger("overlayconf")
    if _INSTALLED_HANDLER is not None:
        logger.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
    logger.setLevel(logging.NOTSET)
    _CONFIGURED_TARGET = None
    _INSTALLED_HANDLER = None


__all__ = ["LOG_FORMAT", "configure_logging", "reset_logging_for_tests"]
