from __future__ import annotations

from typing import Any, Dict, Mapping


class OverlayConfigError(Exception):
    """Base exception for overlayconf."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class UnknownPartitionError(OverlayConfigError, ValueError):
    """Raised when a name does not identify a known partition."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OverlayConfigError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class PartitionOrderError(OverlayConfigError):
    """Raised when a partition order file is missing, malformed or incomplete."""


class ManifestError(OverlayConfigError):
    """Raised when an overlay package manifest cannot be read or is invalid."""


class ConfigParseError(OverlayConfigError):
    """Raised for a malformed partition policy file or declaration."""


class SettingsError(OverlayConfigError, ValueError):
    """Raised when resolver settings fail to load or validate."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OverlayConfigError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class ScanRootError(OverlayConfigError, FileNotFoundError):
    """Raised when the root directory that holds the partitions is inaccessible."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        OverlayConfigError.__init__(self, message, context=context)
        FileNotFoundError.__init__(self, message)


__all__ = [
    "OverlayConfigError",
    "UnknownPartitionError",
    "PartitionOrderError",
    "ManifestError",
    "ConfigParseError",
    "SettingsError",
    "ScanRootError",
]
