"""Shared helpers for the resolver core."""
from __future__ import annotations

from .io import read_yaml
from .merge import deep_merge

__all__ = ["deep_merge", "read_yaml"]
