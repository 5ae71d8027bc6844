"""CLI output formatting (JSON or text)."""
from __future__ import annotations

import json
import sys
from typing import Any, Optional


class OutputFormatter:
    """Output formatter shared by the CLI commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def json_output(self, data: Any) -> None:
        print(json.dumps(data, indent=self.indent, sort_keys=True, default=str))

    def text(self, message: str) -> None:
        print(message)

    def error(self, error: Exception, message: Optional[str] = None) -> None:
        """Report ``error`` on stderr, as JSON in JSON mode."""
        msg = message or str(error)
        if self.json_mode:
            to_json = getattr(error, "to_json_error", None)
            payload = to_json() if callable(to_json) else {"message": msg, "code": error.__class__.__name__}
            print(json.dumps(payload, indent=self.indent, default=str), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)


__all__ = ["OutputFormatter"]
