"""Schema validation for settings and overlay manifests.

Schemas are JSON Schema (Draft 2020-12) expressed in YAML and bundled under
``overlayconf/data/schemas``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from overlayconf.data import get_data_path, read_yaml


class SchemaValidationError(ValueError):
    """Raised when a payload does not satisfy its schema."""

    def __init__(self, message: str, errors: List[str]) -> None:
        super().__init__(message)
        self.errors = errors


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema by name (``.schema.yaml`` appended if missing)."""
    if not schema_name.endswith((".yaml", ".yml")):
        schema_name = f"{schema_name}.schema.yaml"
    path = get_data_path("schemas", schema_name)
    if not path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_name}")
    return read_yaml("schemas", schema_name)


@lru_cache(maxsize=8)
def _validator(schema_name: str) -> Draft202012Validator:
    schema = load_schema(schema_name)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def _format_error(err: Any) -> str:
    location = "/".join(str(p) for p in err.absolute_path) or "<root>"
    return f"{location}: {err.message}"


def validate_payload(payload: Any, schema_name: str) -> None:
    """Validate ``payload`` against a bundled schema.

    Raises:
        SchemaValidationError: Listing every violation, sorted by location.
    """
    validator = _validator(schema_name)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(map(str, e.absolute_path)))
    if errors:
        messages = [_format_error(e) for e in errors]
        raise SchemaValidationError(
            f"{schema_name} validation failed: " + "; ".join(messages),
            messages,
        )


__all__ = ["SchemaValidationError", "load_schema", "validate_payload"]
