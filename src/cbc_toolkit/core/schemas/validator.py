"""
Schema Validation Utilities

Validates inbound JSON payloads (mark entry requests, grading configuration
files, directory/assessment snapshots) against the JSON schemas shipped next
to this module.

Validation here is about *shape*: required fields and types of the request
envelope. Score bounds are checked per item by grading.normalizer so one bad
student never fails the whole batch.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from cbc_toolkit.core.errors import GradingError


# Schema version constants
SNAPSHOT_SCHEMA_VERSION = 1
GRADING_CONFIG_SCHEMA_VERSION = 1


# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


class SchemaError(GradingError):
    """Raised when a payload fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def _validate(data: Any, schema_name: str) -> None:
    schema = _load_schema(schema_name)
    validator = jsonschema.Draft7Validator(schema)
    problems = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if problems:
        first = problems[0]
        raise SchemaError(
            f"Schema validation failed: {first.message}",
            path=".".join(str(p) for p in first.absolute_path),
            errors=[e.message for e in problems],
        )


def validate_mark_entry_request(data: dict[str, Any]) -> None:
    """
    Validate a batch mark entry/update request envelope.

    Only the envelope is checked (term, exam, year and a `marks` list).
    Individual entries are checked one by one during entry so that a
    malformed student record is reported without aborting the batch.

    Raises:
        SchemaError: If the envelope is invalid
    """
    _validate(data, "mark_entry")


def validate_grading_config(data: dict[str, Any]) -> None:
    """
    Validate a grading configuration document.

    Raises:
        SchemaError: If data is invalid
    """
    _validate(data, "grading_config")
    version = data.get("schemaVersion", GRADING_CONFIG_SCHEMA_VERSION)
    if version != GRADING_CONFIG_SCHEMA_VERSION:
        raise SchemaError(
            f"Unsupported grading config schema version: {version} "
            f"(expected {GRADING_CONFIG_SCHEMA_VERSION})",
            path="schemaVersion",
        )


def validate_snapshot(data: dict[str, Any]) -> None:
    """
    Validate a directory/assessment snapshot.

    Raises:
        SchemaError: If data is invalid
    """
    _validate(data, "snapshot")
    version = data.get("schemaVersion", SNAPSHOT_SCHEMA_VERSION)
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise SchemaError(
            f"Unsupported snapshot schema version: {version} (expected {SNAPSHOT_SCHEMA_VERSION})",
            path="schemaVersion",
        )
