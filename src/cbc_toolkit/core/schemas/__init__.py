"""
Schemas Package

JSON schema definitions and validation utilities.
"""

from .validator import (
    GRADING_CONFIG_SCHEMA_VERSION,
    SNAPSHOT_SCHEMA_VERSION,
    SchemaError,
    validate_grading_config,
    validate_mark_entry_request,
    validate_snapshot,
)

__all__ = [
    "GRADING_CONFIG_SCHEMA_VERSION",
    "SNAPSHOT_SCHEMA_VERSION",
    "SchemaError",
    "validate_grading_config",
    "validate_mark_entry_request",
    "validate_snapshot",
]
