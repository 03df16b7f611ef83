"""
Core Utilities Package

Numeric helpers and snapshot (de)serialization.
"""

from .numeric import format_fixed, is_real_number, mean, round_half_up, round_to_int
from .serialization import (
    Snapshot,
    deserialize_assessment,
    deserialize_snapshot,
    dump_json,
    load_snapshot,
    serialize_assessment,
    serialize_snapshot,
)

__all__ = [
    "format_fixed",
    "is_real_number",
    "mean",
    "round_half_up",
    "round_to_int",
    "Snapshot",
    "deserialize_assessment",
    "deserialize_snapshot",
    "dump_json",
    "load_snapshot",
    "serialize_assessment",
    "serialize_snapshot",
]
