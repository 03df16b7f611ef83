"""
Serialization Utilities

to/from JSON utilities for the directory, paper configuration and
assessment snapshots the toolkit works on.

- `serialize_*` and `deserialize_*` pairs
- Validation via schemas before deserialization
- Derived assessment values (totals, percentage, computed score, grade) are
  never trusted from input: they are recomputed from the papers on load
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Tuple

from ..models.assessments import SubjectAssessment
from ..models.directory import SchoolClass, SchoolDirectory, Student, Subject
from ..models.papers import PaperConfigCatalog, PaperSetup
from ..schemas.validator import SNAPSHOT_SCHEMA_VERSION, SchemaError, validate_snapshot

if TYPE_CHECKING:
    from cbc_toolkit.grading.config import GradingConfig

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Directory Serialization
# ─────────────────────────────────────────────────────────────────────────────

def deserialize_subject(data: dict[str, Any]) -> Subject:
    return Subject(
        name=data["name"].strip(),
        code=data.get("code", ""),
        short_name=data.get("shortName", ""),
        group=data.get("group", "OTHER"),
        pathway=data.get("pathway"),
    )


def deserialize_class(data: dict[str, Any]) -> SchoolClass:
    return SchoolClass(name=data["name"].strip(), grade=int(data["grade"]), stream=data.get("stream"))


def deserialize_student(data: dict[str, Any]) -> Student:
    return Student(
        adm_no=data["admNo"],
        name=data.get("name", ""),
        class_name=data["className"].strip(),
        pathway=data.get("pathway"),
        selected_subjects=tuple(data.get("selectedSubjects", ())),
        status=data.get("status", "active"),
    )


def serialize_directory(directory: SchoolDirectory) -> dict[str, Any]:
    return {
        "classes": [c.to_dict() for c in directory.classes],
        "students": [s.to_dict() for s in directory.students],
        "subjects": [s.to_dict() for s in directory.subjects],
    }


def deserialize_directory(data: dict[str, Any]) -> SchoolDirectory:
    return SchoolDirectory(
        students=tuple(deserialize_student(s) for s in data.get("students", ())),
        classes=tuple(deserialize_class(c) for c in data.get("classes", ())),
        subjects=tuple(deserialize_subject(s) for s in data.get("subjects", ())),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Paper Configuration Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_catalog(catalog: PaperConfigCatalog) -> list[dict[str, Any]]:
    return [setup.to_dict() for setup in catalog]


def deserialize_catalog(data: list[dict[str, Any]]) -> PaperConfigCatalog:
    return PaperConfigCatalog.from_setups(PaperSetup.from_dict(item) for item in data)


# ─────────────────────────────────────────────────────────────────────────────
# Assessment Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_assessment(assessment: SubjectAssessment) -> dict[str, Any]:
    """
    Serialize an assessment to its stored form.

    Note:
        Derived values are NOT included - they are recalculated on load.
    """
    return {
        "admNo": assessment.adm_no,
        "subject": assessment.subject,
        "className": assessment.class_name,
        "term": assessment.term,
        "exam": assessment.exam,
        "year": assessment.year,
        "papers": [p.to_dict() for p in assessment.papers],
    }


def deserialize_assessment(
    data: dict[str, Any], config: Optional[GradingConfig] = None
) -> SubjectAssessment:
    """
    Rebuild an assessment from its stored papers.

    Args:
        data: Stored assessment (see serialize_assessment)
        config: Grading configuration used to score and grade it

    Raises:
        ValidationError: If a stored paper score is out of bounds
    """
    from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG
    from cbc_toolkit.grading.entry import build_assessment
    from cbc_toolkit.grading.normalizer import normalize_scores
    from ..models.papers import PaperConfig

    configured = tuple(PaperConfig(int(p["paperNo"]), float(p["total"])) for p in data["papers"])
    scores = normalize_scores(configured, data["papers"], adm_no=str(data["admNo"]))
    return build_assessment(
        adm_no=data["admNo"],
        subject_name=data["subject"].strip(),
        class_name=data["className"].strip(),
        term=data["term"].strip(),
        exam=data["exam"].strip(),
        year=int(data["year"]),
        scores=scores,
        config=config or DEFAULT_GRADING_CONFIG,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Snapshot Serialization
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Snapshot:
    """Everything a report needs: directory, paper configuration, assessments."""

    directory: SchoolDirectory
    catalog: PaperConfigCatalog = field(default_factory=PaperConfigCatalog)
    assessments: Tuple[SubjectAssessment, ...] = ()


def serialize_snapshot(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "schemaVersion": SNAPSHOT_SCHEMA_VERSION,
        **serialize_directory(snapshot.directory),
        "paperConfigs": serialize_catalog(snapshot.catalog),
        "assessments": [serialize_assessment(a) for a in snapshot.assessments],
    }


def deserialize_snapshot(
    data: dict[str, Any],
    *,
    config: Optional[GradingConfig] = None,
    validate: bool = True,
) -> Snapshot:
    """
    Deserialize a snapshot.

    Args:
        data: Dictionary from JSON
        config: Grading configuration used to rebuild assessments
        validate: Whether to validate against the snapshot schema first

    Raises:
        SchemaError: If validate=True and data is invalid
        ValidationError: If a stored paper score is out of bounds
    """
    if validate:
        validate_snapshot(data)
    try:
        directory = deserialize_directory(data)
        catalog = deserialize_catalog(data.get("paperConfigs", []))
    except ValueError as e:
        raise SchemaError(f"Invalid snapshot: {e}") from e
    assessments = tuple(
        deserialize_assessment(item, config) for item in data.get("assessments", [])
    )
    logger.debug(
        "Deserialized snapshot: %d students, %d setups, %d assessments",
        len(directory.students), len(catalog), len(assessments),
    )
    return Snapshot(directory=directory, catalog=catalog, assessments=assessments)


def load_snapshot(path: Path, *, config: Optional[GradingConfig] = None) -> Snapshot:
    """
    Load and validate a snapshot JSON file.

    Raises:
        FileNotFoundError: If path doesn't exist
        SchemaError: If the file is not valid JSON or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in {path}: {e}", path=str(path)) from e
    snapshot = deserialize_snapshot(data, config=config)
    logger.info(
        "Loaded snapshot %s: %d students, %d assessments",
        path.name, len(snapshot.directory.students), len(snapshot.assessments),
    )
    return snapshot


def dump_json(payload: Any) -> str:
    """Pretty JSON for report payloads (objects with to_dict() included)."""
    def default(value: Any) -> Any:
        if hasattr(value, "to_dict"):
            return value.to_dict()
        if isinstance(value, (tuple, set, frozenset)):
            return list(value)
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    return json.dumps(payload, indent=2, ensure_ascii=False, default=default)
