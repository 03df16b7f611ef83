"""
Module: grading.config

Purpose:
    Injectable grading configuration: the grade scale, the subject weighting
    table, exam order, terms, grade levels covered by year summaries and the
    minimum subject count for a student to count towards group means.

    Every operation takes a GradingConfig (defaulting to DEFAULT_GRADING_CONFIG)
    so a school can swap bands or weightings without code changes.

Key Classes:
    - GradingConfig: Frozen configuration

Key Functions:
    - load_grading_config(path): Load and validate a JSON configuration file

Dependencies:
    - core.schemas (jsonschema validation)
    - grading.bands, grading.weighting, common.exams
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple, Union

from cbc_toolkit.common.exams import DEFAULT_TERMS, ExamCalendar
from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.common.thresholds import AGGREGATION_THRESHOLDS
from cbc_toolkit.core.errors import ConfigError
from cbc_toolkit.core.schemas import validate_grading_config
from cbc_toolkit.core.schemas.validator import GRADING_CONFIG_SCHEMA_VERSION

from .bands import DEFAULT_GRADE_SCALE, GradeBand, GradeScale
from .weighting import DEFAULT_WEIGHTING_RULES, WeightingRules

logger = logging.getLogger(__name__)

DEFAULT_GRADE_LEVELS: Tuple[int, ...] = (10, 11, 12)
DEFAULT_PATHWAY_ORDER: Tuple[str, ...] = ("STEM", "Arts and Sport Science", "Social Sciences")


@dataclass(frozen=True)
class GradingConfig:
    """
    Configuration for grading and aggregation.

    Attributes:
        grade_scale: Score -> grade band mapping
        weighting: Subject -> weighting rule table
        calendar: Exam order within a term
        terms: Term names in order
        grade_levels: Grade levels covered by report card year summaries
        min_subjects_for_aggregate: Subjects a student needs before their
            mean counts towards class, grade and pathway aggregates
        pathway_order: Order of pathway broadsheets in a bundle; pathways
            not listed follow alphabetically
    """

    grade_scale: GradeScale = DEFAULT_GRADE_SCALE
    weighting: WeightingRules = DEFAULT_WEIGHTING_RULES
    calendar: ExamCalendar = field(default_factory=ExamCalendar)
    terms: Tuple[str, ...] = DEFAULT_TERMS
    grade_levels: Tuple[int, ...] = DEFAULT_GRADE_LEVELS
    min_subjects_for_aggregate: int = AGGREGATION_THRESHOLDS.min_subjects_for_aggregate
    pathway_order: Tuple[str, ...] = DEFAULT_PATHWAY_ORDER

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))
        object.__setattr__(self, "grade_levels", tuple(self.grade_levels))
        object.__setattr__(self, "pathway_order", tuple(self.pathway_order))
        if not self.terms:
            raise ValueError("At least one term is required")
        if not self.grade_levels:
            raise ValueError("At least one grade level is required")
        if self.min_subjects_for_aggregate < 1:
            raise ValueError(
                f"min_subjects_for_aggregate must be >= 1: {self.min_subjects_for_aggregate}"
            )

    def order_pathways(self, names: Iterable[str]) -> Tuple[str, ...]:
        """`names` in configured pathway order, unlisted ones alphabetically after."""
        positions = {normalise_name(p): i for i, p in enumerate(self.pathway_order)}
        return tuple(sorted(
            names,
            key=lambda n: (positions.get(normalise_name(n), len(positions)), normalise_name(n)),
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": GRADING_CONFIG_SCHEMA_VERSION,
            "gradeBands": self.grade_scale.to_list(),
            "weightingRules": self.weighting.to_dict(),
            "defaultRule": self.weighting.default.to_dict(),
            "exams": list(self.calendar.exams),
            "terms": list(self.terms),
            "gradeLevels": list(self.grade_levels),
            "minSubjectsForAggregate": self.min_subjects_for_aggregate,
            "pathwayOrder": list(self.pathway_order),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GradingConfig:
        """
        Build a configuration from its JSON form.

        Keys that are absent keep their defaults.

        Raises:
            SchemaError: If the document fails schema validation
            ConfigError: If the values are inconsistent (e.g. weights not
                summing to 1, bands not covering 0)
        """
        validate_grading_config(data)
        defaults = DEFAULT_GRADING_CONFIG
        try:
            scale = (
                GradeScale.from_bands(GradeBand.from_dict(b) for b in data["gradeBands"])
                if "gradeBands" in data else defaults.grade_scale
            )
            if "weightingRules" in data or "defaultRule" in data:
                weighting = WeightingRules.from_dict(
                    data.get("weightingRules", {}), data.get("defaultRule")
                )
            else:
                weighting = defaults.weighting
            return cls(
                grade_scale=scale,
                weighting=weighting,
                calendar=ExamCalendar(tuple(data["exams"])) if "exams" in data else defaults.calendar,
                terms=tuple(data.get("terms", defaults.terms)),
                grade_levels=tuple(data.get("gradeLevels", defaults.grade_levels)),
                min_subjects_for_aggregate=data.get(
                    "minSubjectsForAggregate", defaults.min_subjects_for_aggregate
                ),
                pathway_order=tuple(data.get("pathwayOrder", defaults.pathway_order)),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid grading configuration: {e}") from e


DEFAULT_GRADING_CONFIG = GradingConfig()


def load_grading_config(path: Union[str, Path]) -> GradingConfig:
    """
    Load a grading configuration file.

    Raises:
        ConfigError: If the file cannot be read or parsed
        SchemaError: If it fails schema validation
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read grading configuration {path}: {e}") from e
    config = GradingConfig.from_dict(data)
    logger.info(
        "Loaded grading configuration from %s (%d bands, %d weighting rules)",
        path, len(config.grade_scale.bands), len(config.weighting.rules),
    )
    return config
