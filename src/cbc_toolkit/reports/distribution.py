"""
Module: reports.distribution

Purpose:
    Grade distribution: how many students of each pathway landed in each
    grade band for one exam. Only students with at least the configured
    minimum number of subjects are counted.

    Three modes, chosen from the `level` selector:
    - "all": cross-grade, counts split by "Grade N" inside each pathway
    - "10" / "grade 10": grade-wide
    - anything else: a single class (its stream is reported)

Key Classes:
    - GradeDistribution: Counts per pathway per band, plus totals

Key Functions:
    - build_grade_distribution(): Assemble a distribution
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.core.models.assessments import SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolDirectory
from cbc_toolkit.grading.aggregation import (
    build_profiles,
    ensure_exam_recorded,
    filter_assessments,
    student_pathway,
)
from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG, GradingConfig

from .scope import ALL_GRADES, grade_label, is_grade_selector, parse_grade_level

logger = logging.getLogger(__name__)


class DistributionMode(str, Enum):
    CROSS_GRADE = "cross-grade"
    GRADE_WIDE = "grade-wide"
    CLASS_SPECIFIC = "class-specific"


@dataclass(frozen=True)
class GradeDistribution:
    """
    Band counts per pathway.

    Attributes:
        mode: Selector mode
        level: The selector as given
        term, exam, year: Exam period
        stream: Stream of the class (class-specific mode only)
        bands: Band labels, highest first
        distribution: pathway -> band -> count, or in cross-grade mode
            pathway -> "Grade N" -> band -> count
        totals: band -> count over every pathway
    """

    mode: DistributionMode
    level: str
    term: str
    exam: str
    year: int
    bands: Tuple[str, ...]
    distribution: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    totals: Dict[str, int] = field(default_factory=dict)
    stream: Optional[str] = None

    @property
    def counted(self) -> int:
        return sum(self.totals.values())

    def count(self, pathway: str, band: str, grade: Optional[int] = None) -> int:
        counts = self.distribution.get(pathway, {})
        if grade is not None:
            counts = counts.get(grade_label(grade), {})
        return counts.get(band, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "input": self.level,
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "stream": self.stream,
            "gradeBands": list(self.bands),
            "distribution": self.distribution,
            "totals": self.totals,
        }


def build_grade_distribution(
    level: str,
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> GradeDistribution:
    """
    Count students per pathway per grade band.

    Args:
        level: "all", a grade ("10", "Grade 10") or a class name
        term, exam, year: Exam period
        directory: Students, classes and subjects
        assessments: Stored assessments (any period)
        config: Grading configuration (bands, min subjects, grade levels)

    Raises:
        NotFoundError: Unknown class, grade without classes, or no
            assessments for the exam
    """
    assessments = list(assessments)
    ensure_exam_recorded(assessments, term=term, exam=exam, year=year)

    stream = None
    if normalise_name(level) == ALL_GRADES:
        mode = DistributionMode.CROSS_GRADE
        classes = directory.classes_in_grades(config.grade_levels)
    elif is_grade_selector(level):
        mode = DistributionMode.GRADE_WIDE
        classes = directory.classes_in_grade(parse_grade_level(level))
    else:
        mode = DistributionMode.CLASS_SPECIFIC
        school_class = directory.school_class(level)
        classes = (school_class,)
        stream = school_class.stream

    class_names = [c.name for c in classes]
    students = directory.students_in_classes(class_names)
    profiles = build_profiles(
        students,
        filter_assessments(assessments, term=term, year=year, exams=(exam,), class_names=class_names),
        exams=(exam,),
        directory=directory,
    )

    bands = config.grade_scale.labels
    pathways = directory.pathway_names()
    pathway_keys = {normalise_name(p): p for p in pathways}

    def empty() -> Dict[str, int]:
        return {band: 0 for band in bands}

    if mode is DistributionMode.CROSS_GRADE:
        grades = sorted({c.grade for c in classes})
        distribution: Dict[str, Dict[str, Any]] = {
            p: {grade_label(g): empty() for g in grades} for p in pathways
        }
    else:
        distribution = {p: empty() for p in pathways}
    totals = empty()

    skipped = 0
    for profile in profiles.values():
        pathway = pathway_keys.get(normalise_name(student_pathway(directory, profile.student)))
        if pathway is None or not profile.is_reliable(config.min_subjects_for_aggregate):
            skipped += 1
            continue
        band = config.grade_scale.resolve(profile.mean).label
        if mode is DistributionMode.CROSS_GRADE:
            distribution[pathway][grade_label(profile.grade_level)][band] += 1
        else:
            distribution[pathway][band] += 1
        totals[band] += 1

    logger.info(
        "Grade distribution %s (%s): %d counted, %d skipped",
        level, mode.value, sum(totals.values()), skipped,
    )
    return GradeDistribution(
        mode=mode,
        level=level,
        term=term,
        exam=exam,
        year=int(year),
        bands=bands,
        distribution=distribution,
        totals=totals,
        stream=stream,
    )
