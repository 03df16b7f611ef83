"""
Module: reports.broadsheet

Purpose:
    Broadsheets: one row per student, one column per subject, for a class
    or a whole grade in one exam, optionally limited to a pathway.

    - "general" scope shows every subject the students take and labels each
      student with their pathway(s).
    - A specific pathway shows the compulsory subjects plus that pathway's
      subjects, and only students taking at least one pathway subject.
    - Subject columns are ordered by subject code.
    - Scores are shown rounded to whole numbers, "-" where there is none.
    - Every student with at least one score gets a mean, grade and rank,
      whatever their subject count.

Key Classes:
    - BroadsheetRow: One student's row
    - Broadsheet: The assembled sheet

Key Functions:
    - build_broadsheet(): Assemble a broadsheet
    - build_broadsheet_bundle(): Broadsheets for every pathway of a grade
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from cbc_toolkit.common.names import normalise_adm_no, normalise_name
from cbc_toolkit.core.errors import RequestError
from cbc_toolkit.core.models.assessments import SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolDirectory, Subject
from cbc_toolkit.core.utils.numeric import round_to_int
from cbc_toolkit.grading.aggregation import (
    GENERAL_PATHWAY,
    build_profiles,
    ensure_exam_recorded,
    filter_assessments,
    is_general,
    pathway_label,
    pathway_subjects,
    students_in_pathway,
)
from cbc_toolkit.grading.bands import extract_level
from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG, GradingConfig
from cbc_toolkit.grading.ranking import AggregateEntry, rank_entries

from .scope import resolve_scope

logger = logging.getLogger(__name__)

MISSING = "-"


@dataclass(frozen=True)
class BroadsheetRow:
    """
    One student's broadsheet row.

    Attributes:
        adm_no, name, class_name: Student identity
        pathway: Pathway label (general scope only)
        scores: (subject name, whole-number score or "-") per column
        mean: Mean of the student's scores in the sheet's subjects
        grade, level, remark: Band of the mean
        rank: Competition rank among students with a mean
    """

    adm_no: str
    name: str
    class_name: str
    pathway: Optional[str]
    scores: Tuple[Tuple[str, Union[int, str]], ...]
    mean: Optional[float]
    grade: Optional[str]
    level: Optional[int]
    remark: Optional[str]
    rank: Optional[int]

    def score_for(self, subject: str) -> Union[int, str]:
        key = normalise_name(subject)
        for name, value in self.scores:
            if normalise_name(name) == key:
                return value
        return MISSING

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "admNo": self.adm_no,
            "name": self.name,
            "class": self.class_name,
            "scores": dict(self.scores),
            "meanScore": self.mean,
            "grade": self.grade,
            "level": self.level,
            "remark": self.remark,
            "rank": self.rank,
        }
        if self.pathway is not None:
            data["pathway"] = self.pathway
        return data


@dataclass(frozen=True)
class Broadsheet:
    """An assembled broadsheet."""

    class_label: str
    pathway: str
    term: str
    exam: str
    year: int
    subjects: Tuple[Subject, ...]
    rows: Tuple[BroadsheetRow, ...]

    def row(self, adm_no: str) -> Optional[BroadsheetRow]:
        for row in self.rows:
            if row.adm_no == normalise_adm_no(adm_no):
                return row
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pathway": self.pathway,
            "classLabel": self.class_label,
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "subjects": [{"name": s.name, "code": s.label} for s in self.subjects],
            "broadsheet": [r.to_dict() for r in self.rows],
        }


def _check_pathway(directory: SchoolDirectory, pathway: str) -> None:
    if is_general(pathway):
        return
    known = {normalise_name(p) for p in directory.pathway_names()}
    if normalise_name(pathway) not in known:
        raise RequestError(f"Invalid pathway '{pathway}'", parameter="pathway")


def build_broadsheet(
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
    pathway: str = GENERAL_PATHWAY,
    class_name: Optional[str] = None,
    grade: Optional[Union[int, str]] = None,
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> Broadsheet:
    """
    Assemble a broadsheet for a class or grade.

    Args:
        term, exam, year: Exam period
        directory: Students, classes and subjects
        assessments: Stored assessments (any period; filtered here)
        pathway: "general" or a pathway name
        class_name: Class to cover (takes precedence over grade)
        grade: Grade level to cover ("10", "Grade 10" or 10)
        config: Grading configuration

    Raises:
        RequestError: Missing selector, malformed grade or unknown pathway
        NotFoundError: Unknown class/grade, or no assessments for the exam
    """
    if not pathway or not str(pathway).strip():
        raise RequestError(
            "Missing required parameters: term, exam, year, and pathway are required",
            parameter="pathway",
        )
    _check_pathway(directory, pathway)
    scope = resolve_scope(directory, class_name=class_name, grade=grade)
    assessments = list(assessments)
    ensure_exam_recorded(assessments, term=term, exam=exam, year=year)

    in_classes = directory.students_in_classes(scope.class_names)
    students = students_in_pathway(directory, pathway, in_classes)
    current = filter_assessments(
        assessments, term=term, year=year, exams=(exam,), class_names=scope.class_names
    )
    subjects = pathway_subjects(directory, pathway, in_classes, current)
    general = is_general(pathway)
    profiles = build_profiles(
        students,
        current,
        exams=(exam,),
        directory=directory,
        subjects=[s.name for s in subjects],
        selected_only=True,
    )

    ranking = rank_entries(
        (AggregateEntry(key=adm_no, mean=p.mean, entry_count=p.subject_count)
         for adm_no, p in profiles.items()),
    )

    rows = []
    for entry in ranking:
        profile = profiles[entry.key]
        band = config.grade_scale.resolve_optional(profile.mean)
        scores = []
        for subject in subjects:
            subject_scores = profile.subject(subject.name)
            value = subject_scores.mean if subject_scores else None
            scores.append((subject.name, MISSING if value is None else round_to_int(value)))
        rows.append(BroadsheetRow(
            adm_no=profile.adm_no,
            name=profile.student.name,
            class_name=profile.student.class_name,
            pathway=pathway_label(directory, profile.student) if general else None,
            scores=tuple(scores),
            mean=profile.mean,
            grade=band.label if band else None,
            level=extract_level(band.label) if band else None,
            remark=band.remark if band else None,
            rank=entry.rank,
        ))

    logger.info(
        "Built %s broadsheet for %s (%s %s %s): %d students, %d subjects",
        "GENERAL" if general else pathway.upper(), scope.label, term, exam, year,
        len(rows), len(subjects),
    )
    return Broadsheet(
        class_label=scope.label,
        pathway="GENERAL" if general else pathway.upper(),
        term=term,
        exam=exam,
        year=int(year),
        subjects=tuple(subjects),
        rows=tuple(rows),
    )


def build_broadsheet_bundle(
    *,
    grade: Union[int, str],
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> Tuple[Broadsheet, ...]:
    """Broadsheets for every pathway of a grade in configured order, then the general one."""
    assessments = list(assessments)
    sheets = []
    for pathway in (*config.order_pathways(directory.pathway_names()), GENERAL_PATHWAY):
        sheets.append(build_broadsheet(
            term=term,
            exam=exam,
            year=year,
            directory=directory,
            assessments=assessments,
            pathway=pathway,
            grade=grade,
            config=config,
        ))
    return tuple(sheets)
