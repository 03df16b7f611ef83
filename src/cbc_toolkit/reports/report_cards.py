"""
Module: reports.report_cards

Purpose:
    Report cards for a class (or one student) at a given exam. A report
    card covers every exam of the term up to and including the requested
    one (the exam scope):

    - per subject: the score of each exam in scope, the subject mean, its
      grade, level and remark
    - overall: mean of subject means, grade, level, remark and the
      class-teacher and principal comments
    - position: competition rank within the class
    - year summary: for each configured grade level and term, the mean over
      the exam scope, then an overall mean across terms

Key Classes:
    - SubjectLine, YearSummaryRow, ReportCard, ReportCardBatch

Key Functions:
    - build_report_cards(): Cards for a class, or a single student's card
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from cbc_toolkit.common.names import normalise_adm_no, normalise_name
from cbc_toolkit.core.errors import NotFoundError, RequestError
from cbc_toolkit.core.models.assessments import SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolDirectory, Student
from cbc_toolkit.core.utils.numeric import mean, round_to_int
from cbc_toolkit.grading.aggregation import (
    StudentProfile,
    build_profiles,
    filter_assessments,
    round_mean,
)
from cbc_toolkit.grading.bands import GradeBand
from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG, GradingConfig
from cbc_toolkit.grading.ranking import AggregateEntry, rank_entries

logger = logging.getLogger(__name__)

NOT_ASSESSED = "Not Assessed"
MISSING = "-"


@dataclass(frozen=True)
class SubjectLine:
    """One subject row of a report card."""

    learning_area: str
    exams: Tuple[Tuple[str, Union[int, str]], ...]
    mean: Optional[float]
    grade: Optional[str]
    level: Optional[int]
    remark: str

    @property
    def total(self) -> Optional[int]:
        """Subject mean as printed (whole number)."""
        return None if self.mean is None else round_to_int(self.mean)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "learningArea": self.learning_area,
            "exams": dict(self.exams),
            "total": self.total,
            "mean": self.mean,
            "grade": self.grade,
            "level": self.level,
            "remark": self.remark,
        }


@dataclass(frozen=True)
class TermSummary:
    term: str
    mean: Optional[float]
    grade: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"mean": self.mean, "grade": self.grade}


@dataclass(frozen=True)
class YearSummaryRow:
    """
    One grade level of the year summary.

    Attributes:
        grade: Grade level
        terms: Per-term summaries, in configured term order
        mean: Mean of the term means that exist
        grade_label: Band of `mean`
        level: Level of `grade_label`
    """

    grade: int
    terms: Tuple[TermSummary, ...]
    mean: Optional[float]
    grade_label: Optional[str]
    level: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grade": self.grade,
            "terms": {t.term: t.to_dict() for t in self.terms},
            "overall": {"mean": self.mean, "grade": self.grade_label, "level": self.level},
        }


@dataclass(frozen=True)
class ReportCard:
    """A student's report card."""

    adm_no: str
    name: str
    class_name: str
    pathway: str
    subjects: Tuple[SubjectLine, ...]
    mean: Optional[float]
    grade: Optional[str]
    level: Optional[int]
    summary_remark: str
    class_teacher_comment: str
    principal_comment: str
    position: Optional[int]
    year_summary: Tuple[YearSummaryRow, ...]

    @property
    def mean_score(self) -> Optional[int]:
        return None if self.mean is None else round_to_int(self.mean)

    def subject(self, name: str) -> Optional[SubjectLine]:
        key = normalise_name(name)
        for line in self.subjects:
            if normalise_name(line.learning_area) == key:
                return line
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admNo": self.adm_no,
            "name": self.name,
            "class": self.class_name,
            "pathway": self.pathway,
            "scores": [s.to_dict() for s in self.subjects],
            "meanScore": self.mean_score,
            "mean": self.mean,
            "grade": self.grade,
            "level": self.level,
            "summaryRemark": self.summary_remark,
            "classTeacherComment": self.class_teacher_comment,
            "principalComment": self.principal_comment,
            "position": self.position,
            "yearSummary": [row.to_dict() for row in self.year_summary],
        }


@dataclass(frozen=True)
class ReportCardBatch:
    """Report cards plus the metadata shared by all of them."""

    class_name: str
    term: str
    exam: str
    year: int
    exam_scope: Tuple[str, ...]
    previous_exam: Optional[str]
    cards: Tuple[ReportCard, ...]

    def card(self, adm_no: str) -> Optional[ReportCard]:
        key = normalise_adm_no(adm_no)
        for card in self.cards:
            if card.adm_no == key:
                return card
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": {
                "className": self.class_name,
                "term": self.term,
                "year": self.year,
                "examType": self.exam,
                "examScope": list(self.exam_scope),
                "previousExam": self.previous_exam,
            },
            "reportForms": [c.to_dict() for c in self.cards],
        }


# ─────────────────────────────────────────────────────────────────────────────
# Assembly
# ─────────────────────────────────────────────────────────────────────────────

def _band_fields(band: Optional[GradeBand]) -> Tuple[Optional[str], Optional[int], str, str]:
    """label, level, remark, comment ("Not Assessed" when there is no band)."""
    if band is None:
        return None, None, NOT_ASSESSED, NOT_ASSESSED
    return band.label, band.level, band.remark, band.comment


def build_year_summary(
    student: Student,
    history: Iterable[SubjectAssessment],
    *,
    exam_scope: Sequence[str],
    directory: SchoolDirectory,
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> Tuple[YearSummaryRow, ...]:
    """
    Year summary across grade levels and terms.

    The grade level of each assessment is the grade of the class it was
    taken in. For each grade/term, the exam means over the exam scope are
    averaged into a term mean; term means average into the grade's
    overall mean.
    """
    scope = {normalise_name(e) for e in exam_scope}
    # (grade, term key, exam key) -> subject scores
    sittings: Dict[Tuple[int, str, str], List[float]] = {}
    for a in history:
        if a.adm_no != student.adm_no or normalise_name(a.exam) not in scope:
            continue
        school_class = directory.find_class(a.class_name)
        if school_class is None:
            continue
        key = (school_class.grade, normalise_name(a.term), normalise_name(a.exam))
        sittings.setdefault(key, []).append(a.computed_score)

    rows = []
    for grade in config.grade_levels:
        terms = []
        term_means = []
        for term in config.terms:
            exam_means = [
                mean(scores) for (g, t, _), scores in sittings.items()
                if g == grade and t == normalise_name(term)
            ]
            term_mean = mean(exam_means)
            band = config.grade_scale.resolve_optional(term_mean)
            terms.append(TermSummary(term, round_mean(term_mean), band.label if band else None))
            if term_mean is not None:
                term_means.append(term_mean)
        overall = mean(term_means)
        band = config.grade_scale.resolve_optional(overall)
        rows.append(YearSummaryRow(
            grade=grade,
            terms=tuple(terms),
            mean=round_mean(overall),
            grade_label=band.label if band else None,
            level=band.level if band else None,
        ))
    return tuple(rows)


def _subject_line(scores, exam_scope: Sequence[str], config: GradingConfig) -> SubjectLine:
    exams = []
    for exam in exam_scope:
        value = scores.score_for(exam)
        exams.append((exam, MISSING if value is None else round_to_int(value)))
    label, level, remark, _ = _band_fields(config.grade_scale.resolve_optional(scores.mean))
    return SubjectLine(
        learning_area=scores.subject,
        exams=tuple(exams),
        mean=scores.mean,
        grade=label,
        level=level,
        remark=remark,
    )


def _card(
    profile: StudentProfile,
    *,
    class_name: str,
    position: Optional[int],
    exam_scope: Sequence[str],
    history: List[SubjectAssessment],
    directory: SchoolDirectory,
    config: GradingConfig,
) -> ReportCard:
    student = profile.student
    label, level, remark, comment = _band_fields(
        config.grade_scale.resolve_optional(profile.mean)
    )
    return ReportCard(
        adm_no=student.adm_no,
        name=student.name,
        class_name=class_name,
        pathway=student.pathway or "N/A",
        subjects=tuple(_subject_line(s, exam_scope, config) for s in profile.subjects),
        mean=profile.mean,
        grade=label,
        level=level,
        summary_remark=remark,
        class_teacher_comment=comment,
        principal_comment=comment,
        position=position,
        year_summary=build_year_summary(
            student, history, exam_scope=exam_scope, directory=directory, config=config
        ),
    )


def build_report_cards(
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
    class_name: Optional[str] = None,
    adm_no: Optional[str] = None,
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> ReportCardBatch:
    """
    Build report cards for a class, or for one student.

    With `adm_no`, the student's whole class is assembled (positions are
    class positions) and only that student's card is returned.

    Args:
        term, exam, year: Report period
        directory: Students, classes and subjects
        assessments: Assessment history (all periods; feeds the year summary)
        class_name: Class to report on
        adm_no: Single student to report on (takes precedence)
        config: Grading configuration (calendar, bands, terms, grade levels)

    Raises:
        RequestError: Neither class_name nor adm_no given
        NotFoundError: Unknown student, class or exam, or no card for the student
    """
    if not adm_no and not class_name:
        raise RequestError(
            "Provide either admNo for single report or className for bulk report",
            parameter="className",
        )

    if adm_no:
        student = directory.student(adm_no)
        school_class = directory.school_class(student.class_name)
    else:
        student = None
        school_class = directory.school_class(class_name)

    exam_scope = config.calendar.scope(exam)
    previous_exam = config.calendar.previous(exam)
    history = list(assessments)

    students = directory.students_in_classes([school_class.name])
    current = filter_assessments(
        history, term=term, year=year, exams=exam_scope, class_names=[school_class.name]
    )
    profiles = build_profiles(students, current, exams=exam_scope, directory=directory)

    ranking = rank_entries(
        AggregateEntry(key=key, mean=p.mean, entry_count=p.subject_count)
        for key, p in profiles.items()
    )

    cards = []
    for entry in ranking:
        if student is not None and entry.key != student.adm_no:
            continue
        cards.append(_card(
            profiles[entry.key],
            class_name=school_class.name,
            position=entry.rank,
            exam_scope=exam_scope,
            history=history,
            directory=directory,
            config=config,
        ))

    if student is not None and not cards:
        raise NotFoundError("report", adm_no, "Report not found for student")

    logger.info(
        "Built %d report card(s) for %s, %s %s %s (scope: %s)",
        len(cards), school_class.name, term, exam, year, ", ".join(exam_scope),
    )
    return ReportCardBatch(
        class_name=school_class.name,
        term=term,
        exam=config.calendar.canonical(exam),
        year=int(year),
        exam_scope=exam_scope,
        previous_exam=previous_exam,
        cards=tuple(cards),
    )
