"""
Module: reports.rankings

Purpose:
    Class/grade rankings and subject rankings for one exam, each compared
    against the previous exam of the term.

    Class ranking: class mean = mean of the means of students with enough
    subjects. Grade ranking: grade mean = mean of its class means; the
    grade's entry is its number of active students.

    Subject ranking: per class, subjects are grouped by subject group; each
    subject's mean is the mean of its computed scores. Subjects are ranked
    within their group and overall within the class.

    Previous means default to the same computation over the previous exam
    in the calendar; callers may inject their own lookups instead.

Key Classes:
    - ClassGradeRanking: Class and grade RankedLists
    - SubjectRanking: Per-class subject rows

Key Functions:
    - rank_classes_and_grades()
    - rank_subjects()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.core.models.assessments import SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolClass, SchoolDirectory
from cbc_toolkit.core.utils.numeric import mean
from cbc_toolkit.grading.aggregation import (
    build_profiles,
    ensure_exam_recorded,
    filter_assessments,
    group_mean,
    mean_of_means,
    profiles_by_class,
    recorded_exams,
    reliable_profiles,
    round_mean,
)
from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG, GradingConfig
from cbc_toolkit.grading.ranking import (
    AggregateEntry,
    PreviousMeanLookup,
    RankedList,
    lookup_from_mapping,
    no_history,
    rank_entries,
)

from .scope import grade_label, parse_grade_level, resolve_grades

logger = logging.getLogger(__name__)


def _previous_recorded_exam(
    assessments: List[SubjectAssessment], *, term: str, exam: str, year: int, config: GradingConfig
) -> Optional[str]:
    """Previous exam in the calendar, if anything was recorded for it."""
    if exam not in config.calendar:
        return None
    previous = config.calendar.previous(exam)
    if previous is None:
        return None
    recorded = {normalise_name(e) for e in recorded_exams(assessments, term=term, year=year)}
    return previous if normalise_name(previous) in recorded else None


# ─────────────────────────────────────────────────────────────────────────────
# Class and grade ranking
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClassGradeRanking:
    """Class and grade rankings for one exam."""

    term: str
    exam: str
    year: int
    class_ranking: RankedList
    grade_ranking: RankedList
    previous_exam: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "previousExam": self.previous_exam,
            "classRanking": self.class_ranking.to_list(),
            "gradeRanking": self.grade_ranking.to_list(),
        }


def _class_and_grade_means(
    classes: Tuple[SchoolClass, ...],
    directory: SchoolDirectory,
    assessments: List[SubjectAssessment],
    *,
    term: str,
    exam: str,
    year: int,
    config: GradingConfig,
) -> Tuple[Dict[str, Tuple[Optional[float], int]], Dict[int, Optional[float]]]:
    """class name -> (mean, contributing students); grade -> mean of class means."""
    class_names = [c.name for c in classes]
    profiles = build_profiles(
        directory.students_in_classes(class_names),
        filter_assessments(assessments, term=term, year=year, exams=(exam,), class_names=class_names),
        exams=(exam,),
        directory=directory,
        selected_only=True,
    )
    by_class = profiles_by_class(profiles.values())

    class_means: Dict[str, Tuple[Optional[float], int]] = {}
    for school_class in classes:
        members = by_class.get(normalise_name(school_class.name), [])
        class_means[school_class.name] = (
            group_mean(members, config.min_subjects_for_aggregate),
            len(reliable_profiles(members, config.min_subjects_for_aggregate)),
        )

    grade_means: Dict[int, Optional[float]] = {}
    for grade in sorted({c.grade for c in classes}):
        grade_means[grade] = mean_of_means(
            class_means[c.name][0] for c in classes if c.grade == grade
        )
    return class_means, grade_means


def rank_classes_and_grades(
    grade: Union[int, str],
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
    previous_class_means: Optional[PreviousMeanLookup] = None,
    previous_grade_means: Optional[PreviousMeanLookup] = None,
) -> ClassGradeRanking:
    """
    Rank the classes and grade levels of one grade (or "all").

    Args:
        grade: "all" for every configured grade level, or one grade
        term, exam, year: Exam period
        directory: Students, classes and subjects
        assessments: Stored assessments (any period)
        config: Grading configuration
        previous_class_means: Lookup class name -> previous mean; defaults
            to class means over the previous exam
        previous_grade_means: Lookup "Grade N" -> previous mean; defaults
            to grade means over the previous exam

    Raises:
        NotFoundError: No assessments recorded for the exam
        RequestError: Malformed grade selector
    """
    assessments = list(assessments)
    ensure_exam_recorded(assessments, term=term, exam=exam, year=year)
    grades = resolve_grades(grade, config.grade_levels)
    classes = directory.classes_in_grades(grades)

    class_means, grade_means = _class_and_grade_means(
        classes, directory, assessments, term=term, exam=exam, year=year, config=config
    )

    previous_exam = _previous_recorded_exam(
        assessments, term=term, exam=exam, year=year, config=config
    )
    if previous_exam is not None and (previous_class_means is None or previous_grade_means is None):
        prior_classes, prior_grades = _class_and_grade_means(
            classes, directory, assessments,
            term=term, exam=previous_exam, year=year, config=config,
        )
        if previous_class_means is None:
            previous_class_means = lookup_from_mapping(
                {name: value for name, (value, _) in prior_classes.items()}
            )
        if previous_grade_means is None:
            previous_grade_means = lookup_from_mapping(
                {grade_label(g): value for g, value in prior_grades.items()}
            )

    class_ranking = rank_entries(
        (
            AggregateEntry(
                key=c.name,
                mean=class_means[c.name][0],
                entry_count=class_means[c.name][1],
                attributes={"grade": c.grade, "class": c.name},
            )
            for c in classes
        ),
        previous=previous_class_means or no_history,
        scale=config.grade_scale,
    )

    active_by_grade: Dict[int, int] = {}
    for student in directory.students:
        level = directory.grade_of(student)
        if student.is_active and level in grade_means:
            active_by_grade[level] = active_by_grade.get(level, 0) + 1

    grade_ranking = rank_entries(
        (
            AggregateEntry(
                key=grade_label(g),
                mean=value,
                entry_count=active_by_grade.get(g, 0),
                attributes={"grade": g},
            )
            for g, value in grade_means.items()
        ),
        previous=previous_grade_means or no_history,
        scale=config.grade_scale,
    )

    logger.info(
        "Ranked %d classes and %d grades for %s %s %s (previous exam: %s)",
        len(class_ranking), len(grade_ranking), term, exam, year, previous_exam or "none",
    )
    return ClassGradeRanking(
        term=term,
        exam=exam,
        year=int(year),
        class_ranking=class_ranking,
        grade_ranking=grade_ranking,
        previous_exam=previous_exam,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Subject ranking
# ─────────────────────────────────────────────────────────────────────────────

def subject_key(class_name: str, subject: str) -> str:
    """Ranking key of a subject within a class, e.g. "10N/Biology"."""
    return f"{class_name}/{subject}"


@dataclass(frozen=True)
class SubjectRanking:
    """
    Subject rows for every class of a grade.

    Each entry carries attributes `class`, `group`, `learningArea` and
    `overallRank`; `rank` is the rank within the subject group.
    """

    grade: int
    term: str
    exam: str
    year: int
    entries: Tuple[AggregateEntry, ...]
    previous_exam: Optional[str] = None

    def for_class(self, class_name: str) -> List[AggregateEntry]:
        key = normalise_name(class_name)
        return [e for e in self.entries if normalise_name(e.attribute("class")) == key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grade": self.grade,
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "previousExam": self.previous_exam,
            "raw": [e.to_dict() for e in self.entries],
        }


def _subject_scores(
    assessments: Iterable[SubjectAssessment], directory: SchoolDirectory
) -> Dict[str, Dict[str, Dict[str, List[float]]]]:
    """class -> group -> subject -> computed scores."""
    grouped: Dict[str, Dict[str, Dict[str, List[float]]]] = {}
    for a in assessments:
        student = directory.find_student(a.adm_no)
        subject = directory.find_subject(a.subject)
        if student is None or subject is None:
            continue
        school_class = directory.find_class(student.class_name)
        if school_class is None:
            continue
        (grouped.setdefault(school_class.name, {})
            .setdefault(subject.group, {})
            .setdefault(subject.name, [])
            .append(a.computed_score))
    return grouped


def rank_subjects(
    grade: Union[int, str],
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
    previous: Optional[PreviousMeanLookup] = None,
) -> SubjectRanking:
    """
    Rank subjects within each class of a grade.

    Args:
        grade: Grade level ("10", "Grade 10" or 10)
        term, exam, year: Exam period
        directory: Students, classes and subjects
        assessments: Stored assessments (any period)
        config: Grading configuration
        previous: Lookup subject_key(class, subject) -> previous mean;
            defaults to subject means over the previous exam

    Raises:
        NotFoundError: No assessments recorded for the exam
        RequestError: Malformed grade selector
    """
    assessments = list(assessments)
    ensure_exam_recorded(assessments, term=term, exam=exam, year=year)
    level = parse_grade_level(grade)
    class_names = [c.name for c in directory.classes_in_grades([level])]
    students = {s.adm_no for s in directory.students_in_classes(class_names)}

    def scores_for(exam_name: str):
        return _subject_scores(
            (a for a in filter_assessments(assessments, term=term, year=year, exams=(exam_name,))
             if a.adm_no in students),
            directory,
        )

    current = scores_for(exam)
    previous_exam = _previous_recorded_exam(
        assessments, term=term, exam=exam, year=year, config=config
    )
    if previous is None and previous_exam is not None:
        prior = scores_for(previous_exam)
        previous = lookup_from_mapping({
            subject_key(class_name, subject): round_mean(mean(values))
            for class_name, groups in prior.items()
            for subjects in groups.values()
            for subject, values in subjects.items()
        })

    entries: List[AggregateEntry] = []
    for class_name in sorted(current, key=normalise_name):
        groups = current[class_name]
        class_rows: List[AggregateEntry] = []
        for group in sorted(groups, key=normalise_name):
            ranked = rank_entries(
                (
                    AggregateEntry(
                        key=subject_key(class_name, subject),
                        mean=round_mean(mean(values)),
                        entry_count=len(values),
                        attributes={"class": class_name, "group": group, "learningArea": subject},
                    )
                    for subject, values in groups[group].items()
                ),
                previous=previous or no_history,
                scale=config.grade_scale,
            )
            class_rows.extend(ranked)

        overall = rank_entries(class_rows)
        for row in class_rows:
            entries.append(replace(
                row, attributes={**row.attributes, "overallRank": overall.rank_of(row.key)}
            ))

    logger.info(
        "Ranked %d subject rows across %d classes of grade %d for %s %s %s",
        len(entries), len(current), level, term, exam, year,
    )
    return SubjectRanking(
        grade=level,
        term=term,
        exam=exam,
        year=int(year),
        entries=tuple(entries),
        previous_exam=previous_exam,
    )
