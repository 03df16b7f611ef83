"""
Module: grading.aggregation

Purpose:
    Groups computed subject scores by student, class, grade level and
    pathway across an exam scope, and reduces them to means.

    A student's subject mean is the mean of their per-exam scores within the
    scope; their overall mean is the mean of their subject means. Students
    with fewer than `min_subjects` subjects still get a profile (and appear
    on broadsheets and report cards) but are left out of group means.

Key Classes:
    - SubjectScores: One subject's per-exam scores for a student
    - StudentProfile: All subject scores and the mean for one student

Key Functions:
    - ensure_exam_recorded(): Request-level check that an exam has data
    - build_profiles(): Student profiles over an exam scope
    - group_mean(): Mean of reliable student means
    - mean_of_means(): Mean of group means (grade = mean of its classes)
    - pathway_subjects(), students_in_pathway(), pathway_label()

Dependencies:
    - numpy (via core.utils.numeric.mean)
    - core.models
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.common.thresholds import AGGREGATION_THRESHOLDS
from cbc_toolkit.core.errors import NotFoundError
from cbc_toolkit.core.models.assessments import SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolDirectory, Student, Subject
from cbc_toolkit.core.utils.numeric import mean, round_half_up

logger = logging.getLogger(__name__)

GENERAL_PATHWAY = "general"


def round_mean(value: Optional[float]) -> Optional[float]:
    """Round a reported mean, passing None through."""
    if value is None:
        return None
    return round_half_up(value, AGGREGATION_THRESHOLDS.mean_places)


# ─────────────────────────────────────────────────────────────────────────────
# Scope filtering
# ─────────────────────────────────────────────────────────────────────────────

def filter_assessments(
    assessments: Iterable[SubjectAssessment],
    *,
    term: str,
    year: int,
    exams: Optional[Iterable[str]] = None,
    class_names: Optional[Iterable[str]] = None,
) -> List[SubjectAssessment]:
    """Assessments of one term/year, optionally limited to exams and classes."""
    exam_keys = {normalise_name(e) for e in exams} if exams is not None else None
    class_keys = {normalise_name(c) for c in class_names} if class_names is not None else None
    return [
        a for a in assessments
        if a.in_period(term, year)
        and (exam_keys is None or normalise_name(a.exam) in exam_keys)
        and (class_keys is None or normalise_name(a.class_name) in class_keys)
    ]


def recorded_exams(assessments: Iterable[SubjectAssessment], *, term: str, year: int) -> Tuple[str, ...]:
    """Distinct exam names with at least one assessment in a term/year."""
    names: Dict[str, str] = {}
    for a in assessments:
        if a.in_period(term, year):
            names.setdefault(normalise_name(a.exam), a.exam)
    return tuple(names.values())


def ensure_exam_recorded(
    assessments: Iterable[SubjectAssessment], *, term: str, exam: str, year: int
) -> None:
    """
    Raise NotFoundError when no assessment exists for the exam in term/year.

    Reports over an exam nobody sat would otherwise come back silently empty.
    """
    recorded = recorded_exams(assessments, term=term, year=year)
    if normalise_name(exam) not in {normalise_name(e) for e in recorded}:
        raise NotFoundError(
            "exam",
            exam,
            f"Exam '{exam}' not recognized for {term} {year}. "
            f"Valid exams: {', '.join(recorded)}",
        )


# ─────────────────────────────────────────────────────────────────────────────
# Student profiles
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SubjectScores:
    """
    One subject's scores for one student within an exam scope.

    Attributes:
        subject: Subject display name
        exam_scores: (exam, computed score) pairs in scope order
    """

    subject: str
    exam_scores: Tuple[Tuple[str, float], ...]

    @property
    def mean(self) -> Optional[float]:
        return round_mean(mean(score for _, score in self.exam_scores))

    def score_for(self, exam: str) -> Optional[float]:
        key = normalise_name(exam)
        for name, score in self.exam_scores:
            if normalise_name(name) == key:
                return score
        return None


@dataclass(frozen=True)
class StudentProfile:
    """
    A student's subject scores and overall mean within an exam scope.

    Attributes:
        student: The student
        grade_level: Grade of the student's class (None if the class is unknown)
        subjects: Per-subject scores, ordered by subject name
    """

    student: Student
    grade_level: Optional[int]
    subjects: Tuple[SubjectScores, ...]

    @property
    def adm_no(self) -> str:
        return self.student.adm_no

    @property
    def subject_count(self) -> int:
        return len(self.subjects)

    @property
    def mean(self) -> Optional[float]:
        """Mean of subject means (None when no subject was scored)."""
        return round_mean(mean(s.mean for s in self.subjects if s.mean is not None))

    def is_reliable(self, min_subjects: int = AGGREGATION_THRESHOLDS.min_subjects_for_aggregate) -> bool:
        """True when the student has enough subjects to count in group means."""
        return self.subject_count >= min_subjects and self.mean is not None

    def subject(self, name: str) -> Optional[SubjectScores]:
        key = normalise_name(name)
        for scores in self.subjects:
            if normalise_name(scores.subject) == key:
                return scores
        return None


def _takes(student: Student, subject_name: str) -> bool:
    # Students without a recorded selection are assumed to take what they sat
    return not student.selected_subjects or student.takes(subject_name)


def build_profiles(
    students: Iterable[Student],
    assessments: Iterable[SubjectAssessment],
    *,
    exams: Sequence[str],
    directory: SchoolDirectory,
    subjects: Optional[Iterable[str]] = None,
    selected_only: bool = False,
) -> Dict[str, StudentProfile]:
    """
    Build a profile for every student over an exam scope.

    Args:
        students: Students to profile (each gets a profile, scored or not)
        assessments: Assessments already filtered to the term/year
        exams: Exam scope in calendar order
        directory: Used to resolve each student's grade level
        subjects: Optional subject names to restrict the profile to
        selected_only: Only count subjects the student has selected

    Returns:
        adm_no -> StudentProfile, in the order students were given
    """
    exam_order = {normalise_name(e): position for position, e in enumerate(exams)}
    subject_keys = {normalise_name(s) for s in subjects} if subjects is not None else None

    # adm_no -> subject key -> exam position -> (subject, exam, score)
    grouped: Dict[str, Dict[str, Dict[int, Tuple[str, str, float]]]] = {}
    for a in assessments:
        position = exam_order.get(normalise_name(a.exam))
        if position is None:
            continue
        subject_key = normalise_name(a.subject)
        if subject_keys is not None and subject_key not in subject_keys:
            continue
        grouped.setdefault(a.adm_no, {}).setdefault(subject_key, {})[position] = (
            a.subject, a.exam, a.computed_score,
        )

    profiles: Dict[str, StudentProfile] = {}
    for student in students:
        subject_scores = []
        for subject_key, by_exam in sorted(grouped.get(student.adm_no, {}).items()):
            display = next(iter(by_exam.values()))[0]
            if selected_only and not _takes(student, display):
                continue
            subject_scores.append(SubjectScores(
                subject=display,
                exam_scores=tuple((exam, score) for _, (_, exam, score) in sorted(by_exam.items())),
            ))
        profiles[student.adm_no] = StudentProfile(
            student=student,
            grade_level=directory.grade_of(student),
            subjects=tuple(subject_scores),
        )

    logger.debug("Built %d student profiles over exams %s", len(profiles), list(exams))
    return profiles


# ─────────────────────────────────────────────────────────────────────────────
# Group means
# ─────────────────────────────────────────────────────────────────────────────

def reliable_profiles(
    profiles: Iterable[StudentProfile],
    min_subjects: int = AGGREGATION_THRESHOLDS.min_subjects_for_aggregate,
) -> List[StudentProfile]:
    return [p for p in profiles if p.is_reliable(min_subjects)]


def group_mean(
    profiles: Iterable[StudentProfile],
    min_subjects: int = AGGREGATION_THRESHOLDS.min_subjects_for_aggregate,
) -> Optional[float]:
    """
    Mean of the student means of reliable students.

    Returns None (not 0) when no student in the group qualifies.
    """
    return round_mean(mean(p.mean for p in reliable_profiles(profiles, min_subjects)))


def mean_of_means(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of group means, skipping groups without one."""
    return round_mean(mean(v for v in values if v is not None))


def profiles_by_class(profiles: Iterable[StudentProfile]) -> Dict[str, List[StudentProfile]]:
    """Normalised class name -> profiles."""
    grouped: Dict[str, List[StudentProfile]] = {}
    for profile in profiles:
        grouped.setdefault(normalise_name(profile.student.class_name), []).append(profile)
    return grouped


# ─────────────────────────────────────────────────────────────────────────────
# Pathways
# ─────────────────────────────────────────────────────────────────────────────

def is_general(pathway: Optional[str]) -> bool:
    return not pathway or normalise_name(pathway) == GENERAL_PATHWAY


def pathway_subjects(
    directory: SchoolDirectory,
    pathway: Optional[str],
    students: Iterable[Student],
    assessments: Iterable[SubjectAssessment] = (),
) -> List[Subject]:
    """
    Subjects shown for a pathway scope, ordered by code.

    The general scope shows every subject any of the students takes: their
    selected subjects, or for students with no selection the subjects they
    sat in `assessments`. A specific pathway shows the compulsory subjects
    plus that pathway's own.
    """
    if is_general(pathway):
        students = list(students)
        taken = {normalise_name(name) for s in students for name in s.selected_subjects}
        unselected = {s.adm_no for s in students if not s.selected_subjects}
        taken.update(normalise_name(a.subject) for a in assessments if a.adm_no in unselected)
        chosen = [s for s in directory.subjects if normalise_name(s.name) in taken]
    else:
        key = normalise_name(pathway)
        chosen = [
            s for s in directory.subjects
            if s.is_compulsory or normalise_name(s.pathway) == key
        ]
    return sorted(chosen, key=lambda s: (s.code, normalise_name(s.name)))


def students_in_pathway(
    directory: SchoolDirectory, pathway: Optional[str], students: Iterable[Student]
) -> List[Student]:
    """Students taking at least one subject of a pathway (all students for general)."""
    if is_general(pathway):
        return list(students)
    key = normalise_name(pathway)
    return [
        student for student in students
        if any(normalise_name(s.pathway) == key for s in directory.subjects_of(student))
    ]


def pathway_label(directory: SchoolDirectory, student: Student) -> str:
    """Non-compulsory pathways of a student's subjects joined with ", ", or "-"."""
    names: List[str] = []
    for subject in directory.subjects_of(student):
        if subject.is_compulsory or not subject.pathway:
            continue
        if subject.pathway not in names:
            names.append(subject.pathway)
    return ", ".join(names) if names else "-"


def student_pathway(directory: SchoolDirectory, student: Student) -> Optional[str]:
    """The student's assigned pathway, or the single pathway of their subjects."""
    if student.pathway:
        return student.pathway
    label = pathway_label(directory, student)
    return label if label != "-" and ", " not in label else None
