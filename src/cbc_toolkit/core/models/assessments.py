"""
Module: assessments

Purpose:
    Provides the SubjectAssessment dataclass - one student's validated,
    scored result in one subject for one term/exam/year. Everything that
    aggregates or ranks works from snapshots of these records.

Key Classes:
    - AssessmentKey: Identity tuple (admNo, subject, term, exam, year)
    - SubjectAssessment: Frozen record with totals, computed score and grade

Dependencies:
    - dataclasses (std)
    - .papers.PaperScore

Used By:
    - grading.entry: Creates assessments from batch mark entry
    - grading.aggregation: Groups computed scores
    - reports.*: Builds report cards, broadsheets and rankings
    - core.utils.serialization: Loads snapshots

Design Notes:
    Derived values (totals, percentage, computed score, grade) are stored
    because the record is created once by grading.entry.build_assessment and
    never mutated; an update produces a new record that supersedes the old.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Tuple

from cbc_toolkit.common.names import normalise_adm_no, normalise_name

from .papers import PaperScore


class AssessmentKey(NamedTuple):
    """Uniqueness key of an assessment (names normalised)."""

    adm_no: str
    subject: str
    term: str
    exam: str
    year: int

    @classmethod
    def of(cls, adm_no: str, subject: str, term: str, exam: str, year: int) -> AssessmentKey:
        return cls(
            normalise_adm_no(adm_no),
            normalise_name(subject),
            normalise_name(term),
            normalise_name(exam),
            int(year),
        )


@dataclass(frozen=True)
class SubjectAssessment:
    """
    Scored assessment for one student, subject and exam period.

    Attributes:
        adm_no: Student admission number (upper-case)
        subject: Subject display name
        class_name: Class the student sat the exam in
        term: Term name
        exam: Exam name
        year: Academic year
        papers: Validated paper scores
        total_score: Sum of non-absent scores
        total_out_of: Sum of all configured maxima
        percentage: total_score / total_out_of as a 2dp string
        computed_score: Comparable 0-100 subject score after weighting
        grade: Grade band label for computed_score
        remark: Grade band remark
        comment: Auto-generated teacher comment
        absent_count: Number of papers marked absent

    Invariants:
        - 0 <= computed_score <= 100
        - absent_count == number of absent papers
    """

    adm_no: str
    subject: str
    class_name: str
    term: str
    exam: str
    year: int
    papers: Tuple[PaperScore, ...]
    total_score: float
    total_out_of: float
    percentage: str
    computed_score: float
    grade: str
    remark: str
    comment: str
    absent_count: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "adm_no", normalise_adm_no(self.adm_no))
        if not (0 <= self.computed_score <= 100):
            raise ValueError(f"computed_score outside [0, 100]: {self.computed_score}")
        absent = sum(1 for p in self.papers if p.is_absent)
        if absent != self.absent_count:
            raise ValueError(
                f"absent_count {self.absent_count} does not match papers ({absent})"
            )

    @property
    def key(self) -> AssessmentKey:
        return AssessmentKey.of(self.adm_no, self.subject, self.term, self.exam, self.year)

    def in_period(self, term: str, year: int) -> bool:
        return normalise_name(self.term) == normalise_name(term) and self.year == int(year)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admNo": self.adm_no,
            "subject": self.subject,
            "className": self.class_name,
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "papers": [p.to_dict() for p in self.papers],
            "totalScore": self.total_score,
            "totalOutOf": self.total_out_of,
            "percentage": self.percentage,
            "computedScore": self.computed_score,
            "grade": self.grade,
            "remark": self.remark,
            "comment": self.comment,
            "absentCount": self.absent_count,
        }

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return (
            f"SubjectAssessment({self.adm_no}, {self.subject!r}, "
            f"{self.term}/{self.exam}/{self.year}, score={self.computed_score})"
        )
