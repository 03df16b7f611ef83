"""
Single-assessment lookups.

Read-side helpers used by mark entry screens: one student's assessment in
one subject, and the stored papers of a class for a subject.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.core.errors import NotFoundError
from cbc_toolkit.core.models.assessments import AssessmentKey, SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolDirectory
from cbc_toolkit.core.models.papers import PaperScore
from cbc_toolkit.core.utils.numeric import mean, round_half_up
from cbc_toolkit.grading.aggregation import ensure_exam_recorded, filter_assessments


@dataclass(frozen=True)
class AssessmentSummary:
    """
    One student's assessment in one subject.

    Attributes:
        adm_no, name, class_name, grade: Student identity
        learning_area: Subject name
        group: Subject group
        paper_count: Number of papers
        paper_mean: Mean of the paper scores (absent papers count as zero)
        assessment: The stored assessment
    """

    adm_no: str
    name: str
    class_name: str
    grade: Optional[int]
    learning_area: str
    group: str
    paper_count: int
    paper_mean: Optional[float]
    assessment: SubjectAssessment

    def to_dict(self) -> Dict[str, Any]:
        a = self.assessment
        return {
            "student": {
                "name": self.name,
                "admNo": self.adm_no,
                "class": self.class_name,
                "grade": self.grade,
            },
            "learningArea": self.learning_area,
            "pathway": self.group,
            "assessment": {
                "entry": self.paper_count,
                "mean": self.paper_mean,
                "papers": [p.to_dict() for p in a.papers],
                "computedScore": a.computed_score,
                "grade": a.grade,
            },
            "context": {"term": a.term, "exam": a.exam, "year": a.year},
        }


def summarize_assessment(
    adm_no: str,
    subject_name: str,
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
) -> AssessmentSummary:
    """
    Look up one assessment.

    Raises:
        NotFoundError: Exam not recorded, unknown student or subject, or no
            assessment for the student in that period
    """
    assessments = list(assessments)
    ensure_exam_recorded(assessments, term=term, exam=exam, year=year)
    student = directory.student(adm_no)
    subject = directory.subject(subject_name)

    key = AssessmentKey.of(student.adm_no, subject.name, term, exam, year)
    found = next((a for a in assessments if a.key == key), None)
    if found is None:
        raise NotFoundError("assessment", key, "Assessment not found for this setup")

    paper_mean = mean(p.effective_score for p in found.papers)
    return AssessmentSummary(
        adm_no=student.adm_no,
        name=student.name,
        class_name=student.class_name,
        grade=directory.grade_of(student),
        learning_area=subject.name,
        group=subject.group,
        paper_count=len(found.papers),
        paper_mean=None if paper_mean is None else round_half_up(paper_mean, 2),
        assessment=found,
    )


@dataclass(frozen=True)
class ClassPaperRow:
    """Stored papers of one student, as shown on a mark entry form."""

    adm_no: str
    name: str
    papers: Tuple[PaperScore, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admNo": self.adm_no,
            "name": self.name,
            "papers": [p.to_dict() for p in self.papers],
        }


def fetch_class_papers(
    class_name: str,
    subject_name: str,
    *,
    term: str,
    exam: str,
    year: int,
    directory: SchoolDirectory,
    assessments: Iterable[SubjectAssessment],
) -> List[ClassPaperRow]:
    """
    Stored papers for a class and subject, ordered by admission number.

    Raises:
        NotFoundError: Unknown class or subject
    """
    school_class = directory.school_class(class_name)
    subject = directory.subject(subject_name)
    rows = []
    for a in filter_assessments(
        assessments, term=term, year=year, exams=(exam,), class_names=(school_class.name,)
    ):
        if normalise_name(a.subject) != normalise_name(subject.name):
            continue
        student = directory.find_student(a.adm_no)
        rows.append(ClassPaperRow(a.adm_no, student.name if student else "", a.papers))
    return sorted(rows, key=lambda r: r.adm_no)
