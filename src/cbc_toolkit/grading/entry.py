"""
Module: grading.entry

Purpose:
    Batch mark entry and update. Each student in a batch is processed
    independently: a bad score, an unknown admission number or an existing
    record that may not be overwritten is reported for that student and the
    batch carries on. A student repeated within one batch keeps the first
    entry; later ones are skipped.

    Every batch returns a three-way accounting:
    - results: students whose assessment was written, with score and grade
    - actions: what happened to each student (inserted/updated/skipped)
    - errors: per-student problems (validation violations, unknown students)

    The toolkit does not persist anything; the new SubjectAssessments are
    returned in `assessments` for the caller's store to save.

Key Classes:
    - MarkEntryRequest: Validated request envelope
    - BatchOutcome: results / actions / errors / assessments

Key Functions:
    - build_assessment(): Normalized scores -> graded SubjectAssessment
    - enter_marks(): Insert (or, when allowed, update) marks for a class
    - update_marks(): Re-score existing assessments for a subject
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from cbc_toolkit.common.names import normalise_adm_no
from cbc_toolkit.core.errors import (
    ComputationError,
    ConflictError,
    NotFoundError,
    RequestError,
    ValidationError,
)
from cbc_toolkit.core.models.assessments import AssessmentKey, SubjectAssessment
from cbc_toolkit.core.models.directory import SchoolDirectory, Student
from cbc_toolkit.core.models.papers import PaperConfigCatalog, PaperSetup
from cbc_toolkit.core.schemas import validate_mark_entry_request
from cbc_toolkit.core.utils.numeric import round_to_int

from .aggregation import ensure_exam_recorded
from .config import DEFAULT_GRADING_CONFIG, GradingConfig
from .normalizer import NormalizedScores, normalize_scores
from .weighting import compute_subject_score

logger = logging.getLogger(__name__)

INVALID_SCORES_REASON = "Invalid or missing scores"
ASSESSMENT_NOT_FOUND_REASON = "Assessment not found"
PAPER_CONFIG_NOT_FOUND_REASON = "PaperConfig not found"
DUPLICATE_ENTRY_REASON = "Duplicate entry in batch"


# ─────────────────────────────────────────────────────────────────────────────
# Request and outcome types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MarkEntryRequest:
    """
    A batch of marks for one subject and exam period.

    Attributes:
        subject_name: Subject the marks are for
        term: Term name
        exam: Exam name
        year: Academic year
        marks: Raw entries `{"admNo": ..., "papers": [{"paperNo", "score"}]}`
        class_name: Class the marks were taken in (required for entry)
        allow_update: Overwrite existing assessments instead of skipping them
    """

    subject_name: str
    term: str
    exam: str
    year: int
    marks: Tuple[Mapping[str, Any], ...] = ()
    class_name: Optional[str] = None
    allow_update: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "marks", tuple(self.marks))
        object.__setattr__(self, "year", int(self.year))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MarkEntryRequest:
        """
        Parse a request envelope.

        Accepts `marks` or `updates` for the entry list.

        Raises:
            SchemaError: If the envelope fails schema validation
            RequestError: If subjectName is missing
        """
        if "marks" not in data and "updates" in data:
            data = {**data, "marks": data["updates"]}
        validate_mark_entry_request(data)
        subject_name = (data.get("subjectName") or "").strip()
        if not subject_name:
            raise RequestError("Missing required fields or invalid marks format", "subjectName")
        return cls(
            subject_name=subject_name,
            term=data["term"].strip(),
            exam=data["exam"].strip(),
            year=int(data["year"]),
            marks=tuple(data["marks"]),
            class_name=(data.get("className") or "").strip() or None,
            allow_update=bool(data.get("allowUpdate", False)),
        )


class EntryAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ActionRecord:
    """What happened to one student's entry."""

    adm_no: str
    action: EntryAction
    score: Optional[int] = None
    grade: Optional[str] = None
    remark: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"admNo": self.adm_no, "action": self.action.value}
        if self.action is EntryAction.SKIPPED:
            data["reason"] = self.reason
        else:
            data.update(score=self.score, grade=self.grade, remark=self.remark)
        return data


@dataclass(frozen=True)
class EntryResult:
    """A successfully written assessment, as reported back to the caller."""

    adm_no: str
    name: str
    score: int
    grade: str
    remark: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admNo": self.adm_no,
            "name": self.name,
            "score": self.score,
            "grade": self.grade,
            "remark": self.remark,
        }


@dataclass(frozen=True)
class ItemError:
    """A per-student problem (violation details filled in for bad scores)."""

    adm_no: Optional[str]
    message: str
    paper_no: Optional[int] = None
    submitted: Any = None
    max: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"admNo": self.adm_no, "message": self.message}
        if self.paper_no is not None:
            data.update(paperNo=self.paper_no, submittedValue=self.submitted, max=self.max)
        return data


@dataclass(frozen=True)
class BatchOutcome:
    """
    Full accounting of a batch.

    Attributes:
        subject: Subject display name
        term, exam, year: Exam period
        results: Written assessments (inserted or updated)
        actions: One record per processed student
        errors: Per-student problems
        assessments: New SubjectAssessments for the caller to persist
        class_name: Class for entry batches
        code: Subject code
    """

    subject: str
    term: str
    exam: str
    year: int
    results: Tuple[EntryResult, ...] = ()
    actions: Tuple[ActionRecord, ...] = ()
    errors: Tuple[ItemError, ...] = ()
    assessments: Tuple[SubjectAssessment, ...] = ()
    class_name: Optional[str] = None
    code: str = ""
    message: str = "Mark entry completed"

    @property
    def count(self) -> int:
        return len(self.results)

    def actions_of(self, action: EntryAction) -> List[ActionRecord]:
        return [a for a in self.actions if a.action is action]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "className": self.class_name,
            "subject": self.subject,
            "code": self.code,
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "count": self.count,
            "results": [r.to_dict() for r in self.results],
            "actions": [a.to_dict() for a in self.actions],
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class _BatchCollector:
    """Mutable accumulator used while a batch runs."""

    results: List[EntryResult] = field(default_factory=list)
    actions: List[ActionRecord] = field(default_factory=list)
    errors: List[ItemError] = field(default_factory=list)
    assessments: List[SubjectAssessment] = field(default_factory=list)
    written: Set[AssessmentKey] = field(default_factory=set)

    def skip(self, adm_no: str, reason: str) -> None:
        self.actions.append(ActionRecord(adm_no, EntryAction.SKIPPED, reason=reason))

    def fail(self, adm_no: Optional[str], message: str) -> None:
        self.errors.append(ItemError(adm_no, message))

    def reject(self, adm_no: str, error: ValidationError) -> None:
        self.skip(adm_no, INVALID_SCORES_REASON)
        for violation in error.violations:
            self.errors.append(ItemError(
                adm_no,
                violation.message,
                paper_no=violation.paper_no,
                submitted=violation.submitted,
                max=violation.max,
            ))

    def write(self, student: Student, assessment: SubjectAssessment, action: EntryAction) -> None:
        score = round_to_int(assessment.computed_score)
        self.assessments.append(assessment)
        self.written.add(assessment.key)
        self.actions.append(ActionRecord(
            student.adm_no, action, score=score, grade=assessment.grade, remark=assessment.comment,
        ))
        self.results.append(EntryResult(
            student.adm_no, student.name, score, assessment.grade, assessment.comment,
        ))


# ─────────────────────────────────────────────────────────────────────────────
# Assessment construction
# ─────────────────────────────────────────────────────────────────────────────

def build_assessment(
    *,
    adm_no: str,
    subject_name: str,
    class_name: str,
    term: str,
    exam: str,
    year: int,
    scores: NormalizedScores,
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> SubjectAssessment:
    """
    Score and grade a normalized submission.

    Raises:
        ComputationError: If the computed score falls outside [0, 100]
    """
    computed = compute_subject_score(scores.papers, subject_name, config.weighting)
    band = config.grade_scale.resolve(computed)
    return SubjectAssessment(
        adm_no=adm_no,
        subject=subject_name,
        class_name=class_name,
        term=term,
        exam=exam,
        year=int(year),
        papers=scores.papers,
        total_score=scores.total_score,
        total_out_of=scores.total_out_of,
        percentage=scores.percentage,
        computed_score=computed,
        grade=band.label,
        remark=band.remark,
        comment=band.comment,
        absent_count=scores.absent_count,
    )


def ensure_writable(
    key: AssessmentKey, previous: Optional[SubjectAssessment], *, allow_update: bool
) -> None:
    """Raise ConflictError when an assessment exists and may not be overwritten."""
    if previous is not None and not allow_update:
        raise ConflictError(key)


def _index_existing(existing: Iterable[SubjectAssessment]) -> Dict[AssessmentKey, SubjectAssessment]:
    return {a.key: a for a in existing}


def _read_entry(entry: Any) -> Tuple[str, Optional[list]]:
    if not isinstance(entry, Mapping):
        return "", None
    papers = entry.get("papers")
    return normalise_adm_no(entry.get("admNo")), papers if isinstance(papers, list) else None


def _score_entry(
    collector: _BatchCollector,
    *,
    student: Student,
    setup: PaperSetup,
    papers: list,
    subject_name: str,
    class_name: str,
    request: MarkEntryRequest,
    config: GradingConfig,
) -> Optional[SubjectAssessment]:
    """Normalize and grade one entry; problems are recorded on the collector."""
    try:
        scores = normalize_scores(setup.papers, papers, adm_no=student.adm_no)
    except ValidationError as e:
        logger.debug("Skipping %s: %s", student.adm_no, e)
        collector.reject(student.adm_no, e)
        return None
    try:
        return build_assessment(
            adm_no=student.adm_no,
            subject_name=subject_name,
            class_name=class_name,
            term=request.term,
            exam=request.exam,
            year=request.year,
            scores=scores,
            config=config,
        )
    except ComputationError as e:
        logger.warning("Could not grade %s in %s: %s", student.adm_no, subject_name, e)
        collector.fail(student.adm_no, f"Error computing assessment: {e}")
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Batch operations
# ─────────────────────────────────────────────────────────────────────────────

def enter_marks(
    request: MarkEntryRequest,
    *,
    directory: SchoolDirectory,
    catalog: PaperConfigCatalog,
    existing: Iterable[SubjectAssessment] = (),
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> BatchOutcome:
    """
    Enter marks for one class and subject.

    The paper setup is looked up for the class's grade level. Students
    who already have an assessment for the period are skipped unless
    `request.allow_update` is set.

    Args:
        request: The batch
        directory: Students, classes and subjects
        catalog: Paper configurations
        existing: Assessments already stored
        config: Grading configuration

    Returns:
        BatchOutcome

    Raises:
        RequestError: If the request names no class
        NotFoundError: If the class, subject or paper configuration does
            not exist (the whole request fails)
    """
    if not request.class_name:
        raise RequestError("Missing required fields or invalid marks format", "className")
    school_class = directory.school_class(request.class_name)
    subject = directory.subject(request.subject_name)
    setup = catalog.get(subject.name, school_class.grade, request.term, request.exam, request.year)

    logger.info(
        "Entering %d mark(s) for %s %s, %s %s %s",
        len(request.marks), school_class.name, subject.name,
        request.term, request.exam, request.year,
    )

    stored = _index_existing(existing)
    collector = _BatchCollector()

    for entry in request.marks:
        adm_no, papers = _read_entry(entry)
        if not adm_no or papers is None:
            collector.fail(adm_no or None, "Missing papers or admNo")
            continue

        try:
            student = directory.student(adm_no)
        except NotFoundError as e:
            collector.fail(adm_no, str(e))
            continue

        key = AssessmentKey.of(student.adm_no, subject.name, request.term, request.exam, request.year)
        if key in collector.written:
            collector.skip(student.adm_no, DUPLICATE_ENTRY_REASON)
            continue
        previous = stored.get(key)

        assessment = _score_entry(
            collector,
            student=student,
            setup=setup,
            papers=papers,
            subject_name=subject.name,
            class_name=school_class.name,
            request=request,
            config=config,
        )
        if assessment is None:
            continue

        try:
            ensure_writable(key, previous, allow_update=request.allow_update)
        except ConflictError as e:
            collector.skip(student.adm_no, str(e))
            continue

        action = EntryAction.UPDATED if previous is not None else EntryAction.INSERTED
        stored[key] = assessment
        collector.write(student, assessment, action)

    outcome = BatchOutcome(
        subject=subject.name,
        term=request.term,
        exam=request.exam,
        year=request.year,
        results=tuple(collector.results),
        actions=tuple(collector.actions),
        errors=tuple(collector.errors),
        assessments=tuple(collector.assessments),
        class_name=school_class.name,
        code=subject.code,
    )
    logger.info(
        "Mark entry completed: %d written, %d skipped, %d error(s)",
        outcome.count, len(outcome.actions_of(EntryAction.SKIPPED)), len(outcome.errors),
    )
    return outcome


def update_marks(
    request: MarkEntryRequest,
    *,
    directory: SchoolDirectory,
    catalog: PaperConfigCatalog,
    existing: Iterable[SubjectAssessment],
    config: GradingConfig = DEFAULT_GRADING_CONFIG,
) -> BatchOutcome:
    """
    Re-score existing assessments for one subject.

    Unlike enter_marks, the paper setup is resolved per student (from the
    grade of the student's class), and students without an existing
    assessment are skipped rather than inserted.

    Raises:
        RequestError: If the request carries no entries
        NotFoundError: If the subject does not exist or no assessment has
            been recorded for the exam in that term/year
    """
    if not request.marks:
        raise RequestError("Missing required fields or invalid updates format", "updates")
    subject = directory.subject(request.subject_name)
    stored = _index_existing(existing)
    ensure_exam_recorded(stored.values(), term=request.term, exam=request.exam, year=request.year)

    logger.info(
        "Updating %d mark(s) for %s, %s %s %s",
        len(request.marks), subject.name, request.term, request.exam, request.year,
    )

    collector = _BatchCollector()

    for entry in request.marks:
        adm_no, papers = _read_entry(entry)
        if not adm_no or papers is None:
            collector.fail(adm_no or None, "Missing admNo or papers array")
            continue

        try:
            student = directory.student(adm_no)
        except NotFoundError as e:
            collector.fail(adm_no, str(e))
            continue

        key = AssessmentKey.of(student.adm_no, subject.name, request.term, request.exam, request.year)
        if key in collector.written:
            collector.skip(student.adm_no, DUPLICATE_ENTRY_REASON)
            continue
        previous = stored.get(key)
        if previous is None:
            collector.skip(student.adm_no, ASSESSMENT_NOT_FOUND_REASON)
            continue

        grade = directory.grade_of(student)
        setup = (
            catalog.find(subject.name, grade, request.term, request.exam, request.year)
            if grade is not None else None
        )
        if setup is None:
            collector.skip(student.adm_no, PAPER_CONFIG_NOT_FOUND_REASON)
            continue

        assessment = _score_entry(
            collector,
            student=student,
            setup=setup,
            papers=papers,
            subject_name=subject.name,
            class_name=previous.class_name,
            request=request,
            config=config,
        )
        if assessment is None:
            continue

        stored[key] = assessment
        collector.write(student, assessment, EntryAction.UPDATED)

    outcome = BatchOutcome(
        subject=subject.name,
        term=request.term,
        exam=request.exam,
        year=request.year,
        results=tuple(collector.results),
        actions=tuple(collector.actions),
        errors=tuple(collector.errors),
        assessments=tuple(collector.assessments),
        code=subject.code,
        message="Bulk mark update completed",
    )
    logger.info(
        "Mark update completed: %d updated, %d skipped, %d error(s)",
        outcome.count, len(outcome.actions_of(EntryAction.SKIPPED)), len(outcome.errors),
    )
    return outcome
