"""
Module: papers

Purpose:
    Paper configuration and validated paper scores. A subject is examined
    through one or more papers, each with its own maximum; the configured
    maxima for a subject/grade/term/exam/year are a PaperSetup, and all
    setups known to a school form a PaperConfigCatalog.

Key Classes:
    - PaperConfig: One configured paper (number + maximum)
    - PaperSetup: Configured papers for one subject/grade/term/exam/year
    - PaperConfigCatalog: Lookup over setups, exam ordering by sequence
    - PaperScore: One validated paper score (or the absence sentinel)

Dependencies:
    - dataclasses (std)
    - core.errors.NotFoundError
    - common.names, common.thresholds

Used By:
    - grading.normalizer: Builds PaperScores from raw entries
    - grading.weighting: Computes subject scores from PaperScores
    - grading.entry: Resolves setups during batch mark updates
    - common.exams: Derives exam order from setups
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, Iterable, Optional, Tuple

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.common.thresholds import SCORE_ENTRY_THRESHOLDS
from cbc_toolkit.core.errors import NotFoundError

ABSENT = SCORE_ENTRY_THRESHOLDS.absent_sentinel


@dataclass(frozen=True, slots=True)
class PaperConfig:
    """
    One configured paper.

    Attributes:
        paper_no: 1-based paper number
        total: Maximum score for the paper

    Invariants:
        - paper_no >= 1
        - total >= 0
    """

    paper_no: int
    total: float

    def __post_init__(self) -> None:
        if self.paper_no < 1:
            raise ValueError(f"paper_no must be >= 1: {self.paper_no}")
        if self.total < 0:
            raise ValueError(f"Paper {self.paper_no} total cannot be negative: {self.total}")

    def to_dict(self) -> Dict[str, Any]:
        return {"paperNo": self.paper_no, "total": self.total}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PaperConfig:
        return cls(paper_no=int(data["paperNo"]), total=float(data["total"]))


@dataclass(frozen=True, slots=True)
class PaperScore:
    """
    Validated score for one paper.

    Attributes:
        paper_no: Paper number
        score: Raw score, or ABSENT (-1) when the student sat out
        total: Maximum for the paper

    Invariants:
        - score == ABSENT or 0 <= score <= total
    """

    paper_no: int
    score: float
    total: float

    def __post_init__(self) -> None:
        if self.score != ABSENT and not (0 <= self.score <= self.total):
            raise ValueError(
                f"Paper {self.paper_no} score {self.score} outside [0, {self.total}]"
            )

    @property
    def is_absent(self) -> bool:
        return self.score == ABSENT

    @property
    def effective_score(self) -> float:
        """Score counted towards totals (absent papers count as zero)."""
        return 0.0 if self.is_absent else float(self.score)

    @property
    def percentage(self) -> float:
        """Effective score as a percentage of the paper maximum."""
        if self.total <= 0:
            return 0.0
        return self.effective_score / self.total * 100

    def to_dict(self) -> Dict[str, Any]:
        return {"paperNo": self.paper_no, "score": self.score, "total": self.total}


@dataclass(frozen=True)
class PaperSetup:
    """
    Paper configuration for one subject/grade/term/exam/year.

    Attributes:
        subject: Subject name
        grade: Numeric grade level the configuration applies to
        term: Term name, e.g. "Term 1"
        exam: Exam name, e.g. "Midterm"
        year: Academic year
        papers: Configured papers
        sequence: Position of this exam within the term (None = unordered)

    Invariants:
        - papers is non-empty
        - paper numbers are unique
    """

    subject: str
    grade: int
    term: str
    exam: str
    year: int
    papers: Tuple[PaperConfig, ...]
    sequence: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.papers:
            raise ValueError(f"Paper setup for {self.subject!r} has no papers")
        numbers = [p.paper_no for p in self.papers]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Duplicate paper numbers for {self.subject!r}: {numbers}")
        if self.sequence is not None and self.sequence < 1:
            raise ValueError(f"sequence must be >= 1: {self.sequence}")

    @property
    def total_map(self) -> Dict[int, float]:
        return {p.paper_no: p.total for p in self.papers}

    @property
    def out_of(self) -> float:
        return sum(p.total for p in self.papers)

    def matches(self, subject: str, grade: int, term: str, exam: str, year: int) -> bool:
        return (
            normalise_name(self.subject) == normalise_name(subject)
            and self.grade == grade
            and normalise_name(self.term) == normalise_name(term)
            and normalise_name(self.exam) == normalise_name(exam)
            and self.year == year
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "grade": self.grade,
            "term": self.term,
            "exam": self.exam,
            "year": self.year,
            "papers": [p.to_dict() for p in self.papers],
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PaperSetup:
        return cls(
            subject=data["subject"],
            grade=int(data["grade"]),
            term=data["term"],
            exam=str(data["exam"]).strip(),
            year=int(data["year"]),
            papers=tuple(PaperConfig.from_dict(p) for p in data["papers"]),
            sequence=data.get("sequence"),
        )


@dataclass(frozen=True)
class PaperConfigCatalog:
    """
    All paper setups known to a school.

    Example:
        >>> catalog = PaperConfigCatalog((setup,))
        >>> catalog.get("Biology", 10, "Term 1", "Opener", 2025).out_of
        200.0
    """

    setups: Tuple[PaperSetup, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.setups)

    def __len__(self) -> int:
        return len(self.setups)

    def find(
        self, subject: str, grade: int, term: str, exam: str, year: int
    ) -> Optional[PaperSetup]:
        for setup in self.setups:
            if setup.matches(subject, grade, term, exam, year):
                return setup
        return None

    def get(self, subject: str, grade: int, term: str, exam: str, year: int) -> PaperSetup:
        """
        Like find(), but raises NotFoundError when no setup matches.
        """
        setup = self.find(subject, grade, term, exam, year)
        if setup is None:
            raise NotFoundError(
                "paper configuration",
                (subject, grade, term, exam, year),
                "Paper configuration not found for this setup",
            )
        return setup

    @cached_property
    def _sequence_index(self) -> Dict[Tuple[str, int], Tuple[str, ...]]:
        grouped: Dict[Tuple[str, int], list] = {}
        for position, setup in enumerate(self.setups):
            key = (normalise_name(setup.term), setup.year)
            grouped.setdefault(key, []).append((setup, position))

        index: Dict[Tuple[str, int], Tuple[str, ...]] = {}
        for key, items in grouped.items():
            # Unsequenced setups keep insertion order after sequenced ones
            items.sort(key=lambda item: (
                item[0].sequence is None,
                item[0].sequence or 0,
                item[1],
            ))
            names: list[str] = []
            seen: set[str] = set()
            for setup, _ in items:
                if normalise_name(setup.exam) not in seen:
                    seen.add(normalise_name(setup.exam))
                    names.append(setup.exam)
            index[key] = tuple(names)
        return index

    def exam_sequence(self, term: str, year: int) -> Tuple[str, ...]:
        """Exam names configured for a term, ordered by sequence."""
        return self._sequence_index.get((normalise_name(term), year), ())

    @classmethod
    def from_setups(cls, setups: Iterable[PaperSetup]) -> PaperConfigCatalog:
        return cls(setups=tuple(setups))
