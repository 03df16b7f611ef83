"""
Module: common.exams

Purpose:
    Ordered exam calendar. Exams within a term run in a fixed order
    (Opener < Midterm < Endterm by default); reports for a given exam
    average every exam up to and including it (the exam scope), and
    period-over-period comparisons look at the exam immediately before.

Key Classes:
    - ExamCalendar: Ordered exam names with scope/previous lookups

Key Functions:
    - ExamCalendar.scope(exam): Exams included when reporting on `exam`
    - ExamCalendar.previous(exam): Exam immediately before `exam`
    - ExamCalendar.from_setups(setups): Order derived from paper configuration

Dependencies:
    - core.errors.NotFoundError
    - core.models.papers.PaperSetup (TYPE_CHECKING only)

Used By:
    - grading.config.GradingConfig
    - reports.report_cards, reports.rankings
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Tuple

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.core.errors import NotFoundError

if TYPE_CHECKING:
    from cbc_toolkit.core.models.papers import PaperSetup

DEFAULT_EXAMS: Tuple[str, ...] = ("Opener", "Midterm", "Endterm")
DEFAULT_TERMS: Tuple[str, ...] = ("Term 1", "Term 2", "Term 3")


@dataclass(frozen=True)
class ExamCalendar:
    """
    Ordered exam names for a term.

    Attributes:
        exams: Exam names, earliest first

    Invariants:
        - at least one exam
        - names are unique after normalisation

    Example:
        >>> calendar = ExamCalendar()
        >>> calendar.scope("Midterm")
        ('Opener', 'Midterm')
        >>> calendar.previous("Opener") is None
        True
    """

    exams: Tuple[str, ...] = DEFAULT_EXAMS

    def __post_init__(self) -> None:
        object.__setattr__(self, "exams", tuple(str(e).strip() for e in self.exams))
        if not self.exams:
            raise ValueError("ExamCalendar needs at least one exam")
        keys = [normalise_name(e) for e in self.exams]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate exam names: {list(self.exams)}")

    def __contains__(self, exam: object) -> bool:
        return isinstance(exam, str) and self._find(exam) is not None

    def _find(self, exam: str) -> Optional[int]:
        key = normalise_name(exam)
        for index, name in enumerate(self.exams):
            if normalise_name(name) == key:
                return index
        return None

    def index(self, exam: str) -> int:
        """0-based position of `exam`; raises NotFoundError if unknown."""
        position = self._find(exam)
        if position is None:
            raise NotFoundError(
                "exam",
                exam,
                f"Exam '{exam}' not recognized. Valid exams: {', '.join(self.exams)}",
            )
        return position

    def canonical(self, exam: str) -> str:
        """Calendar spelling of `exam`."""
        return self.exams[self.index(exam)]

    def scope(self, exam: str) -> Tuple[str, ...]:
        """Every exam up to and including `exam`."""
        return self.exams[: self.index(exam) + 1]

    def previous(self, exam: str) -> Optional[str]:
        """Exam immediately before `exam`, or None for the first exam."""
        position = self.index(exam)
        return self.exams[position - 1] if position > 0 else None

    @classmethod
    def from_setups(
        cls,
        setups: Iterable[PaperSetup],
        *,
        term: str,
        year: int,
    ) -> ExamCalendar:
        """
        Derive the exam order for a term from paper configuration.

        Setups with a `sequence` come first in sequence order; the rest keep
        the order they were given in. Falls back to the default calendar
        when nothing is configured for the term.
        """
        from cbc_toolkit.core.models.papers import PaperConfigCatalog

        ordered = PaperConfigCatalog.from_setups(setups).exam_sequence(term, year)
        return cls(ordered) if ordered else cls()
