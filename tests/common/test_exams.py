"""
Unit Tests for the Exam Calendar

Tests for exam ordering, scope and previous-exam lookups.
"""

import pytest

from cbc_toolkit.common.exams import DEFAULT_EXAMS, ExamCalendar
from cbc_toolkit.core.errors import NotFoundError
from cbc_toolkit.core.models.papers import PaperConfig, PaperSetup


def _setup(exam, sequence=None, term="Term 1", year=2025):
    return PaperSetup("Mathematics", 10, term, exam, year, (PaperConfig(1, 100),), sequence=sequence)


class TestExamCalendar:
    """Tests for ExamCalendar."""

    def test_init_when_defaults_then_opener_midterm_endterm(self):
        """Default calendar runs Opener, Midterm, Endterm."""
        assert ExamCalendar().exams == DEFAULT_EXAMS == ("Opener", "Midterm", "Endterm")

    def test_init_when_empty_then_raises_error(self):
        """A calendar needs at least one exam."""
        with pytest.raises(ValueError, match="at least one exam"):
            ExamCalendar(())

    def test_init_when_duplicate_names_then_raises_error(self):
        """Names differing only in case count as duplicates."""
        with pytest.raises(ValueError, match="Duplicate exam names"):
            ExamCalendar(("Opener", "opener "))

    def test_scope_when_midterm_then_includes_opener(self):
        """Scope covers every exam up to and including the requested one."""
        assert ExamCalendar().scope("Midterm") == ("Opener", "Midterm")

    def test_scope_when_case_differs_then_still_resolves(self):
        """Exam names are matched case-insensitively."""
        assert ExamCalendar().scope("ENDTERM") == DEFAULT_EXAMS

    def test_previous_when_first_exam_then_none(self):
        """The first exam has no predecessor."""
        assert ExamCalendar().previous("Opener") is None

    def test_previous_when_endterm_then_midterm(self):
        """Previous exam is the one immediately before."""
        assert ExamCalendar().previous("Endterm") == "Midterm"

    def test_index_when_unknown_exam_then_raises_not_found(self):
        """Unknown exam names raise NotFoundError listing the valid ones."""
        with pytest.raises(NotFoundError, match="Valid exams: Opener, Midterm, Endterm"):
            ExamCalendar().index("Mock")

    def test_contains_when_known_and_unknown_then_reports_membership(self):
        """`in` checks membership without raising."""
        calendar = ExamCalendar()
        assert "midterm" in calendar
        assert "Mock" not in calendar
        assert 3 not in calendar

    def test_canonical_when_lowercase_then_returns_calendar_spelling(self):
        """canonical() returns the calendar's own spelling."""
        assert ExamCalendar().canonical("endterm") == "Endterm"


class TestExamCalendarFromSetups:
    """Tests for deriving the calendar from paper configuration."""

    def test_from_setups_when_sequenced_then_follows_sequence(self):
        """Sequenced setups are ordered by sequence, not by input order."""
        setups = [_setup("Endterm", 3), _setup("Opener", 1), _setup("Midterm", 2)]

        calendar = ExamCalendar.from_setups(setups, term="Term 1", year=2025)

        assert calendar.exams == ("Opener", "Midterm", "Endterm")

    def test_from_setups_when_unsequenced_then_follow_sequenced_in_input_order(self):
        """Setups without a sequence keep insertion order after sequenced ones."""
        setups = [_setup("CAT 2"), _setup("Opener", 1), _setup("CAT 1")]

        calendar = ExamCalendar.from_setups(setups, term="Term 1", year=2025)

        assert calendar.exams == ("Opener", "CAT 2", "CAT 1")

    def test_from_setups_when_other_term_then_default_calendar(self):
        """Nothing configured for the term falls back to the default order."""
        setups = [_setup("Mock", 1, term="Term 2")]

        calendar = ExamCalendar.from_setups(setups, term="Term 1", year=2025)

        assert calendar == ExamCalendar()
