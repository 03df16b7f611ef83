"""Common utilities shared across the toolkit."""

from __future__ import annotations

from .exams import DEFAULT_EXAMS, DEFAULT_TERMS, ExamCalendar
from .names import names_equal, normalise_adm_no, normalise_name
from .thresholds import AGGREGATION_THRESHOLDS, SCORE_ENTRY_THRESHOLDS

__all__ = [
    # exams
    "DEFAULT_EXAMS",
    "DEFAULT_TERMS",
    "ExamCalendar",
    # names
    "names_equal",
    "normalise_adm_no",
    "normalise_name",
    # thresholds
    "AGGREGATION_THRESHOLDS",
    "SCORE_ENTRY_THRESHOLDS",
]
