"""
Report scope resolution.

Reports run over a single class, every class of a grade level, or every
configured grade level. This module turns the loosely typed selectors that
arrive from callers ("10", "Grade 10", "all", "10N") into class lists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.core.errors import RequestError
from cbc_toolkit.core.models.directory import SchoolClass, SchoolDirectory

ALL_GRADES = "all"

_GRADE_PATTERN = re.compile(r"^(?:grade\s*)?(\d+)$", re.IGNORECASE)


def parse_grade_level(value: Union[int, str]) -> int:
    """
    Numeric grade level from "10", "Grade 10" or 10.

    Raises:
        RequestError: If no grade number can be read
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _GRADE_PATTERN.match(str(value).strip())
    if not match:
        raise RequestError(f"Invalid grade name '{value}'", parameter="grade")
    return int(match.group(1))


def is_grade_selector(value: Union[int, str]) -> bool:
    if isinstance(value, int) and not isinstance(value, bool):
        return True
    return bool(_GRADE_PATTERN.match(str(value).strip()))


def grade_label(grade: int) -> str:
    return f"Grade {grade}"


@dataclass(frozen=True)
class ReportScope:
    """
    Classes a report covers.

    Attributes:
        label: Human label, e.g. "10N" or "Grade 10"
        classes: Classes in scope, ordered by grade then name
        grades: Grade levels in scope
    """

    label: str
    classes: Tuple[SchoolClass, ...]

    @property
    def grades(self) -> Tuple[int, ...]:
        return tuple(sorted({c.grade for c in self.classes}))

    @property
    def class_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.classes)

    def contains_class(self, name: str) -> bool:
        key = normalise_name(name)
        return any(normalise_name(c.name) == key for c in self.classes)


def resolve_scope(
    directory: SchoolDirectory,
    *,
    class_name: Optional[str] = None,
    grade: Optional[Union[int, str]] = None,
) -> ReportScope:
    """
    Resolve a class or grade selector.

    Raises:
        RequestError: If neither selector is given or the grade is malformed
        NotFoundError: If the class or grade has no classes
    """
    if class_name:
        school_class = directory.school_class(class_name)
        return ReportScope(label=school_class.name, classes=(school_class,))
    if grade is not None and str(grade).strip():
        level = parse_grade_level(grade)
        return ReportScope(label=grade_label(level), classes=directory.classes_in_grade(level))
    raise RequestError("Provide either className or gradeName", parameter="className")


def resolve_grades(
    selector: Union[int, str], grade_levels: Iterable[int]
) -> Tuple[int, ...]:
    """Grade levels for "all" (every configured level) or a single grade."""
    if normalise_name(str(selector)) == ALL_GRADES:
        return tuple(grade_levels)
    return (parse_grade_level(selector),)
