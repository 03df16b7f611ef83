"""
Module: directory

Purpose:
    Read-only view of the school's students, classes and subjects, as
    handed over by the external store. Provides the grouping lookups the
    aggregation and report modules need.

Key Classes:
    - Subject: Learning area with its group and pathway
    - SchoolClass: Class with an explicit numeric grade level
    - Student: Student with class, pathway and selected subjects
    - SchoolDirectory: Indexed lookups raising NotFoundError

Dependencies:
    - dataclasses (std)
    - core.errors.NotFoundError
    - common.names

Used By:
    - grading.entry, grading.aggregation
    - reports.*
    - core.utils.serialization
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cbc_toolkit.common.names import normalise_adm_no, normalise_name
from cbc_toolkit.core.errors import NotFoundError

COMPULSORY_GROUP = "Compulsory"


@dataclass(frozen=True)
class Subject:
    """
    A learning area.

    Attributes:
        name: Display name, e.g. "Biology"
        code: Short unique code, e.g. "BIO"
        short_name: Column label used on broadsheets
        group: Subject group, e.g. "Compulsory", "STEM"
        pathway: Pathway the subject belongs to (None for compulsory subjects)
    """

    name: str
    code: str = ""
    short_name: str = ""
    group: str = "OTHER"
    pathway: Optional[str] = None

    @property
    def is_compulsory(self) -> bool:
        return normalise_name(self.group) == normalise_name(COMPULSORY_GROUP)

    @property
    def label(self) -> str:
        return self.short_name or self.code or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "shortName": self.short_name,
            "group": self.group,
            "pathway": self.pathway,
        }


@dataclass(frozen=True)
class SchoolClass:
    """
    A class (stream) within a grade level.

    Attributes:
        name: Class name, e.g. "10N"
        grade: Numeric grade level (explicit, never parsed from the name)
        stream: Stream label, e.g. "North"
    """

    name: str
    grade: int
    stream: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "grade": self.grade, "stream": self.stream}


@dataclass(frozen=True)
class Student:
    """
    A student as seen by the grading core.

    Attributes:
        adm_no: Admission number (stored upper-case)
        name: Full name
        class_name: Current class
        pathway: Pathway name, if assigned
        selected_subjects: Names of the subjects the student takes
        status: "active", "graduated" or "archived"
    """

    adm_no: str
    name: str
    class_name: str
    pathway: Optional[str] = None
    selected_subjects: Tuple[str, ...] = ()
    status: str = "active"

    def __post_init__(self) -> None:
        object.__setattr__(self, "adm_no", normalise_adm_no(self.adm_no))
        object.__setattr__(self, "selected_subjects", tuple(self.selected_subjects))

    @property
    def is_active(self) -> bool:
        return normalise_name(self.status) == "active"

    def takes(self, subject_name: str) -> bool:
        key = normalise_name(subject_name)
        return any(normalise_name(s) == key for s in self.selected_subjects)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admNo": self.adm_no,
            "name": self.name,
            "className": self.class_name,
            "pathway": self.pathway,
            "selectedSubjects": list(self.selected_subjects),
            "status": self.status,
        }


@dataclass(frozen=True)
class SchoolDirectory:
    """
    Indexed, read-only directory of students, classes and subjects.

    Lookups by name are case-insensitive and whitespace-tolerant. Missing
    entities raise NotFoundError.
    """

    students: Tuple[Student, ...] = field(default_factory=tuple)
    classes: Tuple[SchoolClass, ...] = field(default_factory=tuple)
    subjects: Tuple[Subject, ...] = field(default_factory=tuple)

    # ─────────────────────────────────────────────────────────────────────────
    # Indexes
    # ─────────────────────────────────────────────────────────────────────────

    @cached_property
    def _students_by_adm(self) -> Dict[str, Student]:
        return {s.adm_no: s for s in self.students}

    @cached_property
    def _classes_by_name(self) -> Dict[str, SchoolClass]:
        return {normalise_name(c.name): c for c in self.classes}

    @cached_property
    def _subjects_by_name(self) -> Dict[str, Subject]:
        return {normalise_name(s.name): s for s in self.subjects}

    # ─────────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────────

    def find_student(self, adm_no: str) -> Optional[Student]:
        return self._students_by_adm.get(normalise_adm_no(adm_no))

    def student(self, adm_no: str) -> Student:
        found = self.find_student(adm_no)
        if found is None:
            raise NotFoundError("student", adm_no, "Student not found")
        return found

    def find_class(self, name: Optional[str]) -> Optional[SchoolClass]:
        return self._classes_by_name.get(normalise_name(name))

    def school_class(self, name: str) -> SchoolClass:
        found = self.find_class(name)
        if found is None:
            raise NotFoundError("class", name, f"Class '{name}' not found")
        return found

    def find_subject(self, name: Optional[str]) -> Optional[Subject]:
        return self._subjects_by_name.get(normalise_name(name))

    def subject(self, name: str) -> Subject:
        found = self.find_subject(name)
        if found is None:
            raise NotFoundError("subject", name, "Subject not found")
        return found

    def grade_of(self, student: Student) -> Optional[int]:
        """Grade level of the student's class, if the class is known."""
        found = self.find_class(student.class_name)
        return found.grade if found else None

    def classes_in_grades(self, grades: Iterable[int]) -> Tuple[SchoolClass, ...]:
        wanted = set(grades)
        return tuple(
            sorted((c for c in self.classes if c.grade in wanted), key=lambda c: (c.grade, c.name))
        )

    def classes_in_grade(self, grade: int) -> Tuple[SchoolClass, ...]:
        """Classes of one grade level; raises NotFoundError when there are none."""
        found = self.classes_in_grades([grade])
        if not found:
            raise NotFoundError("grade", grade, f"No classes found for grade '{grade}'")
        return found

    def students_in_classes(self, class_names: Iterable[str]) -> Tuple[Student, ...]:
        """Students of the given classes, ordered by admission number."""
        wanted = {normalise_name(n) for n in class_names}
        return tuple(
            sorted(
                (s for s in self.students if normalise_name(s.class_name) in wanted),
                key=lambda s: s.adm_no,
            )
        )

    def subjects_of(self, student: Student) -> List[Subject]:
        """Directory subjects the student takes (unknown names skipped)."""
        found = []
        for name in student.selected_subjects:
            subject = self.find_subject(name)
            if subject is not None:
                found.append(subject)
        return found

    def pathway_names(self) -> Tuple[str, ...]:
        """Distinct non-compulsory pathway names, sorted."""
        names: Dict[str, str] = {}
        for subject in self.subjects:
            if subject.pathway and normalise_name(subject.pathway) != normalise_name(COMPULSORY_GROUP):
                names.setdefault(normalise_name(subject.pathway), subject.pathway)
        return tuple(sorted(names.values(), key=normalise_name))
