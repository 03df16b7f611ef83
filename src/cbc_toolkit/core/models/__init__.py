"""
Core Models Package

Immutable, validated data models that serve as the single source of truth.

All models in this package are frozen dataclasses. This ensures:
1. No accidental mutation while reports are assembled
2. Derived data is always recomputed, never patched in place
3. Same inputs give the same reports
"""

from .papers import ABSENT, PaperConfig, PaperConfigCatalog, PaperScore, PaperSetup
from .assessments import AssessmentKey, SubjectAssessment
from .directory import SchoolClass, SchoolDirectory, Student, Subject

__all__ = [
    "ABSENT",
    "PaperConfig",
    "PaperConfigCatalog",
    "PaperScore",
    "PaperSetup",
    "AssessmentKey",
    "SubjectAssessment",
    "SchoolClass",
    "SchoolDirectory",
    "Student",
    "Subject",
]
