"""
CBC Toolkit Core Package

Shared data models, the error taxonomy, inbound-payload schemas and
serialization helpers used by the grading and report modules.
"""

from .errors import (
    ComputationError,
    ConfigError,
    ConflictError,
    GradingError,
    NotFoundError,
    RequestError,
    ValidationError,
)
from .models import (
    PaperConfig,
    PaperConfigCatalog,
    PaperScore,
    PaperSetup,
    SchoolClass,
    SchoolDirectory,
    Student,
    Subject,
    SubjectAssessment,
)

__all__ = [
    "ComputationError",
    "ConfigError",
    "ConflictError",
    "GradingError",
    "NotFoundError",
    "RequestError",
    "ValidationError",
    "PaperConfig",
    "PaperConfigCatalog",
    "PaperScore",
    "PaperSetup",
    "SchoolClass",
    "SchoolDirectory",
    "Student",
    "Subject",
    "SubjectAssessment",
]
