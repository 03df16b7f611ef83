"""
Module: core.errors

Purpose:
    Error taxonomy for the grading core. Per-item conditions (validation,
    conflicts, missing students) are caught by batch operations and turned
    into structured outcomes; everything else propagates to the caller as a
    request-level failure.

Key Classes:
    - GradingError: Base class
    - ValidationError: A submitted record failed score validation
    - NotFoundError: A referenced entity does not exist
    - ConflictError: An assessment exists and updating it is not allowed
    - ComputationError: Internal invariant broken (score outside [0, 100])
    - RequestError: Missing or malformed top-level request parameter
    - ConfigError: Invalid grading configuration

Used By:
    - grading.normalizer, grading.bands, grading.entry
    - reports.*
    - core.models.directory, core.models.papers
"""

from __future__ import annotations

from typing import Any, Sequence


class GradingError(Exception):
    """Base class for every error raised by the toolkit."""


class ValidationError(GradingError):
    """
    Raised when a submitted score record is invalid.

    Attributes:
        violations: Structured per-paper violations (see
            grading.normalizer.PaperViolation)
    """

    def __init__(self, message: str, violations: Sequence[Any] = ()):
        super().__init__(message)
        self.violations = tuple(violations)


class NotFoundError(GradingError):
    """
    Raised when a subject, class, student, paper configuration or exam
    cannot be resolved.

    Attributes:
        kind: Entity kind, e.g. "student" or "paper configuration"
        key: The lookup key that failed
    """

    def __init__(self, kind: str, key: Any, message: str | None = None):
        super().__init__(message or f"{kind.capitalize()} not found: {key!r}")
        self.kind = kind
        self.key = key


class ConflictError(GradingError):
    """Raised when an assessment already exists and updates are not allowed."""

    def __init__(self, key: Any, message: str = "Existing entry — update not allowed"):
        super().__init__(message)
        self.key = key


class ComputationError(GradingError):
    """Raised when a score that should be bounded to [0, 100] is not."""

    def __init__(self, message: str, score: Any = None):
        super().__init__(message)
        self.score = score


class RequestError(GradingError):
    """Raised when a required top-level parameter is missing or malformed."""

    def __init__(self, message: str, parameter: str = ""):
        super().__init__(message)
        self.parameter = parameter


class ConfigError(GradingError):
    """Raised when a grading configuration is inconsistent."""
    pass
