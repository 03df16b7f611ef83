"""
Module: grading.bands

Purpose:
    Maps a 0-100 subject or mean score to a competency grade band: label,
    remark, auto-comment and coarse level (1 or 2 within the band family).

Key Classes:
    - GradeBand: One band of the scale
    - GradeScale: Ordered bands with resolve()

Key Functions:
    - extract_level(label): Trailing 1/2 of a band label

Dependencies:
    - core.errors.ComputationError
    - core.utils.numeric

Used By:
    - grading.entry: Grades new assessments
    - grading.ranking: Attaches grade labels to aggregate entries
    - reports.*: Grade columns, distributions, report cards
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from cbc_toolkit.core.errors import ComputationError
from cbc_toolkit.core.utils.numeric import is_real_number

_LEVEL_PATTERN = re.compile(r"\b([12])\s*$")


def extract_level(label: Optional[str]) -> Optional[int]:
    """
    Coarse level encoded as the trailing digit of a band label.

    Example:
        >>> extract_level("Meeting Expectations 2")
        2
        >>> extract_level("Pass") is None
        True
    """
    if not label:
        return None
    match = _LEVEL_PATTERN.search(label)
    return int(match.group(1)) if match else None


@dataclass(frozen=True, slots=True)
class GradeBand:
    """
    One grade band.

    Attributes:
        label: Band label, e.g. "Exceeding Expectations 2"
        lower_bound: Lowest score (inclusive) that falls in this band
        remark: Short descriptor printed next to the grade
        comment: Auto-generated teacher comment (defaults to remark + ".")
    """

    label: str
    lower_bound: float
    remark: str
    comment: str = ""

    def __post_init__(self) -> None:
        if not self.label:
            raise ValueError("Grade band label cannot be empty")
        if not (0 <= self.lower_bound <= 100):
            raise ValueError(f"Lower bound of {self.label!r} outside [0, 100]: {self.lower_bound}")
        if not self.comment:
            object.__setattr__(self, "comment", f"{self.remark}.")

    @property
    def level(self) -> Optional[int]:
        return extract_level(self.label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "lowerBound": self.lower_bound,
            "remark": self.remark,
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GradeBand:
        return cls(
            label=data["label"],
            lower_bound=float(data["lowerBound"]),
            remark=data.get("remark", ""),
            comment=data.get("comment", ""),
        )


@dataclass(frozen=True)
class GradeScale:
    """
    Ordered, finite grade scale.

    Bands are held highest first; a score belongs to the first band whose
    lower bound it meets, so a score sitting exactly on a boundary takes
    the higher band.

    Invariants:
        - lower bounds strictly descending
        - lowest band starts at 0 (every score in [0, 100] resolves)
        - labels unique

    Example:
        >>> DEFAULT_GRADE_SCALE.resolve(80).label
        'Exceeding Expectations 1'
        >>> DEFAULT_GRADE_SCALE.resolve(79.99).label
        'Meeting Expectations 2'
    """

    bands: Tuple[GradeBand, ...]

    def __post_init__(self) -> None:
        bands = tuple(self.bands)
        object.__setattr__(self, "bands", bands)
        if not bands:
            raise ValueError("Grade scale needs at least one band")
        bounds = [b.lower_bound for b in bands]
        if any(later >= earlier for earlier, later in zip(bounds, bounds[1:])):
            raise ValueError(f"Grade band lower bounds must be strictly descending: {bounds}")
        if bounds[-1] != 0:
            raise ValueError(f"Lowest grade band must start at 0, got {bounds[-1]}")
        labels = [b.label for b in bands]
        if len(labels) != len(set(labels)):
            raise ValueError(f"Duplicate grade band labels: {labels}")

    def resolve(self, score: Any) -> GradeBand:
        """
        Band for a 0-100 score.

        Raises:
            ComputationError: If score is not a real number or lies outside [0, 100]
        """
        if not is_real_number(score):
            raise ComputationError(f"Cannot grade non-numeric score: {score!r}", score=score)
        if not (0 <= score <= 100):
            raise ComputationError(f"Score outside [0, 100]: {score}", score=score)
        for band in self.bands:
            if score >= band.lower_bound:
                return band
        # Unreachable: the lowest band starts at 0
        raise ComputationError(f"No grade band for score {score}", score=score)

    def resolve_optional(self, score: Optional[float]) -> Optional[GradeBand]:
        """resolve(), passing None through."""
        return None if score is None else self.resolve(score)

    def label_for(self, score: Optional[float]) -> Optional[str]:
        band = self.resolve_optional(score)
        return band.label if band else None

    @property
    def labels(self) -> Tuple[str, ...]:
        """Band labels, highest first."""
        return tuple(b.label for b in self.bands)

    def find(self, label: str) -> Optional[GradeBand]:
        for band in self.bands:
            if band.label == label:
                return band
        return None

    def ordinal(self, label: str) -> int:
        """Position of a label, 0 = highest band."""
        for position, band in enumerate(self.bands):
            if band.label == label:
                return position
        raise ValueError(f"Unknown grade band: {label!r}")

    def to_list(self) -> list:
        return [b.to_dict() for b in self.bands]

    @classmethod
    def from_bands(cls, bands: Iterable[GradeBand]) -> GradeScale:
        """Build a scale from bands in any order."""
        return cls(tuple(sorted(bands, key=lambda b: b.lower_bound, reverse=True)))


DEFAULT_GRADE_SCALE = GradeScale(
    (
        GradeBand("Exceeding Expectations 2", 90, "Consistently applies skills and understands deeply"),
        GradeBand("Exceeding Expectations 1", 80, "Often goes beyond grade-level expectations"),
        GradeBand("Meeting Expectations 2", 70, "Demonstrates solid understanding and application"),
        GradeBand("Meeting Expectations 1", 60, "Meets grade-level outcomes with minor support"),
        GradeBand("Approaching Expectations 2", 50, "Beginning to meet expectations but needs guidance"),
        GradeBand("Approaching Expectations 1", 40, "Showing progress but requires regular support"),
        GradeBand("Below Expectations 2", 30, "Needs fundamental support to develop competencies"),
        GradeBand("Below Expectations 1", 0, "Limited evidence of required skills or understanding"),
    )
)
