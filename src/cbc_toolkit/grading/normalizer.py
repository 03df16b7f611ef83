"""
Module: grading.normalizer

Purpose:
    Validates one student's raw per-paper submission against the configured
    paper maxima and produces bounded PaperScores with totals. Blank or
    missing values mean the student sat the paper out (absence sentinel -1).
    Any invalid value voids the whole record: nothing is half-saved.

Key Classes:
    - PaperViolation: Structured description of one bad value
    - NormalizedScores: Validated papers plus totals

Key Functions:
    - coerce_raw_score(value): Raw form value -> float / ABSENT / invalid
    - normalize_scores(configured, submitted, adm_no): The normalizer

Dependencies:
    - core.models.papers
    - core.errors.ValidationError
    - core.utils.numeric

Used By:
    - grading.entry: Every entered or updated record goes through here
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple, Union

from cbc_toolkit.common.thresholds import SCORE_ENTRY_THRESHOLDS
from cbc_toolkit.core.errors import ValidationError
from cbc_toolkit.core.models.papers import ABSENT, PaperConfig, PaperScore
from cbc_toolkit.core.utils.numeric import format_fixed

logger = logging.getLogger(__name__)

_INVALID = object()


@dataclass(frozen=True, slots=True)
class PaperViolation:
    """One rejected paper value."""

    adm_no: str
    paper_no: int
    submitted: Any
    max: float
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admNo": self.adm_no,
            "paperNo": self.paper_no,
            "submittedValue": self.submitted,
            "max": self.max,
            "message": self.message,
        }


@dataclass(frozen=True)
class NormalizedScores:
    """
    Validated submission for one student and subject.

    Attributes:
        papers: One PaperScore per configured paper, in configuration order
        total_score: Sum of non-absent scores
        total_out_of: Sum of all configured maxima (absent papers included)
        absent_count: Number of absent papers
        percentage: total_score / total_out_of * 100 as a 2dp string
    """

    papers: Tuple[PaperScore, ...]
    total_score: float
    total_out_of: float
    absent_count: int
    percentage: str

    @property
    def all_absent(self) -> bool:
        return bool(self.papers) and self.absent_count == len(self.papers)


def coerce_raw_score(value: Any) -> Union[float, object]:
    """
    Interpret a raw form value.

    Returns:
        float(value), ABSENT for blank/missing values, or the module's
        invalid marker for anything that is not a finite number

    Example:
        >>> coerce_raw_score(" 45 ")
        45.0
        >>> coerce_raw_score("")
        -1
    """
    if value is None:
        return ABSENT
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ABSENT
        try:
            number = float(text)
        except ValueError:
            return _INVALID
    elif isinstance(value, numbers.Real):
        number = float(value)
    else:
        return _INVALID
    if not math.isfinite(number):
        return _INVALID
    return ABSENT if number == ABSENT else number


def _first_submissions(submitted: Iterable[Mapping[str, Any]]) -> Dict[int, Any]:
    """paperNo -> raw value, first occurrence wins, unparseable paper numbers dropped."""
    values: Dict[int, Any] = {}
    for item in submitted:
        if not isinstance(item, Mapping):
            continue
        try:
            paper_no = int(item.get("paperNo"))
        except (TypeError, ValueError):
            continue
        values.setdefault(paper_no, item.get("score"))
    return values


def normalize_scores(
    configured: Sequence[PaperConfig],
    submitted: Iterable[Mapping[str, Any]],
    adm_no: str = "",
) -> NormalizedScores:
    """
    Validate and total a raw submission.

    Args:
        configured: Configured papers (paper number + maximum)
        submitted: Raw entries `{"paperNo": n, "score": value}`
        adm_no: Student the submission belongs to (for violation reports)

    Returns:
        NormalizedScores

    Raises:
        ValidationError: If any paper value is invalid; carries every
            PaperViolation found, not just the first

    Example:
        >>> result = normalize_scores(
        ...     [PaperConfig(1, 50), PaperConfig(2, 50)],
        ...     [{"paperNo": 1, "score": 45}, {"paperNo": 2, "score": ""}],
        ... )
        >>> result.total_score, result.total_out_of, result.percentage
        (45.0, 100.0, '45.00')
    """
    raw_by_paper = _first_submissions(submitted)
    papers = []
    violations = []

    for config in configured:
        raw = raw_by_paper.get(config.paper_no)
        value = coerce_raw_score(raw)
        if value is _INVALID:
            violations.append(PaperViolation(
                adm_no, config.paper_no, raw, config.total,
                f"Paper {config.paper_no} score must be a number or blank",
            ))
            continue
        if value != ABSENT and not (0 <= value <= config.total):
            violations.append(PaperViolation(
                adm_no, config.paper_no, raw, config.total,
                f"Paper {config.paper_no} score must be between 0 and {config.total:g}",
            ))
            continue
        papers.append(PaperScore(config.paper_no, value, float(config.total)))

    if violations:
        logger.debug("Rejected submission for %s: %d invalid paper(s)", adm_no, len(violations))
        raise ValidationError(
            f"Invalid or missing scores for {adm_no or 'submission'}", violations
        )

    total_score = float(sum(p.effective_score for p in papers))
    total_out_of = float(sum(p.total for p in papers))
    percentage = total_score / total_out_of * 100 if total_out_of > 0 else 0.0
    return NormalizedScores(
        papers=tuple(papers),
        total_score=total_score,
        total_out_of=total_out_of,
        absent_count=sum(1 for p in papers if p.is_absent),
        percentage=format_fixed(percentage, SCORE_ENTRY_THRESHOLDS.percentage_places),
    )


def normalize_paper_scores(
    configured: Sequence[PaperConfig],
    papers: Iterable[PaperScore],
    adm_no: str = "",
) -> NormalizedScores:
    """Re-run normalization over already validated PaperScores."""
    return normalize_scores(
        configured,
        ({"paperNo": p.paper_no, "score": p.score} for p in papers),
        adm_no=adm_no,
    )


def configured_from_scores(papers: Iterable[PaperScore]) -> Tuple[PaperConfig, ...]:
    """PaperConfigs implied by stored paper scores."""
    return tuple(PaperConfig(p.paper_no, p.total) for p in papers)


__all__ = [
    "NormalizedScores",
    "PaperViolation",
    "coerce_raw_score",
    "configured_from_scores",
    "normalize_paper_scores",
    "normalize_scores",
]
