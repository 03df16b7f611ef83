"""
Module: grading.weighting

Purpose:
    Turns a student's validated paper scores in one subject into a single
    comparable 0-100 subject score. Most subjects use the plain percentage
    of total marks; some subjects weight their papers differently, which is
    configured as an explicit subject -> rule table rather than by matching
    on subject names inside the computation.

Key Classes:
    - RuleKind: percentage / weighted / mean_of_papers
    - WeightingRule: One rule with its paper layout
    - WeightingRules: Subject -> rule table with a default

Key Functions:
    - compute_subject_score(papers, subject_name, rules): The subject score

Dependencies:
    - core.utils.numeric (rounding, means)
    - common.names

Used By:
    - grading.entry: Computes scores for new assessments
    - grading.config: Loads rule tables from JSON
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from cbc_toolkit.common.names import normalise_name
from cbc_toolkit.common.thresholds import SCORE_ENTRY_THRESHOLDS
from cbc_toolkit.core.models.papers import PaperScore
from cbc_toolkit.core.utils.numeric import mean, round_half_up

logger = logging.getLogger(__name__)


class RuleKind(str, Enum):
    """How paper scores combine into a subject score."""

    PERCENTAGE = "percentage"
    WEIGHTED = "weighted"
    MEAN_OF_PAPERS = "mean_of_papers"


@dataclass(frozen=True)
class WeightingRule:
    """
    One weighting rule.

    Attributes:
        kind: Rule variant
        weights: (paper_no, weight) pairs for WEIGHTED rules; weights are
            applied to per-paper percentages and sum to 1
        paper_count: Expected number of papers for MEAN_OF_PAPERS rules

    A rule only applies when the submitted papers match its layout;
    otherwise the caller falls back to the default rule.
    """

    kind: RuleKind = RuleKind.PERCENTAGE
    weights: Tuple[Tuple[int, float], ...] = ()
    paper_count: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", RuleKind(self.kind))
        object.__setattr__(
            self, "weights", tuple(sorted((int(p), float(w)) for p, w in self.weights))
        )
        if self.kind is RuleKind.WEIGHTED:
            if not self.weights:
                raise ValueError("Weighted rule needs at least one paper weight")
            if any(w <= 0 for _, w in self.weights):
                raise ValueError(f"Paper weights must be positive: {dict(self.weights)}")
            if not math.isclose(sum(w for _, w in self.weights), 1.0, abs_tol=1e-9):
                raise ValueError(f"Paper weights must sum to 1: {dict(self.weights)}")
        if self.kind is RuleKind.MEAN_OF_PAPERS:
            if self.paper_count is None or self.paper_count < 1:
                raise ValueError(f"mean_of_papers rule needs paper_count >= 1: {self.paper_count}")

    # ─────────────────────────────────────────────────────────────────────────
    # Factories
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def percentage(cls) -> WeightingRule:
        return cls(RuleKind.PERCENTAGE)

    @classmethod
    def weighted(cls, weights: Mapping[int, float]) -> WeightingRule:
        return cls(RuleKind.WEIGHTED, weights=tuple(weights.items()))

    @classmethod
    def mean_of_papers(cls, paper_count: int) -> WeightingRule:
        return cls(RuleKind.MEAN_OF_PAPERS, paper_count=paper_count)

    # ─────────────────────────────────────────────────────────────────────────
    # Evaluation
    # ─────────────────────────────────────────────────────────────────────────

    def applies_to(self, papers: Sequence[PaperScore]) -> bool:
        """True when the submitted papers match this rule's layout."""
        if not papers:
            return False
        if self.kind is RuleKind.WEIGHTED:
            return sorted(p.paper_no for p in papers) == [p for p, _ in self.weights]
        if self.kind is RuleKind.MEAN_OF_PAPERS:
            return len(papers) == self.paper_count
        return True

    def score(self, papers: Sequence[PaperScore]) -> float:
        """Unrounded subject score; call applies_to() first."""
        if self.kind is RuleKind.WEIGHTED:
            by_number = {p.paper_no: p for p in papers}
            return sum(w * by_number[n].percentage for n, w in self.weights)
        if self.kind is RuleKind.MEAN_OF_PAPERS:
            return mean(p.percentage for p in papers) or 0.0
        out_of = sum(p.total for p in papers)
        if out_of <= 0:
            return 0.0
        return sum(p.effective_score for p in papers) / out_of * 100

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.weights:
            data["weights"] = {str(p): w for p, w in self.weights}
        if self.paper_count is not None:
            data["paperCount"] = self.paper_count
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WeightingRule:
        weights = data.get("weights") or {}
        return cls(
            kind=RuleKind(data["kind"]),
            weights=tuple((int(p), float(w)) for p, w in weights.items()),
            paper_count=data.get("paperCount"),
        )


def _subject_name(item: Any) -> str:
    if isinstance(item, str):
        return item
    for attr in ("name", "subject"):
        value = getattr(item, attr, None)
        if isinstance(value, str):
            return value
    raise TypeError(f"Cannot read a subject name from {item!r}")


@dataclass(frozen=True)
class WeightingRules:
    """
    Subject -> rule table.

    Subject names are normalised (case-folded, whitespace collapsed), so
    "Business  studies" and "Business Studies" share one rule.

    Example:
        >>> rules = WeightingRules({"Physics": WeightingRule.weighted({1: 0.5, 2: 0.5})})
        >>> rules.resolve("physics").kind
        <RuleKind.WEIGHTED: 'weighted'>
    """

    rules: Mapping[str, WeightingRule] = field(default_factory=dict)
    default: WeightingRule = field(default_factory=WeightingRule.percentage)

    def __post_init__(self) -> None:
        normalised: Dict[str, WeightingRule] = {}
        for name, rule in dict(self.rules).items():
            key = normalise_name(name)
            if not key:
                raise ValueError("Weighting rule subject name cannot be empty")
            if key in normalised:
                raise ValueError(f"Duplicate weighting rule for subject {name!r}")
            normalised[key] = rule
        object.__setattr__(self, "rules", normalised)

    def resolve(self, subject_name: str) -> WeightingRule:
        return self.rules.get(normalise_name(subject_name), self.default)

    def unknown_subjects(self, subjects: Iterable[Any]) -> Tuple[str, ...]:
        """
        Rule keys that name no known subject.

        Args:
            subjects: Subject names, Subjects, or PaperSetups (anything
                with a `name` or `subject` attribute)

        Returns:
            Normalised rule keys with no matching subject, sorted
        """
        known = {normalise_name(_subject_name(item)) for item in subjects}
        return tuple(sorted(key for key in self.rules if key not in known))

    def to_dict(self) -> Dict[str, Any]:
        return {name: rule.to_dict() for name, rule in self.rules.items()}

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], default: Optional[Mapping[str, Any]] = None
    ) -> WeightingRules:
        return cls(
            rules={name: WeightingRule.from_dict(rule) for name, rule in data.items()},
            default=WeightingRule.from_dict(default) if default else WeightingRule.percentage(),
        )


_SCIENCE = WeightingRule.weighted({1: 0.3, 2: 0.3, 3: 0.4})

DEFAULT_WEIGHTING_RULES = WeightingRules(
    {
        "Biology": _SCIENCE,
        "Chemistry": _SCIENCE,
        "Physics": _SCIENCE,
        "Business Studies": WeightingRule.mean_of_papers(2),
        "English": WeightingRule.mean_of_papers(3),
        "Kiswahili": WeightingRule.mean_of_papers(3),
    }
)


def compute_subject_score(
    papers: Sequence[PaperScore],
    subject_name: str,
    rules: WeightingRules = DEFAULT_WEIGHTING_RULES,
) -> float:
    """
    Compute the comparable subject score for one student.

    Args:
        papers: Validated paper scores
        subject_name: Subject the papers belong to
        rules: Subject -> rule table

    Returns:
        Score in [0, 100] rounded to 2 decimals

    Example:
        >>> papers = [PaperScore(1, 45, 50), PaperScore(2, -1, 50)]
        >>> compute_subject_score(papers, "Geography")
        45.0
    """
    rule = rules.resolve(subject_name)
    if not rule.applies_to(papers):
        if rule is not rules.default:
            logger.debug(
                "Paper layout %s does not match %s rule for %s; using default",
                [p.paper_no for p in papers], rule.kind.value, subject_name,
            )
        rule = rules.default
        if not rule.applies_to(papers):
            rule = WeightingRule.percentage()

    raw = rule.score(papers)
    bounded = min(max(raw, SCORE_ENTRY_THRESHOLDS.min_score), SCORE_ENTRY_THRESHOLDS.max_score)
    return round_half_up(bounded, SCORE_ENTRY_THRESHOLDS.score_places)
