"""
Grading Package

Score normalization, subject weighting, grade bands, aggregation, ranking
and batch mark entry.

Usage:
    from cbc_toolkit.grading import GradingConfig, enter_marks, MarkEntryRequest

    request = MarkEntryRequest.from_dict(payload)
    outcome = enter_marks(request, directory=directory, catalog=catalog)
"""

from .bands import DEFAULT_GRADE_SCALE, GradeBand, GradeScale, extract_level
from .config import DEFAULT_GRADING_CONFIG, GradingConfig, load_grading_config
from .entry import (
    BatchOutcome,
    EntryAction,
    MarkEntryRequest,
    build_assessment,
    enter_marks,
    update_marks,
)
from .normalizer import NormalizedScores, PaperViolation, normalize_scores
from .ranking import (
    AggregateEntry,
    PreviousMeanLookup,
    RankedList,
    Trend,
    competition_ranks,
    no_history,
    rank_entries,
)
from .weighting import (
    DEFAULT_WEIGHTING_RULES,
    RuleKind,
    WeightingRule,
    WeightingRules,
    compute_subject_score,
)

__all__ = [
    # bands
    "DEFAULT_GRADE_SCALE",
    "GradeBand",
    "GradeScale",
    "extract_level",
    # config
    "DEFAULT_GRADING_CONFIG",
    "GradingConfig",
    "load_grading_config",
    # entry
    "BatchOutcome",
    "EntryAction",
    "MarkEntryRequest",
    "build_assessment",
    "enter_marks",
    "update_marks",
    # normalizer
    "NormalizedScores",
    "PaperViolation",
    "normalize_scores",
    # ranking
    "AggregateEntry",
    "PreviousMeanLookup",
    "RankedList",
    "Trend",
    "competition_ranks",
    "no_history",
    "rank_entries",
    # weighting
    "DEFAULT_WEIGHTING_RULES",
    "RuleKind",
    "WeightingRule",
    "WeightingRules",
    "compute_subject_score",
]
