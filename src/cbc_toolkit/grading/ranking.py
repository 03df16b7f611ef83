"""
Module: grading.ranking

Purpose:
    Stable competition ranking of aggregate entries (students, classes,
    grades, subjects) with period-over-period deviation.

    - Sorted by mean, descending by default; entries without a mean go
      last in either direction and get no rank.
    - Equal means share a rank and the next rank skips (1, 1, 3).
    - Ties are ordered by key so the same input always gives the same list.
    - Deviation = mean - previous mean, where the previous mean comes from a
      pluggable lookup (key -> mean or None).

Key Classes:
    - Trend: improved / declined / unchanged
    - AggregateEntry: One ranked row
    - RankedList: Ordered, ranked rows

Key Functions:
    - competition_ranks(means): Competition ranks via scipy rankdata
    - rank_entries(entries, previous, scale): The ranker
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import rankdata

from cbc_toolkit.common.thresholds import AGGREGATION_THRESHOLDS
from cbc_toolkit.core.utils.numeric import round_half_up

from .bands import GradeScale

logger = logging.getLogger(__name__)

PreviousMeanLookup = Callable[[str], Optional[float]]


class Trend(str, Enum):
    """Direction of change against the previous period."""

    IMPROVED = "improved"
    DECLINED = "declined"
    UNCHANGED = "unchanged"


def classify_deviation(deviation: Optional[float]) -> Optional[Trend]:
    """Trend for a deviation; None when there is nothing to compare against."""
    if deviation is None:
        return None
    if deviation > 0:
        return Trend.IMPROVED
    if deviation < 0:
        return Trend.DECLINED
    return Trend.UNCHANGED


def no_history(key: str) -> Optional[float]:
    """PreviousMeanLookup for when no prior period is available."""
    return None


def lookup_from_mapping(means: Mapping[str, Optional[float]]) -> PreviousMeanLookup:
    """PreviousMeanLookup backed by a key -> mean mapping."""
    frozen = dict(means)
    return frozen.get


def deviation_between(mean: Optional[float], previous: Optional[float]) -> Optional[float]:
    if mean is None or previous is None:
        return None
    return round_half_up(mean - previous, AGGREGATION_THRESHOLDS.deviation_places)


@dataclass(frozen=True)
class AggregateEntry:
    """
    One row of a ranking.

    Attributes:
        key: Identity of the ranked thing (admNo, class name, "Grade 10", ...)
        mean: Mean score, or None when nothing qualifies
        entry_count: Number of contributors (students, classes, scores)
        grade_label: Grade band label of the mean
        previous_mean: Mean in the previous period
        deviation: mean - previous_mean
        rank: Competition rank (None when mean is None)
        attributes: Extra report columns (class, grade, group, ...)
    """

    key: str
    mean: Optional[float]
    entry_count: int = 0
    grade_label: Optional[str] = None
    previous_mean: Optional[float] = None
    deviation: Optional[float] = None
    rank: Optional[int] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def trend(self) -> Optional[Trend]:
        return classify_deviation(self.deviation)

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        trend = self.trend
        return {
            "position": self.rank,
            "key": self.key,
            "entry": self.entry_count,
            "mean": self.mean,
            "gradeLabel": self.grade_label,
            "previousMean": self.previous_mean,
            "deviation": self.deviation,
            "trend": trend.value if trend else None,
            **self.attributes,
        }


@dataclass(frozen=True)
class RankedList:
    """Ranked entries, best first, unranked entries last."""

    entries: Tuple[AggregateEntry, ...] = ()

    def __iter__(self) -> Iterator[AggregateEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> AggregateEntry:
        return self.entries[index]

    def find(self, key: str) -> Optional[AggregateEntry]:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def rank_of(self, key: str) -> Optional[int]:
        entry = self.find(key)
        return entry.rank if entry else None

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(e.key for e in self.entries)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.entries]


def competition_ranks(
    means: Sequence[Optional[float]], *, descending: bool = True
) -> List[Optional[int]]:
    """
    Competition ranks ("min" method) for means in any order.

    Missing means get no rank and do not push anyone down.

    Example:
        >>> competition_ranks([80, 65, 80, None])
        [1, 3, 1, None]
    """
    ranks: List[Optional[int]] = [None] * len(means)
    scored = [i for i, value in enumerate(means) if value is not None]
    if not scored:
        return ranks
    values = np.asarray([means[i] for i in scored], dtype=float)
    positions = rankdata(-values if descending else values, method="min")
    for i, position in zip(scored, positions):
        ranks[i] = int(position)
    return ranks


def rank_entries(
    entries: Iterable[AggregateEntry],
    *,
    previous: PreviousMeanLookup = no_history,
    scale: Optional[GradeScale] = None,
    descending: bool = True,
) -> RankedList:
    """
    Rank aggregate entries.

    Args:
        entries: Entries to rank (any order)
        previous: Lookup for the previous period's mean per key; only
            consulted for entries that carry no previous_mean already
        scale: When given, attaches the grade label of each mean
        descending: Highest mean first (default)

    Returns:
        RankedList with rank, deviation and grade label filled in
    """
    items = list(entries)
    scored = [e for e in items if e.mean is not None]
    unscored = [e for e in items if e.mean is None]

    sign = -1 if descending else 1
    scored.sort(key=lambda e: (sign * e.mean, e.key))
    unscored.sort(key=lambda e: e.key)
    ordered = scored + unscored

    ranks = competition_ranks([e.mean for e in ordered], descending=descending)
    ranked = []
    for entry, rank in zip(ordered, ranks):
        previous_mean = entry.previous_mean
        if previous_mean is None:
            previous_mean = previous(entry.key)
        grade_label = entry.grade_label
        if scale is not None and grade_label is None:
            grade_label = scale.label_for(entry.mean)
        ranked.append(replace(
            entry,
            rank=rank,
            previous_mean=previous_mean,
            deviation=deviation_between(entry.mean, previous_mean),
            grade_label=grade_label,
        ))

    logger.debug("Ranked %d entries (%d without a mean)", len(ranked), len(unscored))
    return RankedList(tuple(ranked))
