"""Centralized threshold and magic number configuration.

This module contains the numeric policies used throughout score entry,
aggregation and ranking. Having these in one place keeps rounding and
reliability rules consistent between report types.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ScoreEntryThresholds:
    """Thresholds for raw score entry and normalization."""

    absent_sentinel: int = -1  # Stored paper score meaning "sat out / absent"
    percentage_places: int = 2  # Decimal places of the stored percentage string
    score_places: int = 2  # Decimal places of the stored computed score
    min_score: float = 0.0  # Lowest valid computed score
    max_score: float = 100.0  # Highest valid computed score


@dataclass
class AggregationThresholds:
    """Thresholds for grouping and ranking."""

    min_subjects_for_aggregate: int = 5  # Students below this are left out of group means
    mean_places: int = 2  # Decimal places for every reported mean
    deviation_places: int = 2  # Decimal places for period-over-period deviation


# Global instances for easy import
SCORE_ENTRY_THRESHOLDS = ScoreEntryThresholds()
AGGREGATION_THRESHOLDS = AggregationThresholds()
