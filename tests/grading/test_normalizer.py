"""
Unit Tests for Score Normalization

Tests for raw score coercion and per-student normalization.
"""

import math

import pytest

from cbc_toolkit.core.errors import ValidationError
from cbc_toolkit.core.models.papers import ABSENT, PaperConfig, PaperScore
from cbc_toolkit.grading.normalizer import (
    coerce_raw_score,
    configured_from_scores,
    normalize_paper_scores,
    normalize_scores,
)

TWO_PAPERS = (PaperConfig(1, 50), PaperConfig(2, 50))


class TestCoerceRawScore:
    """Tests for coerce_raw_score."""

    @pytest.mark.parametrize("raw, expected", [
        (45, 45.0), ("45", 45.0), (" 12.5 ", 12.5), (0, 0.0), ("", ABSENT), ("  ", ABSENT), (None, ABSENT), (-1, ABSENT),
    ])
    def test_coerce_when_number_or_blank_then_value_or_absent(self, raw, expected):
        assert coerce_raw_score(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", True, math.nan, math.inf, [45], {"score": 45}])
    def test_coerce_when_not_finite_number_then_invalid(self, raw):
        """Invalid values are neither numbers nor the absence sentinel."""
        value = coerce_raw_score(raw)
        assert not isinstance(value, float)
        assert value != ABSENT


class TestNormalizeScores:
    """Tests for normalize_scores."""

    def test_normalize_when_one_blank_paper_then_absent_counted(self):
        """A blank paper is absent: zero towards the score, full towards out-of."""
        result = normalize_scores(
            TWO_PAPERS, [{"paperNo": 1, "score": 45}, {"paperNo": 2, "score": ""}], adm_no="S001"
        )

        assert result.total_score == 45
        assert result.total_out_of == 100
        assert result.absent_count == 1
        assert result.percentage == "45.00"
        assert result.papers[1].is_absent

    def test_normalize_when_paper_missing_then_absent(self):
        """Configured papers missing from the submission count as absent."""
        result = normalize_scores(TWO_PAPERS, [{"paperNo": 1, "score": 30}])

        assert result.absent_count == 1
        assert [p.paper_no for p in result.papers] == [1, 2]

    def test_normalize_when_all_blank_then_all_absent(self):
        result = normalize_scores(TWO_PAPERS, [])

        assert result.all_absent
        assert result.percentage == "0.00"

    def test_normalize_when_score_above_max_then_raises_validation_error(self):
        """Out-of-range scores void the record with a structured violation."""
        with pytest.raises(ValidationError) as exc:
            normalize_scores(TWO_PAPERS, [{"paperNo": 1, "score": 120}], adm_no="S001")

        (violation,) = exc.value.violations
        assert violation.adm_no == "S001"
        assert violation.paper_no == 1
        assert violation.submitted == 120
        assert violation.max == 50
        assert violation.to_dict()["submittedValue"] == 120

    def test_normalize_when_several_bad_papers_then_all_reported(self):
        with pytest.raises(ValidationError) as exc:
            normalize_scores(TWO_PAPERS, [{"paperNo": 1, "score": -5}, {"paperNo": 2, "score": "x"}])

        assert [v.paper_no for v in exc.value.violations] == [1, 2]
        assert "between 0 and 50" in exc.value.violations[0].message
        assert "must be a number or blank" in exc.value.violations[1].message

    def test_normalize_when_paper_repeated_then_first_wins(self):
        result = normalize_scores(TWO_PAPERS, [
            {"paperNo": 1, "score": 10}, {"paperNo": 1, "score": 99}, {"paperNo": 2, "score": 20},
        ])
        assert result.total_score == 30

    def test_normalize_when_unconfigured_paper_submitted_then_ignored(self):
        result = normalize_scores(TWO_PAPERS, [
            {"paperNo": 1, "score": 10}, {"paperNo": 2, "score": 20}, {"paperNo": 3, "score": 40},
        ])
        assert result.total_score == 30
        assert len(result.papers) == 2

    def test_normalize_paper_scores_when_stored_papers_then_same_totals(self):
        papers = (PaperScore(1, 45, 50), PaperScore(2, ABSENT, 50))

        result = normalize_paper_scores(configured_from_scores(papers), papers)

        assert result.papers == papers
        assert result.percentage == "45.00"
