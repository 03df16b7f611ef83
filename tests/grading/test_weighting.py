"""
Unit Tests for Subject Weighting

Tests for weighting rules and compute_subject_score.
"""

import logging

import pytest

from cbc_toolkit.core.models.directory import Subject
from cbc_toolkit.core.models.papers import ABSENT, PaperScore
from cbc_toolkit.grading.weighting import (
    DEFAULT_WEIGHTING_RULES,
    RuleKind,
    WeightingRule,
    WeightingRules,
    compute_subject_score,
)


class TestWeightingRule:
    """Tests for WeightingRule construction."""

    def test_weighted_when_weights_do_not_sum_to_one_then_raises_error(self):
        with pytest.raises(ValueError, match="must sum to 1"):
            WeightingRule.weighted({1: 0.5, 2: 0.4})

    def test_weighted_when_zero_weight_then_raises_error(self):
        with pytest.raises(ValueError, match="must be positive"):
            WeightingRule.weighted({1: 1.0, 2: 0.0})

    def test_mean_of_papers_when_no_count_then_raises_error(self):
        with pytest.raises(ValueError, match="paper_count"):
            WeightingRule(RuleKind.MEAN_OF_PAPERS)

    def test_from_dict_when_stored_form_then_round_trips(self):
        rule = WeightingRule.weighted({1: 0.3, 2: 0.3, 3: 0.4})
        assert WeightingRule.from_dict(rule.to_dict()) == rule

    def test_applies_to_when_paper_numbers_differ_then_false(self):
        rule = WeightingRule.weighted({1: 0.5, 2: 0.5})
        assert not rule.applies_to([PaperScore(1, 10, 20), PaperScore(3, 10, 20)])
        assert rule.applies_to([PaperScore(2, 10, 20), PaperScore(1, 10, 20)])


class TestWeightingRules:
    """Tests for the subject -> rule table."""

    def test_resolve_when_name_differs_in_case_and_spacing_then_same_rule(self):
        """Subject names are normalised, so spelling variants share a rule."""
        assert DEFAULT_WEIGHTING_RULES.resolve("business  studies").kind is RuleKind.MEAN_OF_PAPERS

    def test_resolve_when_unknown_subject_then_default(self):
        assert DEFAULT_WEIGHTING_RULES.resolve("Geography") is DEFAULT_WEIGHTING_RULES.default

    def test_init_when_duplicate_after_normalising_then_raises_error(self):
        with pytest.raises(ValueError, match="Duplicate weighting rule"):
            WeightingRules({"Physics": WeightingRule.percentage(), "physics ": WeightingRule.percentage()})

    def test_unknown_subjects_when_rule_names_typo_then_reported(self):
        """Rules naming no known subject are surfaced instead of silently unused."""
        rules = WeightingRules({"Physcis": WeightingRule.mean_of_papers(2)})
        assert rules.unknown_subjects([Subject("Physics"), "Biology"]) == ("physcis",)

    def test_from_dict_when_default_given_then_used(self):
        rules = WeightingRules.from_dict({}, {"kind": "mean_of_papers", "paperCount": 2})
        assert rules.default == WeightingRule.mean_of_papers(2)


class TestComputeSubjectScore:
    """Tests for compute_subject_score."""

    def test_compute_when_plain_subject_then_percentage_of_total(self):
        """Default rule: sum of scores over sum of maxima."""
        papers = [PaperScore(1, 45, 50), PaperScore(2, ABSENT, 50)]
        assert compute_subject_score(papers, "Geography") == 45.0

    def test_compute_when_science_then_weighted_per_paper_percentages(self):
        """Sciences weight paper percentages 30/30/40."""
        papers = [PaperScore(1, 60, 80), PaperScore(2, 40, 80), PaperScore(3, 30, 40)]
        # 0.3 * 75 + 0.3 * 50 + 0.4 * 75 = 67.5
        assert compute_subject_score(papers, "Biology") == 67.5

    def test_compute_when_science_layout_differs_then_default_rule(self, caplog):
        """A science with two papers falls back to the plain percentage."""
        papers = [PaperScore(1, 30, 50), PaperScore(2, 40, 50)]
        with caplog.at_level(logging.DEBUG, logger="cbc_toolkit.grading.weighting"):
            assert compute_subject_score(papers, "Chemistry") == 70.0
        assert "does not match" in caplog.text

    def test_compute_when_english_three_papers_then_mean_of_percentages(self):
        papers = [PaperScore(1, 40, 50), PaperScore(2, 30, 40), PaperScore(3, 60, 100)]
        # (80 + 75 + 60) / 3 = 71.666...
        assert compute_subject_score(papers, "English") == 71.67

    def test_compute_when_business_two_papers_then_mean_of_percentages(self):
        papers = [PaperScore(1, 50, 100), PaperScore(2, 20, 25)]
        assert compute_subject_score(papers, "Business Studies") == 65.0

    def test_compute_when_all_absent_then_zero(self):
        papers = [PaperScore(1, ABSENT, 50), PaperScore(2, ABSENT, 50)]
        assert compute_subject_score(papers, "Geography") == 0.0

    def test_compute_when_full_marks_then_exactly_100(self):
        papers = [PaperScore(1, 80, 80), PaperScore(2, 80, 80), PaperScore(3, 40, 40)]
        assert compute_subject_score(papers, "Physics") == 100.0

    def test_compute_when_custom_rules_then_used(self):
        """Rules are injectable; no subject is special-cased in code."""
        rules = WeightingRules({"Geography": WeightingRule.weighted({1: 0.75, 2: 0.25})})
        papers = [PaperScore(1, 100, 100), PaperScore(2, 0, 100)]
        assert compute_subject_score(papers, "Geography", rules) == 75.0
