"""
Unit Tests for Grading Configuration
"""

import json

import pytest

from cbc_toolkit.core.errors import ConfigError
from cbc_toolkit.core.schemas.validator import SchemaError
from cbc_toolkit.grading.config import DEFAULT_GRADING_CONFIG, GradingConfig, load_grading_config
from cbc_toolkit.grading.weighting import RuleKind


class TestGradingConfig:
    """Tests for GradingConfig."""

    def test_defaults_when_constructed_then_five_subject_minimum(self):
        config = GradingConfig()
        assert config.min_subjects_for_aggregate == 5
        assert config.grade_levels == (10, 11, 12)
        assert config.calendar.exams == ("Opener", "Midterm", "Endterm")

    def test_init_when_min_subjects_zero_then_raises_error(self):
        with pytest.raises(ValueError, match="min_subjects_for_aggregate"):
            GradingConfig(min_subjects_for_aggregate=0)

    def test_from_dict_when_round_tripped_then_equal(self):
        """to_dict/from_dict preserve every setting."""
        restored = GradingConfig.from_dict(DEFAULT_GRADING_CONFIG.to_dict())
        assert restored == DEFAULT_GRADING_CONFIG

    def test_from_dict_when_partial_then_defaults_kept(self):
        config = GradingConfig.from_dict({"exams": ["CAT 1", "CAT 2"], "minSubjectsForAggregate": 3})

        assert config.calendar.exams == ("CAT 1", "CAT 2")
        assert config.min_subjects_for_aggregate == 3
        assert config.grade_scale == DEFAULT_GRADING_CONFIG.grade_scale
        assert config.weighting == DEFAULT_GRADING_CONFIG.weighting

    def test_from_dict_when_rules_given_then_replace_default_table(self):
        config = GradingConfig.from_dict({"weightingRules": {"Geography": {"kind": "mean_of_papers", "paperCount": 2}}})

        assert config.weighting.resolve("geography").kind is RuleKind.MEAN_OF_PAPERS
        assert config.weighting.resolve("Biology").kind is RuleKind.PERCENTAGE

    def test_from_dict_when_weights_inconsistent_then_raises_config_error(self):
        """Shape-valid but inconsistent values raise ConfigError."""
        data = {"weightingRules": {"Physics": {"kind": "weighted", "weights": {"1": 0.5, "2": 0.2}}}}

        with pytest.raises(ConfigError, match="must sum to 1"):
            GradingConfig.from_dict(data)

    def test_from_dict_when_bands_miss_zero_then_raises_config_error(self):
        data = {"gradeBands": [{"label": "Pass", "lowerBound": 40, "remark": "Passed"}]}

        with pytest.raises(ConfigError, match="must start at 0"):
            GradingConfig.from_dict(data)

    def test_from_dict_when_wrong_shape_then_raises_schema_error(self):
        with pytest.raises(SchemaError):
            GradingConfig.from_dict({"terms": "Term 1"})

    def test_order_pathways_when_default_then_fixed_order_then_unlisted_alphabetically(self):
        ordered = DEFAULT_GRADING_CONFIG.order_pathways(
            ["Social Sciences", "Languages", "stem", "Arts and Sport Science"]
        )

        assert ordered == ("stem", "Arts and Sport Science", "Social Sciences", "Languages")

    def test_from_dict_when_pathway_order_given_then_used(self):
        config = GradingConfig.from_dict({"pathwayOrder": ["Social Sciences", "STEM"]})

        assert config.pathway_order == ("Social Sciences", "STEM")


class TestLoadGradingConfig:
    """Tests for load_grading_config."""

    def test_load_when_file_valid_then_config(self, tmp_path):
        path = tmp_path / "grading.json"
        path.write_text(json.dumps({"gradeLevels": [10, 11]}), encoding="utf-8")

        assert load_grading_config(path).grade_levels == (10, 11)

    def test_load_when_missing_file_then_raises_config_error(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read grading configuration"):
            load_grading_config(tmp_path / "absent.json")
