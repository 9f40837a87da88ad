"""
Unit tests for the Decision Policy.
"""

import math

import numpy as np
import pytest

from payg_credit import (
    DecisionPolicy,
    InvalidProbabilityError,
    RiskCategory,
    ScoringConfig,
    categorize,
    decide,
)


class TestCategorize:
    """Probability -> RiskCategory cut points."""

    @pytest.mark.parametrize("probability,expected", [
        (0.0, RiskCategory.LOW),
        (0.15, RiskCategory.LOW),
        (0.2999, RiskCategory.LOW),
        (0.30, RiskCategory.MEDIUM),
        (0.45, RiskCategory.MEDIUM),
        (0.5999, RiskCategory.MEDIUM),
        (0.60, RiskCategory.HIGH),
        (0.85, RiskCategory.HIGH),
        (1.0, RiskCategory.HIGH),
    ])
    def test_boundaries(self, probability, expected):
        assert categorize(probability) == expected

    def test_numpy_float_accepted(self):
        assert categorize(np.float64(0.7)) == RiskCategory.HIGH

    def test_monotone_in_probability(self):
        grid = np.linspace(0.0, 1.0, 1001)
        ranks = [categorize(float(p)).rank for p in grid]

        assert ranks == sorted(ranks)

    @pytest.mark.parametrize("bad", [-0.01, 1.01, math.nan, math.inf, "0.5", None, True])
    def test_invalid_probability_rejected(self, bad):
        with pytest.raises(InvalidProbabilityError):
            categorize(bad)

    def test_invalid_probability_is_value_error(self):
        with pytest.raises(ValueError):
            categorize(2.0)


class TestDecide:
    """Probability -> category and recommended action."""

    @pytest.mark.parametrize("probability,category,action", [
        (0.1, "Low", "Approve - Low Risk"),
        (0.4, "Medium", "Review - Medium Risk"),
        (0.9, "High", "Detailed Review - High Risk"),
    ])
    def test_default_actions(self, probability, category, action):
        decision = decide(probability)

        assert decision.category.value == category
        assert decision.action == action

    def test_custom_cut_points(self):
        policy = DecisionPolicy(ScoringConfig(low_risk_threshold=0.2, high_risk_threshold=0.5))

        assert policy.categorize(0.25) == RiskCategory.MEDIUM
        assert policy.categorize(0.5) == RiskCategory.HIGH

    def test_category_str_is_value(self):
        assert str(RiskCategory.MEDIUM) == "Medium"
        assert RiskCategory("High") is RiskCategory.HIGH


class TestScoringConfig:
    """Configuration validation and YAML round trip."""

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError, match="Thresholds"):
            ScoringConfig(low_risk_threshold=0.7, high_risk_threshold=0.6)

    def test_missing_action_rejected(self):
        with pytest.raises(ValueError, match="High"):
            ScoringConfig(actions={"Low": "Approve", "Medium": "Review"})

    def test_non_positive_top_k_rejected(self):
        with pytest.raises(ValueError, match="top_k"):
            ScoringConfig(top_k=0)

    def test_negative_attribution_tolerance_rejected(self):
        with pytest.raises(ValueError, match="attribution_tolerance"):
            ScoringConfig(attribution_tolerance=-1e-6)

    @pytest.mark.parametrize("timeout", [0, -2.5])
    def test_non_positive_batch_timeout_rejected(self, timeout):
        with pytest.raises(ValueError, match="batch_timeout"):
            ScoringConfig(batch_timeout=timeout)

    def test_zero_tolerance_and_unbounded_timeout_allowed(self):
        config = ScoringConfig(attribution_tolerance=0.0, batch_timeout=None)

        assert config.attribution_tolerance == 0.0
        assert config.batch_timeout is None

    def test_yaml_round_trip(self, tmp_path):
        config = ScoringConfig(top_k=3, batch_workers=2, batch_timeout=1.5)
        path = tmp_path / "scoring.yaml"

        config.to_yaml(path)

        assert ScoringConfig.from_yaml(path) == config
