"""
Unit tests for the Explanation Generator.
"""

import math

import numpy as np
import pytest
from sklearn.ensemble import RandomForestClassifier

from payg_credit import (
    ExplanationError,
    ExplanationGenerator,
    FeatureVectorBuilder,
    InvalidProbabilityError,
    ModelArtifact,
    ScoringEngine,
)
from payg_credit.artifacts import load_artifact, save_artifact
from payg_credit.features import encode_frame
from payg_credit.models import EstimatorModel
from payg_credit.schemas import FEATURE_NAMES


@pytest.fixture
def builder():
    return FeatureVectorBuilder()


@pytest.fixture
def explainer(engine, default_config):
    return ExplanationGenerator(engine, default_config)


@pytest.fixture
def forest_artifact(builder, sample_data):
    """Opaque estimator artifact (no attribution support)."""
    X = encode_frame(builder.build_frame(sample_data))
    y = (sample_data["on_time_ratio"] < 0.75).astype(int).to_numpy()
    forest = RandomForestClassifier(n_estimators=10, random_state=0).fit(X, y)
    return ModelArtifact(
        model_version="forest-test",
        model=EstimatorModel(forest, n_features=len(FEATURE_NAMES)),
    )


class TestAttribution:
    """Additive per-feature impacts."""

    def test_all_features_attributed(self, explainer, builder, typical_record):
        explanation = explainer.attribute(builder.build(typical_record))

        assert [name for name, _ in explanation.impacts] == list(FEATURE_NAMES)
        assert explanation.model_version == "2024.06.1"

    def test_impacts_sum_to_raw_score(self, explainer, engine, builder, sample_data):
        for features in builder.build_many(sample_data.head(25).to_dict("records")):
            explanation = explainer.attribute(features)

            assert explanation.raw_score == pytest.approx(engine.raw_score(features), abs=1e-9)

    def test_reconstructed_probability_matches(self, explainer, engine, builder, high_risk_record):
        features = builder.build(high_risk_record)

        explanation = explainer.attribute(features)

        assert math.isclose(explanation.probability, engine.score(features), abs_tol=1e-9)

    def test_baseline_is_intercept(self, explainer, builder, typical_record):
        explanation = explainer.attribute(builder.build(typical_record))

        assert explanation.baseline == -1.0

    def test_features_at_mean_have_zero_impact(self, explainer, builder, typical_record):
        impacts = dict(explainer.attribute(builder.build(typical_record)).impacts)

        assert impacts["on_time_ratio"] == 0.0
        assert impacts["avg_daily_kwh"] == 0.0
        assert impacts["has_mobile_money"] == pytest.approx(-0.1)

    def test_impact_frame_matches_single(self, explainer, builder, sample_data):
        frame = builder.build_frame(sample_data.head(5))
        baseline, impacts = explainer.impact_frame(frame)

        assert list(impacts.columns) == list(FEATURE_NAMES)
        first = explainer.attribute(builder.build(sample_data.head(1).to_dict("records")[0]))
        assert baseline == first.baseline
        np.testing.assert_allclose(impacts.iloc[0].to_numpy(), [v for _, v in first.impacts])


class TestExplain:
    """Top contributing factors for a scored customer."""

    def test_top_factors_for_high_risk(self, explainer, engine, builder, high_risk_record):
        features = builder.build(high_risk_record)
        factors = explainer.explain(features, engine.score(features))

        assert [name for name, _ in factors] == [
            "days_since_last_payment",
            "on_time_ratio",
            "current_arrears_days",
            "has_mobile_money",
            "location_type",
        ]
        assert factors[0][1] == pytest.approx(3.75)

    def test_sorted_by_absolute_impact(self, explainer, engine, builder, sample_data):
        features = builder.build(sample_data.to_dict("records")[7])
        factors = explainer.explain(features, engine.score(features), top_k=10)

        magnitudes = [abs(impact) for _, impact in factors]
        assert magnitudes == sorted(magnitudes, reverse=True)
        assert len(factors) == 10

    def test_top_k_larger_than_schema(self, explainer, engine, builder, typical_record):
        features = builder.build(typical_record)

        assert len(explainer.explain(features, engine.score(features), top_k=100)) == 40

    def test_ties_keep_schema_order(self, explainer, engine, builder, typical_record):
        features = builder.build(typical_record)
        factors = explainer.explain(features, engine.score(features), top_k=40)

        zero_names = [name for name, impact in factors if impact == 0.0]
        assert zero_names == [name for name in FEATURE_NAMES if name in zero_names]

    def test_default_top_k_from_config(self, explainer, engine, builder, typical_record):
        features = builder.build(typical_record)

        assert len(explainer.explain(features, engine.score(features))) == 5

    def test_non_positive_top_k_rejected(self, explainer, engine, builder, typical_record):
        features = builder.build(typical_record)

        with pytest.raises(ValueError, match="top_k"):
            explainer.explain(features, engine.score(features), top_k=0)

    def test_mismatched_probability_rejected(self, explainer, builder, typical_record):
        features = builder.build(typical_record)

        with pytest.raises(ExplanationError, match="does not match"):
            explainer.explain(features, 0.9)

    def test_invalid_probability_rejected(self, explainer, builder, typical_record):
        features = builder.build(typical_record)

        with pytest.raises(InvalidProbabilityError):
            explainer.explain(features, 1.5)


class TestNonAttributableModel:
    """Models without attribution cannot be explained."""

    def test_estimator_scores_but_cannot_explain(self, forest_artifact, builder, typical_record):
        engine = ScoringEngine()
        engine.install(forest_artifact)
        explainer = ExplanationGenerator(engine)
        features = builder.build(typical_record)

        probability = engine.score(features)

        assert 0.0 <= probability <= 1.0
        assert not forest_artifact.supports_attribution
        with pytest.raises(ExplanationError, match="does not support"):
            explainer.explain(features, probability)

    def test_joblib_bundle_round_trip(self, forest_artifact, builder, typical_record, tmp_path):
        path = save_artifact(forest_artifact, tmp_path / "forest.joblib")
        loaded = load_artifact(path)
        features = builder.build(typical_record)

        assert loaded.model_type == "sklearn_estimator"
        assert loaded.model.predict_proba(features.to_vector()) == pytest.approx(
            forest_artifact.model.predict_proba(features.to_vector())
        )
