"""
Integration tests for CreditScorer.
"""

import json
import threading
import time
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from payg_credit import (
    CreditScorer,
    FeatureVectorBuilder,
    ModelNotLoadedError,
    RiskCategory,
    SchemaError,
    ScoringConfig,
    ScoringTimeoutError,
)
from payg_credit.schemas import FEATURE_NAMES
from payg_credit.scorer import generate_sample_data


class SlowBuilder(FeatureVectorBuilder):
    """Builder that stalls on every record."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay
        self.started = 0
        self._lock = threading.Lock()

    def build(self, record):
        with self._lock:
            self.started += 1
        time.sleep(self.delay)
        return super().build(record)


class TestScoreCustomer:
    """Scoring one raw record end to end."""

    def test_low_risk_customer(self, scorer, low_risk_record):
        result = scorer.score_customer(low_risk_record)

        assert result.customer_id == "KE-LOW"
        assert result.probability == pytest.approx(0.038, abs=2e-3)
        assert result.risk_category == RiskCategory.LOW
        assert result.recommended_action == "Approve - Low Risk"

    def test_medium_risk_customer(self, scorer, medium_risk_record):
        result = scorer.score_customer(medium_risk_record)

        assert result.probability == pytest.approx(0.3948, abs=1e-3)
        assert result.risk_category == RiskCategory.MEDIUM
        assert result.recommended_action == "Review - Medium Risk"

    def test_high_risk_customer(self, scorer, high_risk_record):
        result = scorer.score_customer(high_risk_record)

        assert result.probability > 0.99
        assert result.risk_category == RiskCategory.HIGH
        assert result.recommended_action == "Detailed Review - High Risk"
        assert result.top_factors[0][0] == "days_since_last_payment"

    def test_category_consistent_with_probability(self, scorer, sample_data):
        for record in sample_data.head(30).to_dict("records"):
            result = scorer.score_customer(record)

            assert result.risk_category == scorer.policy.categorize(result.probability)

    def test_explanation_optional(self, scorer, typical_record):
        result = scorer.score_customer(typical_record, include_explanation=False)

        assert result.top_factors == ()

    def test_to_dict_payload(self, scorer, high_risk_record):
        payload = scorer.score_customer(high_risk_record).to_dict()

        assert set(payload) == {
            "customer_id",
            "probability",
            "risk_category",
            "recommendation",
            "top_factors",
            "timestamp",
            "model_version",
        }
        assert payload["risk_category"] == "High"
        assert payload["model_version"] == "2024.06.1"
        assert len(payload["top_factors"]) == 5
        assert set(payload["top_factors"][0]) == {"feature", "impact"}
        assert datetime.fromisoformat(payload["timestamp"]).tzinfo is not None
        json.dumps(payload)

    def test_invalid_record_raises_schema_error(self, scorer, typical_record):
        record = dict(typical_record)
        del record["outstanding_balance"]

        with pytest.raises(SchemaError, match="outstanding_balance"):
            scorer.score_customer(record)

    def test_unloaded_scorer_raises(self, typical_record):
        scorer = CreditScorer()

        with pytest.raises(ModelNotLoadedError):
            scorer.score_customer(typical_record)

    def test_result_is_immutable(self, scorer, typical_record):
        result = scorer.score_customer(typical_record)

        with pytest.raises(AttributeError):
            result.probability = 0.0


class TestScoreBatch:
    """Parallel scoring of many customers."""

    def test_order_preserved(self, scorer, sample_data):
        records = sample_data.to_dict("records")

        results = scorer.score_batch(records, max_workers=4)

        assert [r.customer_id for r in results] == list(sample_data["customer_id"])

    def test_matches_single_scoring(self, scorer, sample_data):
        records = sample_data.head(20).to_dict("records")

        batch = scorer.score_batch(records, include_explanation=True)
        singles = [scorer.score_customer(r) for r in records]

        for b, s in zip(batch, singles):
            assert b.probability == s.probability
            assert b.risk_category == s.risk_category
            assert b.top_factors == s.top_factors

    def test_accepts_built_features(self, scorer, low_risk_record, high_risk_record):
        features = scorer.builder.build(high_risk_record)

        results = scorer.score_batch([low_risk_record, features])

        assert [r.customer_id for r in results] == ["KE-LOW", "KE-HIGH"]

    def test_empty_batch(self, scorer):
        assert scorer.score_batch([]) == []

    def test_bad_record_fails_batch(self, scorer, typical_record):
        bad = dict(typical_record, on_time_ratio=-1)

        with pytest.raises(SchemaError):
            scorer.score_batch([typical_record, bad, typical_record])

    def test_timeout_raises(self, engine, default_config, sample_data):
        scorer = CreditScorer(engine, default_config, builder=SlowBuilder(delay=0.5))
        records = sample_data.head(8).to_dict("records")

        with pytest.raises(ScoringTimeoutError):
            scorer.score_batch(records, max_workers=2, timeout=0.05)

    def test_timeout_is_timeout_error(self, engine, default_config, sample_data):
        config = ScoringConfig(batch_timeout=0.05, batch_workers=1)
        scorer = CreditScorer(engine, config, builder=SlowBuilder(delay=0.5))

        with pytest.raises(TimeoutError):
            scorer.score_batch(sample_data.head(4).to_dict("records"))

    def test_timeout_does_not_wait_for_running_records(self, engine, default_config, sample_data):
        """Running records are abandoned and queued ones never start."""
        builder = SlowBuilder(delay=1.0)
        scorer = CreditScorer(engine, default_config, builder=builder)
        records = sample_data.head(8).to_dict("records")

        start = time.perf_counter()
        with pytest.raises(ScoringTimeoutError):
            scorer.score_batch(records, max_workers=2, timeout=0.05)
        elapsed = time.perf_counter() - start

        assert elapsed < 0.5
        time.sleep(1.5)
        assert builder.started <= 2


class TestScoreFrame:
    """Vectorized scoring of a DataFrame."""

    def test_adds_decision_columns(self, scorer, sample_data):
        result = scorer.score(sample_data)

        for col in ["RISK_PROBABILITY", "RISK_CATEGORY", "RECOMMENDED_ACTION", "MODEL_VERSION"]:
            assert col in result.df.columns
        assert result.impact_columns == []
        assert result.df["RISK_PROBABILITY"].between(0, 1).all()

    def test_matches_single_scoring(self, scorer, risk_profiles):
        result = scorer.score(risk_profiles)

        assert list(result.df["RISK_CATEGORY"]) == ["Low", "Medium", "High"]
        single = scorer.score_customer(risk_profiles.to_dict("records")[1])
        assert result.df["RISK_PROBABILITY"].iloc[1] == pytest.approx(single.probability, abs=1e-12)

    def test_explain_adds_additive_impacts(self, scorer, sample_data):
        result = scorer.score(sample_data, explain=True)

        assert result.impact_columns == [f"{name}_impact" for name in FEATURE_NAMES]
        raw = result.df["BASELINE"] + result.df[result.impact_columns].sum(axis=1)
        probability = 1 / (1 + np.exp(-raw))
        pd.testing.assert_series_equal(
            probability, result.df["RISK_PROBABILITY"], check_names=False, atol=1e-9
        )

    def test_get_high_risk(self, scorer, risk_profiles):
        result = scorer.score(risk_profiles)

        assert list(result.get_high_risk()["customer_id"]) == ["KE-HIGH"]
        assert list(result.get_high_risk("Medium")["customer_id"]) == ["KE-MEDIUM", "KE-HIGH"]
        assert len(result.get_high_risk("Low")) == 3

    def test_summary_returns_dataframe(self, scorer, sample_data):
        summary = scorer.score(sample_data).summary()

        assert isinstance(summary, pd.DataFrame)
        assert "count" in summary.columns
        assert "avg_probability" in summary.columns
        assert summary["count"].sum() == 100

    def test_impact_breakdown(self, scorer, sample_data):
        breakdown = scorer.score(sample_data, explain=True).impact_breakdown()

        assert set(breakdown.index) == set(FEATURE_NAMES)
        assert list(breakdown.columns) == ["mean", "mean_abs", "max", "min"]
        assert breakdown["mean_abs"].is_monotonic_decreasing

    def test_impact_breakdown_requires_explain(self, scorer, sample_data):
        with pytest.raises(ValueError, match="explain=True"):
            scorer.score(sample_data).impact_breakdown()

    def test_missing_column_raises_error(self, scorer):
        with pytest.raises(SchemaError, match="Missing required features"):
            scorer.score(pd.DataFrame({"customer_id": ["KE-1"]}))

    def test_empty_frame(self, scorer):
        df = pd.DataFrame(columns=["customer_id", *FEATURE_NAMES])

        result = scorer.score(df)

        assert len(result.df) == 0
        for column in ["RISK_PROBABILITY", "RISK_CATEGORY", "RECOMMENDED_ACTION"]:
            assert column in result.df.columns
        assert result.get_high_risk("Medium").empty

    def test_vectorized_performance(self, scorer):
        """Scoring 10k customers should complete in <2 seconds."""
        large_data = generate_sample_data(n_customers=10000, seed=123)

        start = time.time()
        result = scorer.score(large_data)
        elapsed = time.time() - start

        assert elapsed < 2.0, f"Scoring took {elapsed:.2f}s, expected <2s"
        assert len(result.df) == 10000


class TestModelSwap:
    """Hot-swapping the model through the scorer."""

    def test_load_model_changes_version(self, scorer, tmp_path, reference_artifact, typical_record):
        from payg_credit import ModelArtifact, save_artifact

        renamed = ModelArtifact(model_version="2024.07.1", model=reference_artifact.model)
        path = save_artifact(renamed, tmp_path / "next.yaml")

        scorer.load_model(path)

        assert scorer.score_customer(typical_record).model_version == "2024.07.1"


class TestSampleData:
    """Synthetic record generator."""

    def test_deterministic(self):
        pd.testing.assert_frame_equal(
            generate_sample_data(50, seed=7), generate_sample_data(50, seed=7)
        )

    def test_all_records_valid(self, sample_data):
        frame = FeatureVectorBuilder().build_frame(sample_data)

        assert len(frame) == 100
        assert set(frame["location_type"]) <= {"urban", "rural"}

    def test_risk_categories_varied(self, scorer):
        result = scorer.score(generate_sample_data(1000, seed=42))

        assert set(result.df["RISK_CATEGORY"]) == {"Low", "Medium", "High"}
