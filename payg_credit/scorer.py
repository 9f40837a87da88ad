"""
Main CreditScorer class - orchestrates building, scoring, deciding and explaining.

Usage:
    from payg_credit import CreditScorer

    # With the bundled reference model
    scorer = CreditScorer.with_reference_model()
    result = scorer.score_customer({"customer_id": "KE-000123", ...})
    print(result.to_dict())

    # Many customers, in parallel, order preserved
    results = scorer.score_batch(records, timeout=5.0)

    # Vectorized over a DataFrame
    scored = scorer.score(df, explain=True)
    print(scored.df[["customer_id", "RISK_PROBABILITY", "RISK_CATEGORY"]])
    print(scored.summary())
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .artifacts import REFERENCE_MODEL_PATH
from .config import ScoringConfig, DEFAULT_CONFIG
from .engine import ModelHandle, ScoringEngine
from .errors import ScoringTimeoutError
from .explanation import ExplanationGenerator
from .features import CustomerFeatures, FeatureVectorBuilder
from .policy import DecisionPolicy, RiskCategory
from .schemas import CATEGORY_CODES, FEATURE_DEFINITIONS, FEATURE_NAMES, SCORING_OUTPUT_SCHEMA


logger = logging.getLogger(__name__)

Record = Union[Mapping[str, Any], CustomerFeatures]


@dataclass(frozen=True)
class ScoreResult:
    """
    Outcome of scoring one customer. Created once, never mutated.

    Attributes:
        customer_id: Customer identifier
        probability: Default probability in [0, 1]
        risk_category: Low, Medium or High
        recommended_action: Action text for the category
        top_factors: (feature, impact) pairs by descending |impact|
        generated_at: UTC time of scoring
        model_version: Version of the model that produced the score
    """

    customer_id: str
    probability: float
    risk_category: RiskCategory
    recommended_action: str
    top_factors: Tuple[Tuple[str, float], ...]
    generated_at: datetime
    model_version: str

    def to_dict(self) -> dict:
        """Response payload for the score endpoint."""
        return {
            "customer_id": self.customer_id,
            "probability": self.probability,
            "risk_category": self.risk_category.value,
            "recommendation": self.recommended_action,
            "top_factors": [
                {"feature": feature, "impact": impact}
                for feature, impact in self.top_factors
            ],
            "timestamp": self.generated_at.isoformat(),
            "model_version": self.model_version,
        }


@dataclass
class ScoringResult:
    """
    Container for vectorized scoring results.

    Attributes:
        df: Feature frame with probability, category and action added
        impact_columns: Per-feature impact column names (empty unless explained)
        model_version: Version of the model that scored the frame
    """

    df: pd.DataFrame
    impact_columns: list[str]
    model_version: str

    def get_high_risk(self, min_category: str = "High") -> pd.DataFrame:
        """
        Get customers at or above a risk category.

        Args:
            min_category: Minimum category ("Low", "Medium", "High")

        Returns:
            DataFrame filtered to customers at or above the category
        """
        order = [c.value for c in RiskCategory]
        valid = order[order.index(RiskCategory(min_category).value):]
        return self.df[self.df["RISK_CATEGORY"].isin(valid)]

    def summary(self) -> pd.DataFrame:
        """
        Counts and mean probability by location type and risk category.
        """
        return (
            self.df.groupby(["location_type", "RISK_CATEGORY"])
            .agg(
                count=("customer_id", "count"),
                avg_probability=("RISK_PROBABILITY", "mean"),
            )
            .round(3)
        )

    def impact_breakdown(self) -> pd.DataFrame:
        """
        Average contribution of each feature, largest first.

        Returns:
            DataFrame indexed by feature with mean, mean_abs, max and min
        """
        if not self.impact_columns:
            raise ValueError("Frame was scored without explanations; use explain=True")
        stats = {}
        for col in self.impact_columns:
            stats[col.removesuffix("_impact")] = {
                "mean": self.df[col].mean(),
                "mean_abs": self.df[col].abs().mean(),
                "max": self.df[col].max(),
                "min": self.df[col].min(),
            }
        breakdown = pd.DataFrame(stats).T.round(4)
        return breakdown.sort_values("mean_abs", ascending=False)


class CreditScorer:
    """
    Credit scoring pipeline for PAYG customers.

    Steps per customer:
    - Feature Vector Builder: raw record -> CustomerFeatures
    - Scoring Engine: features -> default probability
    - Decision Policy: probability -> category and action
    - Explanation Generator: features -> top contributing factors

    All steps of one call run against the same model snapshot, so a
    concurrent model swap never mixes two artifacts in one result.
    """

    def __init__(
        self,
        engine: Optional[ScoringEngine] = None,
        config: Optional[ScoringConfig] = None,
        builder: Optional[FeatureVectorBuilder] = None,
    ):
        """
        Initialize scorer.

        Args:
            engine: ScoringEngine to score with. A new unloaded one if None.
            config: ScoringConfig instance. Uses the engine's, else DEFAULT_CONFIG.
            builder: FeatureVectorBuilder for raw records.
        """
        self.config = config or (engine.config if engine else DEFAULT_CONFIG)
        self.engine = engine or ScoringEngine(self.config)
        self.builder = builder or FeatureVectorBuilder()
        self.policy = DecisionPolicy(self.config)
        self.explainer = ExplanationGenerator(self.engine, self.config)

    @classmethod
    def from_path(
        cls, path: Path | str, config: Optional[ScoringConfig] = None
    ) -> "CreditScorer":
        """Scorer with a model artifact loaded from disk."""
        return cls(ScoringEngine.from_path(path, config), config)

    @classmethod
    def with_reference_model(cls, config: Optional[ScoringConfig] = None) -> "CreditScorer":
        """Scorer with the bundled reference model loaded."""
        return cls.from_path(REFERENCE_MODEL_PATH, config)

    def load_model(self, path: Path | str) -> ModelHandle:
        """Load and activate a new artifact (see ScoringEngine.load)."""
        return self.engine.load(path)

    def score_customer(
        self, record: Mapping[str, Any], include_explanation: bool = True
    ) -> ScoreResult:
        """
        Score a single raw customer record.

        Args:
            record: Raw source fields including customer_id
            include_explanation: Attach top contributing factors

        Returns:
            ScoreResult

        Raises:
            SchemaError: Record cannot be mapped onto the feature schema
            ModelNotLoadedError: No model loaded
            ExplanationError: Explanation requested from a model without attribution
        """
        return self.score_features(self.builder.build(record), include_explanation)

    def score_features(
        self,
        features: CustomerFeatures,
        include_explanation: bool = True,
        handle: Optional[ModelHandle] = None,
    ) -> ScoreResult:
        """Score an already-built feature vector."""
        handle = handle or self.engine.acquire()
        probability = self.engine.score(features, handle=handle)
        decision = self.policy.decide(probability)

        factors: Tuple[Tuple[str, float], ...] = ()
        if include_explanation:
            factors = tuple(self.explainer.explain(features, probability, handle=handle))

        return ScoreResult(
            customer_id=features.customer_id,
            probability=probability,
            risk_category=decision.category,
            recommended_action=decision.action,
            top_factors=factors,
            generated_at=datetime.now(timezone.utc),
            model_version=handle.model_version,
        )

    def score_batch(
        self,
        records: Iterable[Record],
        include_explanation: bool = False,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> list[ScoreResult]:
        """
        Score many customers in parallel.

        Results come back in input order. The whole batch is scored
        against one model snapshot. The first failing record aborts the
        batch with its error; a timeout aborts it with ScoringTimeoutError.
        No partial results are returned either way.

        On timeout the pool is shut down without waiting: queued records are
        cancelled, but records already being scored run to completion on
        their worker threads after ScoringTimeoutError is raised. Their
        results are discarded.

        Args:
            records: Raw records or CustomerFeatures
            include_explanation: Attach top contributing factors
            max_workers: Thread pool size (default: config.batch_workers)
            timeout: Seconds for the whole batch (default: config.batch_timeout)

        Returns:
            List of ScoreResult, same length and order as records
        """
        records = list(records)
        if not records:
            return []

        handle = self.engine.acquire()
        timeout = self.config.batch_timeout if timeout is None else timeout
        workers = min(max_workers or self.config.batch_workers, len(records))
        logger.debug(
            "Scoring batch size=%d workers=%d timeout=%s version=%s",
            len(records), workers, timeout, handle.model_version,
        )

        def score_one(record: Record) -> ScoreResult:
            features = record if isinstance(record, CustomerFeatures) else self.builder.build(record)
            return self.score_features(features, include_explanation, handle=handle)

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="payg-score")
        try:
            return list(executor.map(score_one, records, timeout=timeout))
        except FuturesTimeoutError as exc:
            raise ScoringTimeoutError(
                f"Batch of {len(records)} customers did not finish within {timeout}s"
            ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def score(self, df: pd.DataFrame, explain: bool = False) -> ScoringResult:
        """
        Vectorized scoring of a DataFrame of raw records.

        Args:
            df: Raw records, one customer per row
            explain: Add one <feature>_impact column per feature

        Returns:
            ScoringResult with scores and optional impact breakdown

        Example:
            >>> scorer = CreditScorer.with_reference_model()
            >>> result = scorer.score(customers_df)
            >>> review_queue = result.get_high_risk("Medium")
        """
        handle = self.engine.acquire()
        features = self.builder.build_frame(df)
        result = features.copy()

        result["RISK_PROBABILITY"] = self.engine.score_frame(features, handle=handle)
        categories = [self.policy.categorize(p).value for p in result["RISK_PROBABILITY"]]
        result["RISK_CATEGORY"] = pd.Series(categories, index=result.index, dtype=str)
        result["RECOMMENDED_ACTION"] = pd.Series(
            [self.config.actions[c] for c in categories], index=result.index, dtype=str
        )

        impact_columns: list[str] = []
        if explain:
            baseline, impacts = self.explainer.impact_frame(features, handle=handle)
            impacts = impacts.add_suffix("_impact")
            impact_columns = list(impacts.columns)
            result = pd.concat([result, impacts], axis=1)
            result["BASELINE"] = baseline

        result["MODEL_VERSION"] = handle.model_version
        result = SCORING_OUTPUT_SCHEMA.validate(result)

        return ScoringResult(
            df=result,
            impact_columns=impact_columns,
            model_version=handle.model_version,
        )


def generate_sample_data(n_customers: int = 100, seed: int = 42) -> pd.DataFrame:
    """
    Generate realistic raw customer records for testing.

    Each feature is drawn around its population centre and spread from
    the feature schema, clipped to its bounds:
    - ~35% urban customers
    - ~80% hold a mobile money wallet
    - counts are whole numbers
    """
    rng = np.random.default_rng(seed)
    data: dict[str, Any] = {
        "customer_id": [f"KE-{i:06d}" for i in range(n_customers)],
    }

    for definition in FEATURE_DEFINITIONS:
        name = definition.name
        if definition.is_categorical:
            codes = CATEGORY_CODES[name]
            low, high = sorted(codes, key=codes.get)
            data[name] = np.where(rng.random(n_customers) < definition.typical, high, low)
        elif definition.kind == "binary":
            data[name] = (rng.random(n_customers) < definition.typical).astype(int)
        else:
            values = np.clip(
                rng.normal(definition.typical, definition.spread, size=n_customers),
                definition.lower,
                definition.upper,
            )
            data[name] = np.round(values) if definition.kind == "count" else values.round(4)

    return pd.DataFrame(data, columns=["customer_id", *FEATURE_NAMES])
