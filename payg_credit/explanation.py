"""
Explanation Generator.

Attributes a prediction to its input features. Impacts are additive:

    baseline + sum(impacts over all 40 features) == raw (log-odds) score

Attribution is an optional model capability (SupportsAttribution); models
without it cannot be explained and raise ExplanationError.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import math

import numpy as np
import pandas as pd

from .config import ScoringConfig, DEFAULT_CONFIG
from .engine import ModelHandle, ScoringEngine
from .errors import ExplanationError
from .features import CustomerFeatures, encode_frame
from .models import sigmoid, supports_attribution
from .policy import validate_probability
from .schemas import FEATURE_NAMES


@dataclass(frozen=True)
class Explanation:
    """
    Full additive attribution of one prediction.

    Attributes:
        baseline: Raw score contribution shared by every customer
        impacts: (feature, impact) for all features, in schema order
        model_version: Version of the model that was explained
    """

    baseline: float
    impacts: Tuple[Tuple[str, float], ...]
    model_version: str

    @property
    def raw_score(self) -> float:
        """Reconstructed pre-probability score."""
        return self.baseline + math.fsum(impact for _, impact in self.impacts)

    @property
    def probability(self) -> float:
        return float(sigmoid(self.raw_score))

    def top(self, k: Optional[int] = None) -> List[Tuple[str, float]]:
        """
        Impacts ordered by descending magnitude.

        Ties keep schema order. k=None returns all features.
        """
        ranked = sorted(self.impacts, key=lambda item: abs(item[1]), reverse=True)
        return ranked if k is None else ranked[:k]


class ExplanationGenerator:
    """
    Computes per-feature attributions against the engine's active model.

    Usage:
        explainer = ExplanationGenerator(engine)
        factors = explainer.explain(features, probability)
    """

    def __init__(self, engine: ScoringEngine, config: Optional[ScoringConfig] = None):
        self.engine = engine
        self.config = config or engine.config or DEFAULT_CONFIG

    def attribute(
        self, features: CustomerFeatures, handle: Optional[ModelHandle] = None
    ) -> Explanation:
        """
        Attribute one customer's raw score to all 40 features.

        Raises:
            ExplanationError: If the model does not support attribution
        """
        handle = handle or self.engine.acquire()
        model = self._attributable(handle)
        vector = features.to_vector()[np.newaxis, :]
        baseline, impacts = model.attributions(vector)
        return Explanation(
            baseline=float(baseline),
            impacts=tuple(
                (name, float(impact)) for name, impact in zip(FEATURE_NAMES, impacts[0])
            ),
            model_version=handle.model_version,
        )

    def explain(
        self,
        features: CustomerFeatures,
        probability: float,
        top_k: Optional[int] = None,
        handle: Optional[ModelHandle] = None,
    ) -> List[Tuple[str, float]]:
        """
        Top contributing factors for a scored customer.

        Args:
            features: Features that were scored
            probability: Probability returned for those features
            top_k: Number of factors (default: config.top_k)
            handle: Snapshot the probability was computed against

        Returns:
            (feature, impact) pairs by descending absolute impact

        Raises:
            InvalidProbabilityError: Probability outside [0, 1]
            ExplanationError: Model cannot attribute, or the probability
                does not come from this model
        """
        probability = validate_probability(probability)
        top_k = self.config.top_k if top_k is None else top_k
        if top_k < 1:
            raise ValueError(f"top_k must be positive, got {top_k}")

        explanation = self.attribute(features, handle=handle)
        reconstructed = explanation.probability
        if abs(reconstructed - probability) > self.config.attribution_tolerance:
            raise ExplanationError(
                f"Probability {probability:.6f} does not match model "
                f"{explanation.model_version} reconstruction {reconstructed:.6f}"
            )
        return explanation.top(top_k)

    def impact_frame(
        self, frame: pd.DataFrame, handle: Optional[ModelHandle] = None
    ) -> Tuple[float, pd.DataFrame]:
        """
        Vectorized attributions for a validated feature frame.

        Returns:
            (baseline, DataFrame of impacts with one column per feature)
        """
        handle = handle or self.engine.acquire()
        model = self._attributable(handle)
        baseline, impacts = model.attributions(encode_frame(frame))
        return float(baseline), pd.DataFrame(
            impacts, columns=list(FEATURE_NAMES), index=frame.index
        )

    @staticmethod
    def _attributable(handle: ModelHandle):
        model = handle.model
        if not supports_attribution(model):
            raise ExplanationError(
                f"Model {handle.model_version} ({model.model_type}) "
                "does not support feature attribution"
            )
        return model
