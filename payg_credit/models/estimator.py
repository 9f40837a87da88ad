"""Opaque wrapper around a fitted scikit-learn classifier."""

import numpy as np

from .base import RiskModel


# Probabilities are clipped before the logit so raw scores stay finite
_EPS = 1e-12


class EstimatorModel(RiskModel):
    """
    Wraps any fitted estimator exposing predict_proba.

    The estimator is a black box: it does not support attribution, so
    explanations requested against it fail with ExplanationError.
    """

    model_type = "sklearn_estimator"

    def __init__(self, estimator, n_features: int):
        if not hasattr(estimator, "predict_proba"):
            raise ValueError(
                f"{type(estimator).__name__} does not implement predict_proba"
            )
        expected = getattr(estimator, "n_features_in_", n_features)
        if expected != n_features:
            raise ValueError(
                f"Estimator was fitted on {expected} features, expected {n_features}"
            )
        self.estimator = estimator
        self._n_features = n_features

    @property
    def n_features(self) -> int:
        return self._n_features

    def predict_proba(self, matrix: np.ndarray) -> np.ndarray:
        matrix = self.validate(matrix)
        return np.asarray(self.estimator.predict_proba(matrix)[:, 1], dtype=np.float64)

    def raw_score(self, matrix: np.ndarray) -> np.ndarray:
        proba = np.clip(self.predict_proba(matrix), _EPS, 1.0 - _EPS)
        return np.log(proba) - np.log1p(-proba)
