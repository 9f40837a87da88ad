"""Standardised logistic regression with exact additive attribution."""

from typing import Tuple

import numpy as np

from .base import RiskModel


def _frozen(values, name: str) -> np.ndarray:
    array = np.array(values, dtype=np.float64).ravel()
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{name} must be finite")
    array.setflags(write=False)
    return array


class LogisticModel(RiskModel):
    """
    Logistic regression over standardised features.

    raw = intercept + sum_i coefficient_i * (x_i - mean_i) / scale_i

    Each term of the sum is that feature's impact; the intercept is the
    baseline (raw score of a customer sitting exactly at the means).
    """

    model_type = "logistic_regression"

    def __init__(self, coefficients, intercept: float, means, scales):
        """
        Initialize model parameters.

        Args:
            coefficients: Per-feature weights on the standardised scale
            intercept: Log-odds at the feature means
            means: Per-feature centring values
            scales: Per-feature scaling values (strictly positive)
        """
        self.coefficients = _frozen(coefficients, "coefficients")
        self.means = _frozen(means, "means")
        self.scales = _frozen(scales, "scales")
        self.intercept = float(intercept)

        if not np.isfinite(self.intercept):
            raise ValueError("intercept must be finite")
        sizes = {len(self.coefficients), len(self.means), len(self.scales)}
        if len(sizes) != 1:
            raise ValueError(
                "coefficients, means and scales must have equal length, got "
                f"{len(self.coefficients)}, {len(self.means)}, {len(self.scales)}"
            )
        if np.any(self.scales <= 0):
            raise ValueError("scales must be strictly positive")

    @property
    def n_features(self) -> int:
        return len(self.coefficients)

    def _contributions(self, matrix: np.ndarray) -> np.ndarray:
        matrix = self.validate(matrix)
        return self.coefficients * (matrix - self.means) / self.scales

    def raw_score(self, matrix: np.ndarray) -> np.ndarray:
        return self.intercept + self._contributions(matrix).sum(axis=1)

    def attributions(self, matrix: np.ndarray) -> Tuple[float, np.ndarray]:
        return self.intercept, self._contributions(matrix)

    def __repr__(self) -> str:
        return f"LogisticModel(n_features={self.n_features}, intercept={self.intercept:.4f})"
