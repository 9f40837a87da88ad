"""Base class and optional capabilities for risk models."""

from abc import ABC, abstractmethod
from typing import Protocol, Tuple, runtime_checkable

import numpy as np


def sigmoid(raw: np.ndarray) -> np.ndarray:
    """Logistic link, stable for large magnitudes and bounded to [0, 1]."""
    return 0.5 * (1.0 + np.tanh(0.5 * np.asarray(raw, dtype=np.float64)))


class RiskModel(ABC):
    """
    Abstract base class for binary default-risk models.

    A model maps an encoded feature matrix to raw (log-odds) scores.
    Instances are immutable once constructed.
    """

    model_type: str = "base"

    @property
    @abstractmethod
    def n_features(self) -> int:
        """Number of input features the model expects."""
        pass

    @abstractmethod
    def raw_score(self, matrix: np.ndarray) -> np.ndarray:
        """
        Calculate raw pre-probability scores for all rows.

        Args:
            matrix: Float array of shape (n_rows, n_features)

        Returns:
            Array of log-odds, one per row
        """
        pass

    def predict_proba(self, matrix: np.ndarray) -> np.ndarray:
        """Default probability for all rows."""
        return sigmoid(self.raw_score(matrix))

    def validate(self, matrix: np.ndarray) -> np.ndarray:
        """Coerce to a 2-D float matrix with the expected width."""
        matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float64))
        if matrix.shape[1] != self.n_features:
            raise ValueError(
                f"{self.__class__.__name__} expects {self.n_features} features, "
                f"got {matrix.shape[1]}"
            )
        return matrix


@runtime_checkable
class SupportsAttribution(Protocol):
    """Capability: additive per-feature attribution of the raw score."""

    def attributions(self, matrix: np.ndarray) -> Tuple[float, np.ndarray]:
        """
        Decompose raw scores into a baseline and per-feature impacts.

        Returns:
            (baseline, impacts) where impacts has shape (n_rows, n_features)
            and baseline + impacts.sum(axis=1) equals raw_score(matrix)
        """
        ...


def supports_attribution(model: object) -> bool:
    return isinstance(model, SupportsAttribution)
