"""Risk models wrapped by the scoring engine."""

from .base import RiskModel, SupportsAttribution, sigmoid, supports_attribution
from .linear import LogisticModel
from .estimator import EstimatorModel

__all__ = [
    "RiskModel",
    "SupportsAttribution",
    "LogisticModel",
    "EstimatorModel",
    "sigmoid",
    "supports_attribution",
]
