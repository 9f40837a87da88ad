"""
Decision Policy.

Maps a default probability to a risk category and a recommended action:

    p < 0.30          Low     "Approve - Low Risk"
    0.30 <= p < 0.60  Medium  "Review - Medium Risk"
    p >= 0.60         High    "Detailed Review - High Risk"
"""

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Optional
import math

from .config import ScoringConfig, DEFAULT_CONFIG
from .errors import InvalidProbabilityError


class RiskCategory(str, Enum):
    """Discretised default-risk band."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __str__(self) -> str:
        return self.value


_RANKS = {RiskCategory.LOW: 0, RiskCategory.MEDIUM: 1, RiskCategory.HIGH: 2}


@dataclass(frozen=True)
class Decision:
    """Risk category and the action it triggers."""

    category: RiskCategory
    action: str


def validate_probability(probability) -> float:
    """
    Return probability as a float, rejecting anything outside [0, 1].

    Raises:
        InvalidProbabilityError: NaN, non-numeric or out of range
    """
    if isinstance(probability, bool) or not isinstance(probability, Real):
        raise InvalidProbabilityError(f"Probability must be a number, got {probability!r}")
    value = float(probability)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise InvalidProbabilityError(f"Probability must be within [0, 1], got {value}")
    return value


class DecisionPolicy:
    """Pure mapping from probability to Decision via fixed cut points."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def categorize(self, probability) -> RiskCategory:
        """Map a probability to its RiskCategory."""
        value = validate_probability(probability)
        if value < self.config.low_risk_threshold:
            return RiskCategory.LOW
        if value < self.config.high_risk_threshold:
            return RiskCategory.MEDIUM
        return RiskCategory.HIGH

    def decide(self, probability) -> Decision:
        """Map a probability to its category and recommended action."""
        category = self.categorize(probability)
        return Decision(category=category, action=self.config.actions[category.value])


DEFAULT_POLICY = DecisionPolicy()


def categorize(probability) -> RiskCategory:
    """Categorize with the default cut points."""
    return DEFAULT_POLICY.categorize(probability)


def decide(probability) -> Decision:
    """Decide with the default cut points and actions."""
    return DEFAULT_POLICY.decide(probability)
