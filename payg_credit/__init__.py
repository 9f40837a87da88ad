"""
PAYG Credit Scoring Package

Scores Pay-As-You-Go solar customers for default risk: a probability,
a Low/Medium/High category, a recommended action and the features that
drove the score.
"""

from .artifacts import REFERENCE_MODEL_PATH, ModelArtifact, load_artifact, save_artifact
from .config import ScoringConfig, DEFAULT_CONFIG
from .engine import ModelHandle, ScoringEngine
from .errors import (
    CreditScoringError,
    ExplanationError,
    InvalidProbabilityError,
    ModelLoadError,
    ModelNotLoadedError,
    SchemaError,
    ScoringTimeoutError,
)
from .explanation import Explanation, ExplanationGenerator
from .features import CustomerFeatures, FeatureVectorBuilder
from .policy import Decision, DecisionPolicy, RiskCategory, categorize, decide
from .scorer import CreditScorer, ScoreResult, ScoringResult, generate_sample_data

__all__ = [
    "CreditScorer",
    "ScoreResult",
    "ScoringResult",
    "ScoringConfig",
    "DEFAULT_CONFIG",
    "ScoringEngine",
    "ModelHandle",
    "ModelArtifact",
    "load_artifact",
    "save_artifact",
    "REFERENCE_MODEL_PATH",
    "CustomerFeatures",
    "FeatureVectorBuilder",
    "Explanation",
    "ExplanationGenerator",
    "Decision",
    "DecisionPolicy",
    "RiskCategory",
    "categorize",
    "decide",
    "generate_sample_data",
    "CreditScoringError",
    "SchemaError",
    "ModelNotLoadedError",
    "ModelLoadError",
    "ExplanationError",
    "InvalidProbabilityError",
    "ScoringTimeoutError",
]
__version__ = "1.0.0"
