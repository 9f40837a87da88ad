"""
Exception taxonomy for the credit scoring core.

Every failure surfaces to the caller with a specific kind; no error path
ever falls back to a default score.
"""


class CreditScoringError(Exception):
    """Base class for all credit scoring errors."""


class SchemaError(CreditScoringError, ValueError):
    """Raw customer record is missing fields or carries invalid values."""


class ModelNotLoadedError(CreditScoringError):
    """Scoring was requested before any model artifact was loaded."""


class ModelLoadError(CreditScoringError):
    """Model artifact is corrupt, unsupported or incompatible."""


class ExplanationError(CreditScoringError):
    """The active model cannot attribute a prediction to its features."""


class InvalidProbabilityError(CreditScoringError, ValueError):
    """A probability outside [0, 1] reached the decision policy."""


class ScoringTimeoutError(CreditScoringError, TimeoutError):
    """A batch did not finish within the caller-supplied timeout."""
