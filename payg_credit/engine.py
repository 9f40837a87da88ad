"""
Scoring Engine.

Holds the single active model artifact and turns feature vectors into
default probabilities.

Lifecycle: Unloaded -> Loaded on a successful load()/install(), back to
Unloaded only through unload(). Loads are serialised by a lock and the
active artifact is published by swapping one reference to an immutable
ModelHandle, so scoring calls never lock and never observe a partially
installed model. A rejected artifact leaves the previous handle active.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import threading

import numpy as np
import pandas as pd

from .artifacts import ModelArtifact, load_artifact
from .config import ScoringConfig, DEFAULT_CONFIG
from .errors import ModelLoadError, ModelNotLoadedError, SchemaError
from .features import CustomerFeatures, encode_frame
from .models import RiskModel


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelHandle:
    """
    Immutable snapshot of the active model.

    Attributes:
        artifact: Loaded ModelArtifact
        generation: Increments on every successful load/install
        loaded_at: UTC time the artifact became active
    """

    artifact: ModelArtifact
    generation: int
    loaded_at: datetime

    @property
    def model(self) -> RiskModel:
        return self.artifact.model

    @property
    def model_version(self) -> str:
        return self.artifact.model_version


class ScoringEngine:
    """
    Pure scoring over a swappable, immutable model artifact.

    Usage:
        engine = ScoringEngine()
        engine.load("models/payg_2024_06.yaml")
        probability = engine.score(features)
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize an unloaded engine.

        Args:
            config: ScoringConfig instance. Uses DEFAULT_CONFIG if None.
        """
        self.config = config or DEFAULT_CONFIG
        self._lock = threading.Lock()
        self._handle: Optional[ModelHandle] = None
        self._generation = 0

    @classmethod
    def from_path(
        cls, path: Path | str, config: Optional[ScoringConfig] = None
    ) -> "ScoringEngine":
        """Create an engine and load an artifact into it."""
        engine = cls(config)
        engine.load(path)
        return engine

    @property
    def is_loaded(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> Optional[ModelHandle]:
        """Current handle, or None when unloaded."""
        return self._handle

    def acquire(self) -> ModelHandle:
        """
        Snapshot the active model for one or more scoring calls.

        Raises:
            ModelNotLoadedError: If no artifact is loaded
        """
        handle = self._handle
        if handle is None:
            raise ModelNotLoadedError("No model artifact loaded; call load() first")
        return handle

    def load(self, path: Path | str) -> ModelHandle:
        """
        Load, validate and activate an artifact from disk.

        Args:
            path: YAML document or joblib bundle

        Returns:
            The newly active ModelHandle

        Raises:
            ModelLoadError: Artifact rejected; the previous one stays active
        """
        with self._lock:
            try:
                artifact = load_artifact(path, self.config.min_format_version)
            except ModelLoadError as exc:
                logger.warning(
                    "Rejected model artifact path=%s active=%s reason=%s",
                    path, self._active_version(), exc,
                )
                raise
            return self._publish(artifact)

    def install(self, artifact: ModelArtifact) -> ModelHandle:
        """
        Validate and activate an in-memory artifact.

        Raises:
            ModelLoadError: Artifact rejected; the previous one stays active
        """
        with self._lock:
            if not isinstance(artifact, ModelArtifact):
                raise ModelLoadError(
                    f"Expected ModelArtifact, got {type(artifact).__name__}"
                )
            try:
                artifact.validate(self.config.min_format_version)
            except ModelLoadError as exc:
                logger.warning(
                    "Rejected model artifact version=%s active=%s reason=%s",
                    artifact.model_version, self._active_version(), exc,
                )
                raise
            return self._publish(artifact)

    def unload(self) -> None:
        """Deactivate the current artifact. In-flight calls keep their snapshot."""
        with self._lock:
            previous = self._handle
            self._handle = None
        if previous is not None:
            logger.info("Unloaded model artifact version=%s", previous.model_version)

    def score(
        self, features: CustomerFeatures, handle: Optional[ModelHandle] = None
    ) -> float:
        """
        Default probability for one customer.

        Args:
            features: Fully populated CustomerFeatures
            handle: Snapshot to score against (default: active model)

        Returns:
            Probability in [0, 1]
        """
        handle = handle or self.acquire()
        vector = self._vector(features)
        return float(handle.model.predict_proba(vector)[0])

    def raw_score(
        self, features: CustomerFeatures, handle: Optional[ModelHandle] = None
    ) -> float:
        """Pre-probability (log-odds) score for one customer."""
        handle = handle or self.acquire()
        vector = self._vector(features)
        return float(handle.model.raw_score(vector)[0])

    def score_frame(
        self, frame: pd.DataFrame, handle: Optional[ModelHandle] = None
    ) -> np.ndarray:
        """
        Vectorized probabilities for a validated feature frame.

        Args:
            frame: Output of FeatureVectorBuilder.build_frame
            handle: Snapshot to score against (default: active model)

        Returns:
            Array of probabilities aligned with frame rows
        """
        handle = handle or self.acquire()
        if frame.empty:
            return np.empty(0, dtype=np.float64)
        return handle.model.predict_proba(encode_frame(frame))

    def _publish(self, artifact: ModelArtifact) -> ModelHandle:
        """Swap in a new handle. Caller holds the lock."""
        self._generation += 1
        handle = ModelHandle(
            artifact=artifact,
            generation=self._generation,
            loaded_at=datetime.now(timezone.utc),
        )
        previous = self._active_version()
        self._handle = handle
        logger.info(
            "Activated model artifact version=%s type=%s generation=%d previous=%s",
            artifact.model_version, artifact.model_type, handle.generation, previous,
        )
        return handle

    def _active_version(self) -> Optional[str]:
        handle = self._handle
        return handle.model_version if handle else None

    @staticmethod
    def _vector(features: CustomerFeatures) -> np.ndarray:
        if not isinstance(features, CustomerFeatures):
            raise SchemaError(
                f"Expected CustomerFeatures, got {type(features).__name__}"
            )
        return features.to_vector()[np.newaxis, :]
