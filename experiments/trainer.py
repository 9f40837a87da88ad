"""
Model training for PAYG credit experiments.

Fits a standardised logistic regression and packages it as a linear
ModelArtifact, so the scoring engine can explain every prediction.
"""

from datetime import datetime, timezone
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import StandardScaler

from payg_credit import FeatureVectorBuilder, ModelArtifact
from payg_credit.features import encode_frame
from payg_credit.models import EstimatorModel, LogisticModel
from payg_credit.schemas import FEATURE_NAMES

from .config import ExperimentConfig
from .data import LABEL_COLUMN


class Trainer:
    """Turns labelled raw records into model artifacts."""

    def __init__(self, builder: Optional[FeatureVectorBuilder] = None):
        self.builder = builder or FeatureVectorBuilder()

    def prepare(self, df: pd.DataFrame) -> tuple[np.ndarray, np.ndarray]:
        """
        Build the design matrix and labels.

        Args:
            df: Raw records with a DEFAULTED column

        Returns:
            (X, y) with X in schema feature order
        """
        if LABEL_COLUMN not in df.columns:
            raise ValueError(f"Missing label column {LABEL_COLUMN}")
        y = df[LABEL_COLUMN].to_numpy(dtype=int)
        if len(np.unique(y)) < 2:
            raise ValueError("Training data must contain both defaulters and non-defaulters")
        X = encode_frame(self.builder.build_frame(df))
        return X, y

    def fit(self, df: pd.DataFrame, config: ExperimentConfig) -> ModelArtifact:
        """
        Fit a standardised logistic regression.

        Args:
            df: Labelled training records
            config: ExperimentConfig with regularisation settings

        Returns:
            Linear ModelArtifact (supports attribution)
        """
        X, y = self.prepare(df)

        scaler = StandardScaler().fit(X)
        # Constant columns get unit scale
        scales = np.where(scaler.scale_ > 0, scaler.scale_, 1.0)
        X_std = (X - scaler.mean_) / scales

        clf = LogisticRegression(C=config.regularization, max_iter=config.max_iter)
        clf.fit(X_std, y)

        model = LogisticModel(
            coefficients=clf.coef_[0],
            intercept=clf.intercept_[0],
            means=scaler.mean_,
            scales=scales,
        )
        return ModelArtifact(
            model_version=self._version(config),
            model=model,
            feature_names=FEATURE_NAMES,
            trained_at=datetime.now(timezone.utc).isoformat(),
            metadata=self._metadata(config, y),
        )

    def fit_estimator(
        self, df: pd.DataFrame, config: ExperimentConfig, estimator
    ) -> ModelArtifact:
        """
        Fit an arbitrary scikit-learn classifier as an opaque artifact.

        Opaque artifacts score normally but cannot be explained.
        """
        X, y = self.prepare(df)
        estimator.fit(X, y)
        return ModelArtifact(
            model_version=self._version(config),
            model=EstimatorModel(estimator, n_features=len(FEATURE_NAMES)),
            feature_names=FEATURE_NAMES,
            trained_at=datetime.now(timezone.utc).isoformat(),
            metadata=self._metadata(config, y),
        )

    @staticmethod
    def _version(config: ExperimentConfig) -> str:
        if config.model_version:
            return config.model_version
        return f"{config.name}-{datetime.now().strftime('%Y%m%d')}"

    @staticmethod
    def _metadata(config: ExperimentConfig, y: np.ndarray) -> dict:
        return {
            "experiment": config.name,
            "training_rows": int(len(y)),
            "default_rate": round(float(y.mean()), 4),
            "regularization": config.regularization,
        }
