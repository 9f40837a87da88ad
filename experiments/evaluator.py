"""
Evaluator for PAYG credit experiments.

Scores labelled data with a candidate artifact and calculates
discrimination, calibration and per-category metrics.
"""

from typing import Optional

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    brier_score_loss,
    confusion_matrix,
    f1_score,
    log_loss,
    precision_score,
    recall_score,
    roc_auc_score,
)

from payg_credit import CreditScorer, ModelArtifact, ScoringConfig, ScoringEngine
from payg_credit.policy import RiskCategory

from .data import LABEL_COLUMN


CATEGORY_ORDER = [c.value for c in RiskCategory]


class Evaluator:
    """Handles scoring and metric calculation for experiments."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score_dataset(self, df: pd.DataFrame, artifact: ModelArtifact) -> pd.DataFrame:
        """
        Score labelled records with a candidate artifact.

        Args:
            df: Raw records with a DEFAULTED column
            artifact: Candidate model

        Returns:
            Scored DataFrame with RISK_PROBABILITY, RISK_CATEGORY and DEFAULTED
        """
        engine = ScoringEngine(self.config)
        engine.install(artifact)
        scored = CreditScorer(engine, self.config).score(df).df
        scored[LABEL_COLUMN] = df[LABEL_COLUMN].to_numpy()
        return scored

    def calculate_metrics(self, df: pd.DataFrame) -> dict:
        """
        Calculate all metrics for a scored dataset.

        Classification metrics treat the High category (p >= high threshold)
        as a predicted default.

        Args:
            df: Scored DataFrame with RISK_PROBABILITY and DEFAULTED

        Returns:
            Dictionary with all metrics
        """
        y_true = df[LABEL_COLUMN]
        y_prob = df["RISK_PROBABILITY"]
        y_pred = (y_prob >= self.config.high_risk_threshold).astype(int)

        cm = confusion_matrix(y_true, y_pred, labels=[0, 1])

        metrics = {
            "auc_roc": roc_auc_score(y_true, y_prob)
            if len(np.unique(y_true)) > 1
            else 0.0,
            "brier": brier_score_loss(y_true, y_prob),
            "log_loss": log_loss(y_true, y_prob, labels=[0, 1]),
            "accuracy": accuracy_score(y_true, y_pred),
            "precision": precision_score(y_true, y_pred, zero_division=0),
            "recall": recall_score(y_true, y_pred, zero_division=0),
            "f1": f1_score(y_true, y_pred, zero_division=0),
            "default_rate": float(y_true.mean()),
            "true_positives": int(cm[1, 1]),
            "true_negatives": int(cm[0, 0]),
            "false_positives": int(cm[0, 1]),
            "false_negatives": int(cm[1, 0]),
        }

        table = self.category_table(df)
        for category in CATEGORY_ORDER:
            key = category.lower()
            metrics[f"share_{key}"] = float(table.loc[category, "share"])
            metrics[f"default_rate_{key}"] = float(table.loc[category, "default_rate"])

        return metrics

    def category_table(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Volume and observed default rate per risk category.

        Returns:
            DataFrame indexed Low/Medium/High with count, share,
            default_rate and avg_probability
        """
        table = (
            df.groupby("RISK_CATEGORY")
            .agg(
                count=("customer_id", "count"),
                default_rate=(LABEL_COLUMN, "mean"),
                avg_probability=("RISK_PROBABILITY", "mean"),
            )
            .reindex(CATEGORY_ORDER)
        )
        table["count"] = table["count"].fillna(0).astype(int)
        table["share"] = table["count"] / max(len(df), 1)
        table["default_rate"] = table["default_rate"].fillna(0.0)
        table["avg_probability"] = table["avg_probability"].fillna(0.0)
        return table
