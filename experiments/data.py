"""
Labelled datasets for PAYG credit experiments.

Synthetic customers come from payg_credit.generate_sample_data; their
default labels are drawn from a labelling model (the bundled reference
model unless another artifact is given), so a fitted model can be
checked against known ground truth.
"""

from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from payg_credit import FeatureVectorBuilder, ModelArtifact, ScoringEngine, generate_sample_data
from payg_credit.artifacts import REFERENCE_MODEL_PATH


LABEL_COLUMN = "DEFAULTED"


def generate_labelled_data(
    n_customers: int = 5000,
    seed: int = 42,
    artifact: Optional[ModelArtifact] = None,
) -> pd.DataFrame:
    """
    Generate synthetic customers with default labels.

    Args:
        n_customers: Number of customers
        seed: Random seed for features and labels
        artifact: Labelling model (default: bundled reference model)

    Returns:
        Raw records plus a 0/1 DEFAULTED column
    """
    df = generate_sample_data(n_customers=n_customers, seed=seed)

    engine = ScoringEngine()
    if artifact is None:
        engine.load(REFERENCE_MODEL_PATH)
    else:
        engine.install(artifact)

    features = FeatureVectorBuilder().build_frame(df)
    probabilities = engine.score_frame(features)

    rng = np.random.default_rng(seed + 1)
    df[LABEL_COLUMN] = (rng.random(n_customers) < probabilities).astype(int)
    return df


def load_labelled_data(path: Path | str) -> pd.DataFrame:
    """
    Load a labelled CSV of raw customer records.

    Raises:
        ValueError: If the label column is missing or not binary
    """
    df = pd.read_csv(path, dtype={"customer_id": str})
    if LABEL_COLUMN not in df.columns:
        raise ValueError(f"Missing label column {LABEL_COLUMN} in {path}")
    if not df[LABEL_COLUMN].isin([0, 1]).all():
        raise ValueError(f"{LABEL_COLUMN} must contain only 0 and 1")
    return df
