"""
Experiment configuration for PAYG credit model training.

Defines the ExperimentConfig dataclass for YAML-driven experimentation.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class ExperimentConfig:
    """
    Configuration for a single training experiment.

    Load from YAML:
        config = ExperimentConfig.from_yaml("configs/baseline.yaml")

    Create programmatically:
        config = ExperimentConfig(
            name="strong_l2",
            description="Heavier regularisation",
            regularization=0.1,
        )
    """

    # Metadata
    name: str
    description: str = ""

    # Data: synthetic customers unless data_path points at a labelled CSV
    # (relative to experiments/, must carry a DEFAULTED column)
    n_customers: int = 5000
    seed: int = 42
    test_size: float = 0.25
    data_path: Optional[str] = None

    # Model: standardised logistic regression
    regularization: float = 1.0  # inverse L2 strength (scikit-learn C)
    max_iter: int = 1000
    model_version: Optional[str] = None  # default: <name>-<YYYYMMDD>

    # Pass/fail criteria (kill criteria)
    min_auc: float = 0.65
    min_accuracy: float = 0.60
    max_brier: Optional[float] = None

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ExperimentConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)
