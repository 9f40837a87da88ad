"""
Experiment pipeline for PAYG credit model training.

Usage:
    from experiments import ExperimentRunner, ExperimentConfig

    # Run from YAML
    runner = ExperimentRunner()
    result = runner.run_from_yaml("configs/baseline.yaml")
    print(result.summary())

    # Run programmatically
    config = ExperimentConfig(
        name="custom",
        description="Lighter regularisation",
        regularization=5.0,
    )
    result = runner.run(config)

CLI:
    python -m experiments.run configs/baseline.yaml
    python -m experiments.run --list
"""

from .config import ExperimentConfig
from .runner import ExperimentRunner, ExperimentResult
from .evaluator import Evaluator
from .trainer import Trainer
from .data import LABEL_COLUMN, generate_labelled_data, load_labelled_data
from .logger import ExperimentLogger
from .artifacts import ArtifactManager

__all__ = [
    "ExperimentConfig",
    "ExperimentRunner",
    "ExperimentResult",
    "Evaluator",
    "Trainer",
    "ExperimentLogger",
    "ArtifactManager",
    "LABEL_COLUMN",
    "generate_labelled_data",
    "load_labelled_data",
]
