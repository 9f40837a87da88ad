"""
Experiment runner for PAYG credit model training.

Single entry point for running experiments.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
import uuid

from sklearn.model_selection import train_test_split

from .artifacts import ArtifactManager
from .config import ExperimentConfig
from .data import LABEL_COLUMN, generate_labelled_data, load_labelled_data
from .evaluator import Evaluator
from .logger import ExperimentLogger
from .trainer import Trainer


@dataclass
class ExperimentResult:
    """Container for experiment results."""

    experiment_id: str
    config: ExperimentConfig
    model_version: str
    metrics: dict
    passed: bool
    timestamp: datetime
    duration_seconds: float
    artifact_path: Optional[Path] = None

    def summary(self) -> str:
        """Human-readable summary."""
        status = "PASS" if self.passed else "FAIL"
        test_auc = self.metrics.get("test_auc_roc", 0)
        test_brier = self.metrics.get("test_brier", 0)
        test_acc = self.metrics.get("test_accuracy", 0)
        test_rec = self.metrics.get("test_recall", 0)

        return (
            f"[{self.experiment_id}] {self.config.name} - {status}\n"
            f"  Model:    {self.model_version}\n"
            f"  AUC:      {test_auc:.3f}\n"
            f"  Brier:    {test_brier:.3f}\n"
            f"  Accuracy: {test_acc:.1%}\n"
            f"  Recall:   {test_rec:.1%}"
        )


class ExperimentRunner:
    """
    Single entry point for running experiments.

    Usage:
        runner = ExperimentRunner()

        # From YAML config
        result = runner.run_from_yaml("configs/baseline.yaml")

        # From ExperimentConfig object
        config = ExperimentConfig(name="custom", ...)
        result = runner.run(config)

        # Batch run
        results = runner.run_batch(["configs/baseline.yaml", "configs/strong_l2.yaml"])
    """

    def __init__(
        self,
        base_path: Optional[Path] = None,
        logs_dir: str = "logs",
        artifacts_dir: str = "artifacts",
    ):
        """
        Initialize runner.

        Args:
            base_path: Base path for experiments (default: this file's parent)
            logs_dir: Subdirectory for logs
            artifacts_dir: Subdirectory for artifacts
        """
        self.base_path = Path(base_path) if base_path else Path(__file__).parent
        self.logs_dir = self.base_path / logs_dir
        self.artifacts_dir = self.base_path / artifacts_dir

        self.logger = ExperimentLogger(self.logs_dir)
        self.artifact_manager = ArtifactManager(self.artifacts_dir)
        self.trainer = Trainer()
        self.evaluator = Evaluator()

    def generate_experiment_id(self) -> str:
        """Generate unique experiment ID: exp_YYYYMMDD_XXXX"""
        date_str = datetime.now().strftime("%Y%m%d")
        short_uuid = uuid.uuid4().hex[:4]
        return f"exp_{date_str}_{short_uuid}"

    def run(self, config: ExperimentConfig) -> ExperimentResult:
        """
        Run a single experiment.

        Args:
            config: ExperimentConfig to run

        Returns:
            ExperimentResult with metrics and pass/fail status
        """
        experiment_id = self.generate_experiment_id()
        start_time = datetime.now()

        try:
            # Load data
            if config.data_path:
                df = load_labelled_data(self.base_path / config.data_path)
            else:
                df = generate_labelled_data(config.n_customers, config.seed)

            train_df, test_df = train_test_split(
                df,
                test_size=config.test_size,
                random_state=config.seed,
                stratify=df[LABEL_COLUMN],
            )

            # Fit and score
            artifact = self.trainer.fit(train_df, config)
            train_scored = self.evaluator.score_dataset(train_df, artifact)
            test_scored = self.evaluator.score_dataset(test_df, artifact)

            # Flatten metrics with split prefixes
            metrics = {}
            for split, scored in [("train", train_scored), ("test", test_scored)]:
                for metric_name, value in self.evaluator.calculate_metrics(scored).items():
                    metrics[f"{split}_{metric_name}"] = value

            passed = self._evaluate_pass_fail(metrics, config)
            duration = (datetime.now() - start_time).total_seconds()

            result = ExperimentResult(
                experiment_id=experiment_id,
                config=config,
                model_version=artifact.model_version,
                metrics=metrics,
                passed=passed,
                timestamp=start_time,
                duration_seconds=duration,
            )

            # Save full artifacts only if passed
            if passed:
                result.artifact_path = self.artifact_manager.save_artifacts(
                    result,
                    artifact=artifact,
                    test_predictions=test_scored,
                    category_table=self.evaluator.category_table(test_scored),
                )

            # Always log
            self.logger.log_experiment(result)

            return result

        except Exception as e:
            # Log failure
            self.logger.log_failure(experiment_id, config, str(e))
            raise

    def run_from_yaml(self, config_path: str | Path) -> ExperimentResult:
        """
        Load config from YAML and run.

        Args:
            config_path: Path to YAML config (relative to base_path or absolute)

        Returns:
            ExperimentResult
        """
        path = Path(config_path)
        if not path.is_absolute():
            path = self.base_path / path
        config = ExperimentConfig.from_yaml(path)
        return self.run(config)

    def run_batch(
        self,
        config_paths: list[str | Path],
        stop_on_failure: bool = False,
    ) -> list[ExperimentResult]:
        """
        Run multiple experiments in sequence.

        Args:
            config_paths: List of paths to YAML configs
            stop_on_failure: Whether to stop if an experiment errors

        Returns:
            List of ExperimentResults
        """
        results = []
        for path in config_paths:
            try:
                result = self.run_from_yaml(path)
                results.append(result)
                print(result.summary())
                print()
            except Exception as e:
                print(f"ERROR: {path} - {e}")
                if stop_on_failure:
                    raise
        return results

    def list_experiments(self):
        """
        Get summary of all past experiments.

        Returns:
            DataFrame with experiment history
        """
        return self.logger.get_summary_dataframe()

    def _evaluate_pass_fail(
        self,
        metrics: dict,
        config: ExperimentConfig,
    ) -> bool:
        """Evaluate if experiment passes kill criteria."""
        if metrics["test_auc_roc"] < config.min_auc:
            return False

        if metrics["test_accuracy"] < config.min_accuracy:
            return False

        if config.max_brier is not None and metrics["test_brier"] > config.max_brier:
            return False

        return True
