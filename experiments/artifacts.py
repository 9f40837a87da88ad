"""
Artifact management for PAYG credit experiments.

Saves the trained model, plots and CSVs for PASSING experiments only.
"""

from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from payg_credit import ModelArtifact
from payg_credit.artifacts import load_artifact, save_artifact

from .data import LABEL_COLUMN

if TYPE_CHECKING:
    from .runner import ExperimentResult


MODEL_FILENAME = "model.yaml"


class ArtifactManager:
    """Manages saving experiment artifacts."""

    def __init__(self, artifacts_dir: Path):
        """
        Initialize artifact manager.

        Args:
            artifacts_dir: Base directory for artifacts
        """
        self.artifacts_dir = Path(artifacts_dir)
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)

    def save_artifacts(
        self,
        result: "ExperimentResult",
        artifact: ModelArtifact,
        test_predictions: pd.DataFrame,
        category_table: pd.DataFrame,
    ) -> Path:
        """
        Save full artifacts for a passing experiment.

        Args:
            result: ExperimentResult from runner
            artifact: Trained model artifact
            test_predictions: Scored test set with DEFAULTED
            category_table: Per-category volume and default rate

        Returns:
            Path to experiment artifacts directory
        """
        exp_dir = self.artifacts_dir / result.experiment_id
        exp_dir.mkdir(exist_ok=True)

        # Save config and model
        result.config.to_yaml(exp_dir / "config.yaml")
        save_artifact(artifact, exp_dir / MODEL_FILENAME)

        # Save metrics
        metrics_df = pd.DataFrame([{
            "split": "test",
            "model_version": result.model_version,
            **{k.removeprefix("test_"): v for k, v in result.metrics.items() if k.startswith("test_")}
        }])
        metrics_df.to_csv(exp_dir / "metrics.csv", index=False)

        # Save predictions and category table
        columns = ["customer_id", "RISK_PROBABILITY", "RISK_CATEGORY", LABEL_COLUMN]
        test_predictions[columns].to_csv(exp_dir / "predictions.csv", index=False)
        category_table.to_csv(exp_dir / "risk_categories.csv", index_label="RISK_CATEGORY")

        # Generate plots
        self._plot_calibration(test_predictions, exp_dir)
        self._plot_category_default_rates(category_table, exp_dir)

        return exp_dir

    def _plot_calibration(self, df: pd.DataFrame, output_dir: Path) -> None:
        """Predicted vs observed default rate by probability decile."""
        deciles = pd.qcut(df["RISK_PROBABILITY"], q=10, labels=False, duplicates="drop")
        calibration = (
            df.groupby(deciles)
            .agg(
                predicted=("RISK_PROBABILITY", "mean"),
                observed=(LABEL_COLUMN, "mean"),
            )
        )

        fig, ax = plt.subplots(figsize=(8, 6))
        ax.plot([0, 1], [0, 1], color="grey", linestyle="--", alpha=0.7, label="Perfect")
        ax.plot(
            calibration["predicted"],
            calibration["observed"],
            marker="o",
            linewidth=2,
            label="Model",
        )
        ax.set_xlabel("Mean predicted default probability")
        ax.set_ylabel("Observed default rate")
        ax.set_title("Calibration by Decile")
        ax.legend()
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        plt.savefig(output_dir / "calibration.png", dpi=150)
        plt.close()

    def _plot_category_default_rates(self, table: pd.DataFrame, output_dir: Path) -> None:
        """Observed default rate per risk category."""
        plot_df = table.reset_index().rename(columns={"index": "RISK_CATEGORY"})

        fig, ax = plt.subplots(figsize=(8, 6))
        sns.barplot(
            data=plot_df,
            x="RISK_CATEGORY",
            y="default_rate",
            hue="RISK_CATEGORY",
            palette={"Low": "seagreen", "Medium": "orange", "High": "firebrick"},
            legend=False,
            ax=ax,
        )
        for i, row in plot_df.iterrows():
            ax.annotate(
                f"n={row['count']}",
                (i, row["default_rate"]),
                ha="center",
                va="bottom",
            )
        ax.set_xlabel("Risk category")
        ax.set_ylabel("Observed default rate")
        ax.set_title("Default Rate by Risk Category")
        ax.set_ylim(0, 1)

        plt.tight_layout()
        plt.savefig(output_dir / "default_rate_by_category.png", dpi=150)
        plt.close()

    def load_experiment(self, experiment_id: str) -> dict | None:
        """
        Load artifacts for a specific experiment.

        Args:
            experiment_id: Experiment ID to load

        Returns:
            Dictionary with loaded artifacts, or None if not found
        """
        exp_dir = self.artifacts_dir / experiment_id
        if not exp_dir.exists():
            return None

        from .config import ExperimentConfig

        return {
            "config": ExperimentConfig.from_yaml(exp_dir / "config.yaml"),
            "artifact": load_artifact(exp_dir / MODEL_FILENAME),
            "metrics": pd.read_csv(exp_dir / "metrics.csv"),
            "risk_categories": pd.read_csv(exp_dir / "risk_categories.csv", index_col=0),
            "predictions": pd.read_csv(exp_dir / "predictions.csv", dtype={"customer_id": str}),
        }
