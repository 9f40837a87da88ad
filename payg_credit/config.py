"""
Scoring configuration for the PAYG credit model.

Decision cut points, recommended actions and runtime knobs live here.
Cut points follow the credit policy:
- p < 0.30: approve
- 0.30 <= p < 0.60: manual review
- p >= 0.60: detailed review
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Optional

import yaml


@dataclass
class ScoringConfig:
    """
    Configuration for the scoring pipeline.

    Load from YAML:
        config = ScoringConfig.from_yaml("configs/scoring.yaml")

    Create programmatically:
        config = ScoringConfig(top_k=8, batch_workers=4)
    """

    # === Decision Policy ===
    low_risk_threshold: float = 0.30   # below: Low
    high_risk_threshold: float = 0.60  # at or above: High
    actions: Dict[str, str] = field(default_factory=lambda: {
        "Low": "Approve - Low Risk",
        "Medium": "Review - Medium Risk",
        "High": "Detailed Review - High Risk",
    })

    # === Explanations ===
    top_k: int = 5
    # Max gap between a reported probability and its reconstruction
    attribution_tolerance: float = 1e-6

    # === Model Artifacts ===
    min_format_version: int = 1

    # === Batch Scoring ===
    batch_workers: int = 8
    batch_timeout: Optional[float] = None  # seconds, None = unbounded

    # === Metadata ===
    version: str = "1.0.0"

    def __post_init__(self):
        if not 0.0 < self.low_risk_threshold < self.high_risk_threshold <= 1.0:
            raise ValueError(
                "Thresholds must satisfy 0 < low < high <= 1, got "
                f"low={self.low_risk_threshold}, high={self.high_risk_threshold}"
            )
        missing = {"Low", "Medium", "High"} - set(self.actions)
        if missing:
            raise ValueError(f"Missing actions for categories: {sorted(missing)}")
        if self.top_k < 1:
            raise ValueError(f"top_k must be positive, got {self.top_k}")
        if self.batch_workers < 1:
            raise ValueError(f"batch_workers must be positive, got {self.batch_workers}")
        if self.attribution_tolerance < 0:
            raise ValueError(
                f"attribution_tolerance must be non-negative, got {self.attribution_tolerance}"
            )
        if self.batch_timeout is not None and self.batch_timeout <= 0:
            raise ValueError(f"batch_timeout must be positive, got {self.batch_timeout}")

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ScoringConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
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


# Default configuration instance
DEFAULT_CONFIG = ScoringConfig()
