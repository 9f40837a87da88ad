"""
Model artifact persistence.

An artifact is an immutable, versioned parameter set. Two on-disk formats:
- YAML document (.yaml/.yml): standardised logistic regression, readable
  and diffable, supports attribution
- joblib bundle (.joblib/.pkl): any fitted scikit-learn classifier,
  scored as a black box

Every loaded artifact is validated (format name, format version, model
type, feature set, parameter shapes) before it is handed to the caller.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import joblib
import yaml

from .errors import ModelLoadError
from .models import EstimatorModel, LogisticModel, RiskModel, supports_attribution
from .schemas import FEATURE_NAMES


ARTIFACT_FORMAT = "payg-credit-model"
FORMAT_VERSION = 1

REFERENCE_MODEL_PATH = Path(__file__).parent / "data" / "reference_model.yaml"

YAML_SUFFIXES = (".yaml", ".yml")
JOBLIB_SUFFIXES = (".joblib", ".pkl")


@dataclass(frozen=True)
class ModelArtifact:
    """
    Versioned, read-only model parameter set.

    Attributes:
        model_version: Human-readable model version, e.g. "2024.06.1"
        model: Fitted RiskModel
        feature_names: Input features in the order the model expects
        format_version: Artifact format version
        trained_at: ISO-8601 training timestamp, if known
        source: Path the artifact was loaded from, if any
        metadata: Free-form training metadata
    """

    model_version: str
    model: RiskModel
    feature_names: Tuple[str, ...] = FEATURE_NAMES
    format_version: int = FORMAT_VERSION
    trained_at: Optional[str] = None
    source: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def model_type(self) -> str:
        return self.model.model_type

    @property
    def supports_attribution(self) -> bool:
        return supports_attribution(self.model)

    def validate(self, min_format_version: int = 1) -> None:
        """
        Check the artifact can serve the 40-feature schema.

        Raises:
            ModelLoadError: If the artifact is unsupported or inconsistent
        """
        _check_format_version(self.format_version, min_format_version)
        if not self.model_version:
            raise ModelLoadError("Artifact has no model_version")
        if tuple(self.feature_names) != FEATURE_NAMES:
            raise ModelLoadError(
                "Artifact feature set does not match the scoring schema: "
                f"missing={sorted(set(FEATURE_NAMES) - set(self.feature_names))}, "
                f"unknown={sorted(set(self.feature_names) - set(FEATURE_NAMES))}"
            )
        if self.model.n_features != len(FEATURE_NAMES):
            raise ModelLoadError(
                f"Model expects {self.model.n_features} features, "
                f"schema has {len(FEATURE_NAMES)}"
            )


def load_artifact(path: Path | str, min_format_version: int = 1) -> ModelArtifact:
    """
    Load and validate a model artifact.

    Args:
        path: YAML document or joblib bundle
        min_format_version: Oldest format version accepted

    Returns:
        Validated ModelArtifact

    Raises:
        ModelLoadError: Missing, unreadable, corrupt or incompatible artifact
    """
    path = Path(path)
    if not path.is_file():
        raise ModelLoadError(f"Model artifact not found: {path}")

    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        try:
            with open(path, encoding="utf-8") as f:
                document = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ModelLoadError(f"Unreadable model artifact {path}: {exc}") from exc
        artifact = artifact_from_document(document, source=str(path))
    elif suffix in JOBLIB_SUFFIXES:
        try:
            bundle = joblib.load(path)
        except Exception as exc:
            raise ModelLoadError(f"Unreadable model artifact {path}: {exc}") from exc
        artifact = artifact_from_bundle(bundle, source=str(path))
    else:
        raise ModelLoadError(f"Unsupported artifact format: {path.name}")

    artifact.validate(min_format_version)
    return artifact


def artifact_from_document(document: Any, source: Optional[str] = None) -> ModelArtifact:
    """Build a linear ModelArtifact from a parsed YAML document."""
    if not isinstance(document, dict):
        raise ModelLoadError("Model artifact must be a mapping")
    _check_header(document)

    model_type = document.get("model_type")
    if model_type != LogisticModel.model_type:
        raise ModelLoadError(f"Unsupported model_type for YAML artifact: {model_type!r}")

    rows = document.get("features")
    if not isinstance(rows, list):
        raise ModelLoadError("Model artifact has no feature list")

    by_name = {}
    for row in rows:
        if not isinstance(row, dict) or not isinstance(row.get("name"), str):
            raise ModelLoadError(f"Malformed feature entry: {row!r}")
        if row["name"] in by_name:
            raise ModelLoadError(f"Duplicate feature entry: {row['name']}")
        by_name[row["name"]] = row

    missing = [name for name in FEATURE_NAMES if name not in by_name]
    unknown = sorted(set(by_name) - set(FEATURE_NAMES))
    if missing or unknown:
        raise ModelLoadError(
            f"Artifact feature set does not match the scoring schema: "
            f"missing={missing}, unknown={unknown}"
        )

    try:
        model = LogisticModel(
            coefficients=[by_name[name]["coefficient"] for name in FEATURE_NAMES],
            intercept=document["intercept"],
            means=[by_name[name]["mean"] for name in FEATURE_NAMES],
            scales=[by_name[name]["scale"] for name in FEATURE_NAMES],
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelLoadError(f"Invalid model parameters: {exc}") from exc

    trained_at = document.get("trained_at")
    return ModelArtifact(
        model_version=str(document.get("model_version") or ""),
        model=model,
        feature_names=FEATURE_NAMES,
        format_version=document["format_version"],
        trained_at=str(trained_at) if trained_at is not None else None,
        source=source,
        metadata=_metadata(document),
    )


def artifact_from_bundle(bundle: Any, source: Optional[str] = None) -> ModelArtifact:
    """Build an opaque ModelArtifact from a joblib bundle."""
    if not isinstance(bundle, dict):
        raise ModelLoadError("Model bundle must be a dict")
    _check_header(bundle)

    model_type = bundle.get("model_type")
    if model_type != EstimatorModel.model_type:
        raise ModelLoadError(f"Unsupported model_type for joblib bundle: {model_type!r}")

    feature_names = bundle.get("feature_names") or ()
    if not isinstance(feature_names, (list, tuple)) or not all(
        isinstance(name, str) for name in feature_names
    ):
        raise ModelLoadError(f"Malformed feature_names in bundle: {feature_names!r}")
    feature_names = tuple(feature_names)
    try:
        model = EstimatorModel(bundle["estimator"], n_features=len(feature_names))
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelLoadError(f"Invalid estimator bundle: {exc}") from exc

    return ModelArtifact(
        model_version=str(bundle.get("model_version") or ""),
        model=model,
        feature_names=feature_names,
        format_version=bundle["format_version"],
        trained_at=bundle.get("trained_at"),
        source=source,
        metadata=_metadata(bundle),
    )


def artifact_to_document(artifact: ModelArtifact) -> dict:
    """Render a linear ModelArtifact as a YAML-ready document."""
    model = artifact.model
    if not isinstance(model, LogisticModel):
        raise TypeError(f"Only {LogisticModel.model_type} artifacts serialize to YAML")
    return {
        "format": ARTIFACT_FORMAT,
        "format_version": artifact.format_version,
        "model_type": model.model_type,
        "model_version": artifact.model_version,
        "trained_at": artifact.trained_at or datetime.now(timezone.utc).isoformat(),
        "intercept": model.intercept,
        "features": [
            {
                "name": name,
                "coefficient": float(model.coefficients[i]),
                "mean": float(model.means[i]),
                "scale": float(model.scales[i]),
            }
            for i, name in enumerate(artifact.feature_names)
        ],
        "metadata": dict(artifact.metadata),
    }


def save_artifact(artifact: ModelArtifact, path: Path | str) -> Path:
    """
    Write an artifact to disk.

    Linear models go to YAML, estimators to a joblib bundle; the suffix of
    `path` must match. The file is written next to the target and renamed
    into place so readers never see a partial artifact.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    suffix = path.suffix.lower()

    if suffix in YAML_SUFFIXES:
        document = artifact_to_document(artifact)
        with open(tmp_path, "w") as f:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
    elif suffix in JOBLIB_SUFFIXES:
        if not isinstance(artifact.model, EstimatorModel):
            raise TypeError("Only estimator artifacts serialize to joblib bundles")
        joblib.dump(
            {
                "format": ARTIFACT_FORMAT,
                "format_version": artifact.format_version,
                "model_type": artifact.model_type,
                "model_version": artifact.model_version,
                "trained_at": artifact.trained_at,
                "feature_names": list(artifact.feature_names),
                "estimator": artifact.model.estimator,
                "metadata": dict(artifact.metadata),
            },
            tmp_path,
        )
    else:
        raise ValueError(f"Unsupported artifact format: {path.name}")

    os.replace(tmp_path, path)
    return path


def _metadata(document: Mapping[str, Any]) -> dict:
    metadata = document.get("metadata")
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise ModelLoadError(f"Artifact metadata must be a mapping, got {type(metadata).__name__}")
    return dict(metadata)


def _check_header(document: Mapping[str, Any]) -> None:
    if document.get("format") != ARTIFACT_FORMAT:
        raise ModelLoadError(
            f"Not a {ARTIFACT_FORMAT} artifact (format={document.get('format')!r})"
        )
    if "format_version" not in document:
        raise ModelLoadError("Model artifact has no format_version")


def _check_format_version(format_version: Any, min_format_version: int) -> None:
    if isinstance(format_version, bool) or not isinstance(format_version, int):
        raise ModelLoadError(f"format_version must be an integer, got {format_version!r}")
    if format_version < min_format_version:
        raise ModelLoadError(
            f"Artifact format_version {format_version} is older than the "
            f"minimum supported version {min_format_version}"
        )
    if format_version > FORMAT_VERSION:
        raise ModelLoadError(
            f"Artifact format_version {format_version} is newer than this "
            f"library supports ({FORMAT_VERSION})"
        )
