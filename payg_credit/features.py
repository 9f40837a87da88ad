"""
Feature Vector Builder.

Maps raw customer records (arbitrary source fields) onto the 40-field
scoring schema:
- renames known source aliases to canonical names
- imputes fields that carry a default, rejects missing required fields
- normalises categorical fields to their fixed vocabulary
- validates types and ranges with the Pandera feature schema

Usage:
    builder = FeatureVectorBuilder()
    features = builder.build({"customer_id": "KE-0001", ...})
    frame = builder.build_frame(raw_df)
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd
import pandera as pa

from .errors import SchemaError
from .schemas import (
    CATEGORY_CODES,
    FEATURE_DEFINITIONS,
    FEATURE_NAMES,
    FEATURE_SCHEMA,
    FEATURES_BY_NAME,
    FIELD_ALIASES,
    FeatureDefinition,
)


logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and np.isnan(value))


def _check_bounds(definition: FeatureDefinition, value: float) -> None:
    """Reject non-finite values and values outside the inclusive bounds."""
    if not math.isfinite(value):
        raise SchemaError(f"Feature {definition.name} must be finite, got {value}")
    if definition.lower is not None and value < definition.lower:
        raise SchemaError(
            f"Feature {definition.name}={value} is below its minimum {definition.lower}"
        )
    if definition.upper is not None and value > definition.upper:
        raise SchemaError(
            f"Feature {definition.name}={value} is above its maximum {definition.upper}"
        )


def encode_value(name: str, value: Any) -> float:
    """Numeric encoding of a single feature value."""
    codes = CATEGORY_CODES.get(name)
    if codes is not None:
        return codes[value]
    return float(value)


def encode_frame(frame: pd.DataFrame) -> np.ndarray:
    """
    Encode a validated feature frame as a float matrix.

    Args:
        frame: DataFrame with all FEATURE_NAMES columns

    Returns:
        Array of shape (n_rows, 40) in schema order
    """
    columns = []
    for name in FEATURE_NAMES:
        codes = CATEGORY_CODES.get(name)
        column = frame[name].map(codes) if codes else frame[name]
        columns.append(column.to_numpy(dtype=np.float64))
    return np.column_stack(columns)


@dataclass(frozen=True)
class CustomerFeatures:
    """
    Immutable, fully populated feature vector for one customer.

    Attributes:
        customer_id: Customer identifier
        values: Read-only mapping of the 40 features in schema order
    """

    customer_id: str
    values: Mapping[str, Any]

    def __post_init__(self):
        keys = set(self.values)
        missing = [name for name in FEATURE_NAMES if name not in keys]
        unknown = sorted(keys - set(FEATURE_NAMES))
        if missing:
            raise SchemaError(f"Missing required features: {missing}")
        if unknown:
            raise SchemaError(f"Unknown features: {unknown}")

        ordered = {}
        for name in FEATURE_NAMES:
            value = self.values[name]
            if _is_missing(value):
                raise SchemaError(f"Feature {name} is null at the scoring boundary")
            if name in CATEGORY_CODES:
                if value not in CATEGORY_CODES[name]:
                    raise SchemaError(
                        f"Unrecognised {name} value: {value!r}; "
                        f"expected one of {sorted(CATEGORY_CODES[name])}"
                    )
                ordered[name] = value
                continue
            try:
                number = float(value)
            except (TypeError, ValueError) as exc:
                raise SchemaError(f"Feature {name} is not numeric: {value!r}") from exc
            _check_bounds(FEATURES_BY_NAME[name], number)
            ordered[name] = number

        object.__setattr__(self, "values", MappingProxyType(ordered))

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def to_vector(self) -> np.ndarray:
        """Numeric feature vector in schema order."""
        return np.array(
            [encode_value(name, self.values[name]) for name in FEATURE_NAMES],
            dtype=np.float64,
        )

    def to_dict(self) -> dict:
        return {"customer_id": self.customer_id, **self.values}

    @classmethod
    def from_row(cls, row: pd.Series) -> "CustomerFeatures":
        """Build from one row of a validated feature frame."""
        return cls(
            customer_id=str(row["customer_id"]),
            values={name: row[name] for name in FEATURE_NAMES},
        )


class FeatureVectorBuilder:
    """
    Builds CustomerFeatures from raw customer records.

    Pure transform: no state is kept between calls.
    """

    def __init__(
        self,
        definitions: Iterable[FeatureDefinition] = FEATURE_DEFINITIONS,
        aliases: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize builder.

        Args:
            definitions: Feature definitions (default: the 40-field schema)
            aliases: Raw field -> canonical field renames (default: FIELD_ALIASES)
        """
        self.definitions = tuple(definitions)
        self.aliases = dict(FIELD_ALIASES if aliases is None else aliases)

    def build(self, record: Mapping[str, Any]) -> CustomerFeatures:
        """
        Build the feature vector for a single raw record.

        Args:
            record: Mapping of source fields, must include customer_id

        Returns:
            CustomerFeatures with all 40 fields populated

        Raises:
            SchemaError: Required field absent or value invalid
        """
        if not isinstance(record, Mapping):
            raise SchemaError(
                f"Customer record must be a mapping, got {type(record).__name__}"
            )
        frame = self.build_frame(pd.DataFrame([dict(record)]))
        return CustomerFeatures.from_row(frame.iloc[0])

    def build_many(self, records: Iterable[Mapping[str, Any]]) -> list[CustomerFeatures]:
        """Build feature vectors for several records, preserving order."""
        rows = []
        for record in records:
            if not isinstance(record, Mapping):
                raise SchemaError(
                    f"Customer record must be a mapping, got {type(record).__name__}"
                )
            rows.append(dict(record))
        if not rows:
            return []
        frame = self.build_frame(pd.DataFrame(rows))
        return [CustomerFeatures.from_row(row) for _, row in frame.iterrows()]

    def build_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Vectorized build over a DataFrame of raw records.

        Args:
            df: DataFrame of raw records

        Returns:
            Validated DataFrame with customer_id followed by the 40 features

        Raises:
            SchemaError: Required field absent or value invalid
        """
        frame = df.rename(columns=self._renames(df.columns)).copy()

        if "customer_id" not in frame.columns or frame["customer_id"].isna().any():
            raise SchemaError("Missing required field: customer_id")

        missing = []
        for definition in self.definitions:
            name = definition.name
            if name not in frame.columns:
                if definition.required:
                    missing.append(name)
                else:
                    frame[name] = definition.default
            elif not definition.required:
                frame[name] = frame[name].fillna(definition.default)
            elif frame[name].isna().any():
                missing.append(name)

        if missing:
            raise SchemaError(f"Missing required features: {missing}")

        for name, codes in CATEGORY_CODES.items():
            frame[name] = self._normalize_category(name, frame[name], codes)

        try:
            validated = FEATURE_SCHEMA.validate(frame, lazy=True)
        except (pa.errors.SchemaError, pa.errors.SchemaErrors) as exc:
            columns = _failed_columns(exc)
            logger.debug("Feature validation failed columns=%s", columns)
            raise SchemaError(f"Invalid feature values in columns: {columns}") from exc

        return validated[["customer_id", *FEATURE_NAMES]].reset_index(drop=True)

    def _renames(self, columns: Iterable[str]) -> dict:
        """Alias renames that do not clash with a canonical column."""
        present = set(columns)
        return {
            alias: canonical
            for alias, canonical in self.aliases.items()
            if alias in present and canonical not in present
        }

    @staticmethod
    def _normalize_category(
        name: str, series: pd.Series, codes: Mapping[str, float]
    ) -> pd.Series:
        """Strip and lower-case values, rejecting anything outside the vocabulary."""
        normalized = series.astype(str).str.strip().str.lower()
        unknown = sorted(set(series[~normalized.isin(list(codes))].astype(str)))
        if unknown:
            raise SchemaError(
                f"Unrecognised {name} values: {unknown}; expected one of {sorted(codes)}"
            )
        return normalized


def _failed_columns(exc: Exception) -> list[str]:
    """Column names reported by a Pandera validation failure."""
    cases = getattr(exc, "failure_cases", None)
    if isinstance(cases, pd.DataFrame) and "column" in cases.columns:
        columns = sorted({str(c) for c in cases["column"].dropna()})
        if columns:
            return columns
    return [str(exc)]
