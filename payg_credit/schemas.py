"""
Feature schema for PAYG credit scoring.

Defines the 40 scoring features, grouped into four families, and the
Pandera schemas used to validate feature frames at the scoring boundary.

Families:
- payment: 15 repayment behaviour features
- usage: 12 device usage features
- demographic: 8 household and location features
- temporal: 5 tenure and seasonality features
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from pandera import Column, Check, DataFrameSchema


FAMILIES = ("payment", "usage", "demographic", "temporal")

# Categorical vocabularies and their numeric codes
CATEGORY_CODES: Dict[str, Dict[str, float]] = {
    "location_type": {"rural": 0.0, "urban": 1.0},
}

# Raw source field -> canonical field
FIELD_ALIASES: Dict[str, str] = {
    "customer_identifier": "customer_id",
    "location": "location_type",
    "payments_90d": "payment_frequency",
    "days_since_payment": "days_since_last_payment",
}


@dataclass(frozen=True)
class FeatureDefinition:
    """
    Definition of a single scoring feature.

    Attributes:
        name: Canonical feature name
        family: One of FAMILIES
        kind: "continuous", "count", "binary" or "categorical"
        lower: Inclusive lower bound (numeric features)
        upper: Inclusive upper bound (numeric features)
        default: Imputation value, None if the field is required
        typical: Population centre, used for synthetic data
        spread: Population spread, used for synthetic data
        description: Human-readable meaning
    """

    name: str
    family: str
    kind: str
    lower: Optional[float] = None
    upper: Optional[float] = None
    default: Optional[object] = None
    typical: float = 0.0
    spread: float = 1.0
    description: str = ""

    @property
    def required(self) -> bool:
        return self.default is None

    @property
    def is_categorical(self) -> bool:
        return self.kind == "categorical"


def _f(name, family, kind, lower, upper, default, typical, spread, description):
    return FeatureDefinition(
        name=name,
        family=family,
        kind=kind,
        lower=lower,
        upper=upper,
        default=default,
        typical=typical,
        spread=spread,
        description=description,
    )


FEATURE_DEFINITIONS: Tuple[FeatureDefinition, ...] = (
    # === Payment behaviour (15) ===
    _f("on_time_ratio", "payment", "continuous", 0, 1, None, 0.75, 0.15,
       "Share of instalments paid on or before the due date"),
    _f("payment_frequency", "payment", "count", 0, 200, None, 8, 3,
       "Payments recorded in the last 90 days"),
    _f("days_since_last_payment", "payment", "count", 0, 3650, None, 10, 8,
       "Days since the most recent payment"),
    _f("avg_payment_amount", "payment", "continuous", 0, 1_000_000, None, 450, 200,
       "Average payment amount (KES)"),
    _f("payment_amount_cv", "payment", "continuous", 0, 10, 0.0, 0.35, 0.2,
       "Coefficient of variation of payment amounts"),
    _f("missed_payments_30d", "payment", "count", 0, 31, 0, 1, 1.2,
       "Missed instalments in the last 30 days"),
    _f("missed_payments_90d", "payment", "count", 0, 92, 0, 3, 3,
       "Missed instalments in the last 90 days"),
    _f("longest_arrears_days", "payment", "count", 0, 3650, 0, 12, 15,
       "Longest continuous arrears spell (days)"),
    _f("current_arrears_days", "payment", "count", 0, 3650, 0, 4, 8,
       "Days currently in arrears"),
    _f("topups_30d", "payment", "count", 0, 500, 0, 4, 3,
       "Mobile money top-ups in the last 30 days"),
    _f("avg_days_between_payments", "payment", "continuous", 0, 365, None, 9, 5,
       "Mean gap between consecutive payments (days)"),
    _f("outstanding_balance", "payment", "continuous", 0, 10_000_000, None, 12000, 8000,
       "Remaining balance on the device loan (KES)"),
    _f("balance_to_price_ratio", "payment", "continuous", 0, 5, None, 0.45, 0.25,
       "Outstanding balance over device price"),
    _f("early_payment_ratio", "payment", "continuous", 0, 1, 0.0, 0.2, 0.15,
       "Share of instalments paid ahead of schedule"),
    _f("deposit_ratio", "payment", "continuous", 0, 1, None, 0.1, 0.05,
       "Upfront deposit over device price"),
    # === Usage pattern (12) ===
    _f("avg_daily_kwh", "usage", "continuous", 0, 100, None, 0.35, 0.2,
       "Average daily energy consumption (kWh)"),
    _f("daily_kwh_std", "usage", "continuous", 0, 100, 0.0, 0.12, 0.08,
       "Standard deviation of daily consumption (kWh)"),
    _f("peak_usage_ratio", "usage", "continuous", 0, 1, 0.0, 0.4, 0.15,
       "Share of consumption during evening peak"),
    _f("active_days_30d", "usage", "count", 0, 31, None, 24, 6,
       "Days with any consumption in the last 30 days"),
    _f("disconnected_days_30d", "usage", "count", 0, 31, 0, 3, 4,
       "Days the device was offline in the last 30 days"),
    _f("lockout_events_90d", "usage", "count", 0, 92, 0, 2, 2.5,
       "Credit-expiry lockouts in the last 90 days"),
    _f("usage_trend", "usage", "continuous", -1, 1, 0.0, 0.0, 0.2,
       "Normalised slope of daily consumption"),
    _f("appliance_count", "usage", "count", 0, 50, 1, 3, 2,
       "Appliances attached to the system"),
    _f("avg_daily_runtime_hours", "usage", "continuous", 0, 24, None, 6, 2.5,
       "Average daily runtime (hours)"),
    _f("battery_health_pct", "usage", "continuous", 0, 100, 100.0, 85, 10,
       "Battery state of health (%)"),
    _f("max_daily_kwh", "usage", "continuous", 0, 100, 0.0, 0.8, 0.4,
       "Maximum daily consumption (kWh)"),
    _f("zero_usage_days_30d", "usage", "count", 0, 31, 0, 2, 3,
       "Days with zero consumption in the last 30 days"),
    # === Demographic (8) ===
    _f("location_type", "demographic", "categorical", None, None, None, 0.35, 0.48,
       "Settlement type: urban or rural"),
    _f("household_size", "demographic", "count", 1, 30, 5, 5, 2,
       "People in the household"),
    _f("dependents_count", "demographic", "count", 0, 30, 0, 3, 2,
       "Dependants in the household"),
    _f("has_mobile_money", "demographic", "binary", 0, 1, 0, 0.8, 0.4,
       "Customer holds a mobile money wallet"),
    _f("distance_to_agent_km", "demographic", "continuous", 0, 500, None, 8, 6,
       "Distance to the nearest sales agent (km)"),
    _f("county_poverty_rate", "demographic", "continuous", 0, 1, None, 0.36, 0.12,
       "Poverty headcount rate of the home county"),
    _f("customer_age_years", "demographic", "count", 18, 100, None, 38, 11,
       "Customer age (years)"),
    _f("income_sources_count", "demographic", "count", 0, 10, 1, 1.5, 0.8,
       "Distinct household income sources"),
    # === Temporal (5) ===
    _f("tenure_months", "temporal", "count", 0, 240, None, 14, 9,
       "Months since device installation"),
    _f("months_since_upgrade", "temporal", "count", 0, 240, None, 8, 6,
       "Months since the last product upgrade"),
    _f("month_of_year", "temporal", "count", 1, 12, None, 6, 3.45,
       "Calendar month of the scoring date"),
    _f("seasonal_income_index", "temporal", "continuous", 0, 3, 1.0, 1.0, 0.25,
       "Regional seasonal income relative to annual mean"),
    _f("days_to_harvest", "temporal", "count", 0, 366, 180, 120, 80,
       "Days until the next main harvest"),
)

FEATURE_NAMES: Tuple[str, ...] = tuple(d.name for d in FEATURE_DEFINITIONS)
FEATURES_BY_NAME: Dict[str, FeatureDefinition] = {d.name: d for d in FEATURE_DEFINITIONS}


def features_in_family(family: str) -> Tuple[str, ...]:
    """Feature names belonging to a family, in schema order."""
    if family not in FAMILIES:
        raise ValueError(f"Unknown feature family: {family}")
    return tuple(d.name for d in FEATURE_DEFINITIONS if d.family == family)


def _column_for(definition: FeatureDefinition) -> Column:
    if definition.is_categorical:
        return Column(
            str,
            nullable=False,
            checks=Check.isin(sorted(CATEGORY_CODES[definition.name])),
            description=definition.description,
        )
    checks = []
    if definition.lower is not None:
        checks.append(Check.greater_than_or_equal_to(definition.lower))
    if definition.upper is not None:
        checks.append(Check.less_than_or_equal_to(definition.upper))
    return Column(
        float,
        nullable=False,
        checks=checks,
        description=definition.description,
    )


# Schema for the feature frame at the scoring boundary
FEATURE_SCHEMA = DataFrameSchema(
    {
        "customer_id": Column(
            str,
            nullable=False,
            description="Unique customer identifier",
        ),
        **{d.name: _column_for(d) for d in FEATURE_DEFINITIONS},
    },
    strict="filter",  # Drop source fields outside the schema
    coerce=True,
    description="Schema for PAYG credit scoring features",
)


# Schema for scoring output data
SCORING_OUTPUT_SCHEMA = DataFrameSchema(
    {
        "customer_id": Column(str, nullable=False),
        "RISK_PROBABILITY": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0.0),
                Check.less_than_or_equal_to(1.0),
            ],
        ),
        "RISK_CATEGORY": Column(
            str,
            nullable=False,
            checks=Check.isin(["Low", "Medium", "High"]),
        ),
        "RECOMMENDED_ACTION": Column(str, nullable=False),
    },
    coerce=True,
    strict=False,  # Allow feature and impact columns
    description="Schema for PAYG credit scoring output data",
)
