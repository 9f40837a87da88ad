"""
Pytest fixtures for PAYG credit scoring tests.
"""

import pandas as pd
import pytest

# Add package root to path
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from payg_credit.artifacts import REFERENCE_MODEL_PATH, load_artifact
from payg_credit.config import ScoringConfig
from payg_credit.engine import ScoringEngine
from payg_credit.schemas import FEATURE_DEFINITIONS
from payg_credit.scorer import CreditScorer, generate_sample_data


def _typical_record(customer_id: str = "KE-TYPICAL") -> dict:
    """Every numeric feature at its population centre."""
    record = {"customer_id": customer_id}
    for definition in FEATURE_DEFINITIONS:
        record[definition.name] = definition.typical
    record["location_type"] = "rural"
    record["has_mobile_money"] = 1
    record["month_of_year"] = 6
    return record


@pytest.fixture
def default_config():
    """Default scoring configuration."""
    return ScoringConfig()


@pytest.fixture(scope="session")
def reference_artifact():
    """Bundled reference model."""
    return load_artifact(REFERENCE_MODEL_PATH)


@pytest.fixture
def engine(default_config):
    """ScoringEngine with the reference model loaded."""
    return ScoringEngine.from_path(REFERENCE_MODEL_PATH, default_config)


@pytest.fixture
def scorer(engine, default_config):
    """CreditScorer with the reference model loaded."""
    return CreditScorer(engine, default_config)


@pytest.fixture
def sample_data():
    """100 sample customers with realistic distributions."""
    return generate_sample_data(n_customers=100, seed=42)


@pytest.fixture
def typical_record():
    """Customer sitting at the population centre (Low risk, p ~ 0.26)."""
    return _typical_record()


@pytest.fixture
def low_risk_record():
    """Punctual payer who paid two days ago."""
    record = _typical_record("KE-LOW")
    record.update(on_time_ratio=0.95, payment_frequency=12, days_since_last_payment=2)
    return record


@pytest.fixture
def medium_risk_record():
    """Typical customer with a patchy repayment record (p ~ 0.39)."""
    record = _typical_record("KE-MEDIUM")
    record["on_time_ratio"] = 0.65
    return record


@pytest.fixture
def high_risk_record():
    """Customer two months behind and in arrears."""
    record = _typical_record("KE-HIGH")
    record.update(on_time_ratio=0.3, days_since_last_payment=60, current_arrears_days=45)
    return record


@pytest.fixture
def risk_profiles(low_risk_record, medium_risk_record, high_risk_record):
    """One customer per risk category."""
    return pd.DataFrame([low_risk_record, medium_risk_record, high_risk_record])
