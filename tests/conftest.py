"""
Pytest configuration and shared fixtures.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from models import Patient, RiskTier, ThresholdSet, VitalReading
from storage import PatientStore

MINUTE = 60 * 1000

# Fixed clock: 2024-01-15 12:00:00 UTC
NOW = 1705320000000


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    """Patient store on a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return PatientStore(engine)


def make_reading(timestamp=NOW, **overrides):
    values = dict(
        id=f"v-{timestamp}",
        timestamp=timestamp,
        systolic=120,
        diastolic=80,
        heart_rate=75,
        temperature=36.8,
        spo2=98,
        respiratory_rate=16,
    )
    values.update(overrides)
    return VitalReading(**values)


def make_patient(patient_id="P-1", tier=RiskTier.MEDIUM, vitals=(), **overrides):
    values = dict(
        id=patient_id,
        name="Jane Roe",
        age=61,
        gender="Female",
        diagnosis="Pneumonia",
        room="204",
        bed="A",
        admission_date=NOW - 24 * 60 * MINUTE,
        thresholds=ThresholdSet(),
        risk_tier=tier,
        vitals=tuple(vitals),
    )
    values.update(overrides)
    return Patient(**values)


@pytest.fixture
def patient():
    return make_patient()


@pytest.fixture
def stored_patient(store, patient):
    store.upsert(patient)
    return patient
