"""
Unit tests for the patient store and record conversion
"""

import json

import pytest

from conftest import NOW, make_patient, make_reading
from demo_data import demo_patients
from errors import PatientNotFoundError
from models import (
    Anamnesis, FluidRecord, MedicalOrder, OrderStatus, Patient, RiskTier, ThresholdSet,
)
from storage import PatientStore, patients


def _full_patient():
    return make_patient(
        vitals=[make_reading(timestamp=NOW - 1000, notes="after mobilising")],
        fluid_records=(FluidRecord(id="f1", timestamp=NOW, intake_ml=250, output_ml=100, type="Oral"),),
        medical_orders=(MedicalOrder(id="o1", medication="Parol", dosage="500mg", frequency="3x1",
                                     route="IV", status=OrderStatus.COMPLETED, start_date=NOW),),
        anamnesis=Anamnesis(complaint="Cough", allergies="Penicillin", last_updated=NOW),
        thresholds=ThresholdSet(spo2_low=88),
        tier=RiskTier.HIGH,
    )


def test_get_missing_returns_none(store):
    assert store.get("P-404") is None


def test_require_missing_raises(store):
    with pytest.raises(PatientNotFoundError):
        store.require("P-404")


def test_upsert_then_get_round_trip(store):
    patient = _full_patient()

    store.upsert(patient)

    assert store.get(patient.id) == patient


def test_upsert_replaces_entry(store, stored_patient):
    renamed = make_patient(patient_id=stored_patient.id, name="Jane Q. Roe")

    store.upsert(renamed)

    assert store.count() == 1
    assert store.get(stored_patient.id).name == "Jane Q. Roe"


def test_list_returns_every_patient(store):
    for pid in ("P-1", "P-2", "P-3"):
        store.upsert(make_patient(patient_id=pid))

    assert sorted(p.id for p in store.list()) == ["P-1", "P-2", "P-3"]


def test_seed_only_fills_empty_store(store):
    assert store.seed(demo_patients(NOW)) == 3
    assert store.seed(demo_patients(NOW)) == 0
    assert store.count() == 3


def test_unknown_tier_in_storage_loads_as_low(store, stored_patient, caplog):
    data = stored_patient.to_dict()
    data["risk_tier"] = "Critical"
    with store.engine.begin() as conn:
        conn.execute(
            patients.update()
            .where(patients.c.patient_id == stored_patient.id)
            .values(payload_json=json.dumps(data))
        )

    loaded = store.get(stored_patient.id)

    assert loaded.risk_tier is RiskTier.LOW
    assert "unknown risk tier" in caplog.text


def test_partial_thresholds_fill_defaults():
    thresholds = ThresholdSet.from_dict({"systolic_high": 150, "bogus": 1})

    assert thresholds.systolic_high == 150
    assert thresholds.spo2_low == ThresholdSet().spo2_low


def test_patient_from_minimal_dict():
    patient = Patient.from_dict({"id": "P-9", "name": "New Admission"})

    assert patient.vitals == ()
    assert patient.medical_orders == ()
    assert patient.risk_tier is RiskTier.LOW
    assert patient.thresholds == ThresholdSet()
    assert patient.last_vital is None


def test_risk_tier_from_label():
    assert RiskTier.from_label("medium") is RiskTier.MEDIUM
    assert RiskTier.from_label(RiskTier.HIGH) is RiskTier.HIGH
    assert RiskTier.from_label("Severe") is None
    assert RiskTier.from_label(None) is None


def test_demo_ward_is_consistent():
    ward = demo_patients(NOW)

    assert len({p.id for p in ward}) == len(ward)
    for p in ward:
        timestamps = [v.timestamp for v in p.vitals]
        assert timestamps == sorted(timestamps)
