# demo_data.py
# Small demo ward used to seed an empty store. Times are relative to "now" so
# the board always shows a mix of ok / overdue patients.
from dataclasses import replace
from typing import List, Optional

from models import (
    Anamnesis, FluidRecord, MedicalOrder, OrderStatus, Patient,
    RiskTier, ThresholdSet, VitalReading, now_ms,
)

HOUR = 60 * 60 * 1000


def _vital(vid: str, at: int, sys_: float, dia: float, hr: float, temp: float, spo2: float, rr: float) -> VitalReading:
    return VitalReading(
        id=vid, timestamp=at, systolic=sys_, diastolic=dia, heart_rate=hr,
        temperature=temp, spo2=spo2, respiratory_rate=rr,
    )


def demo_patients(now: Optional[int] = None) -> List[Patient]:
    now = now if now is not None else now_ms()
    defaults = ThresholdSet()

    return [
        Patient(
            id="P-1001",
            name="Adam Hughes",
            age=54,
            gender="Male",
            diagnosis="Post-op appendectomy",
            room="201",
            bed="A",
            admission_date=now - 48 * HOUR,
            risk_tier=RiskTier.LOW,
            thresholds=defaults,
            vitals=(
                _vital("v1", now - 24 * HOUR, 125, 82, 78, 36.6, 98, 16),
                _vital("v2", now - 12 * HOUR, 128, 85, 80, 37.0, 97, 18),
            ),
            fluid_records=(
                FluidRecord(id="f1", timestamp=now - 2 * HOUR, intake_ml=250, output_ml=0,
                            type="Oral", notes="Oral water intake"),
            ),
            medical_orders=(
                MedicalOrder(id="o1", medication="Paracetamol", dosage="500mg", frequency="3x1",
                             route="IV", status=OrderStatus.ACTIVE, start_date=now - 24 * HOUR,
                             doctor_notes="As needed for pain"),
                MedicalOrder(id="o2", medication="Ceftriaxone", dosage="1g", frequency="2x1",
                             route="IV", status=OrderStatus.ACTIVE, start_date=now - 24 * HOUR),
            ),
            anamnesis=Anamnesis(
                complaint="Severe right lower quadrant pain, nausea.",
                history="Presented to the ED with abdominal pain starting 2 days earlier.",
                past_medical_history="Hypertension (5 years)",
                family_history="Father: myocardial infarction",
                medications="Ramipril 5mg 1x1",
                allergies="Penicillin",
                habits="Smoker (10 pack-years)",
                last_updated=now - 48 * HOUR,
            ),
        ),
        Patient(
            id="P-1002",
            name="Elena Kovac",
            age=72,
            gender="Female",
            diagnosis="Pneumonia",
            room="202",
            bed="B",
            admission_date=now - 96 * HOUR,
            risk_tier=RiskTier.HIGH,
            thresholds=replace(defaults, spo2_low=90, temperature_high=37.8),
            vitals=(
                _vital("v3", now - 48 * HOUR, 145, 95, 92, 38.5, 92, 22),
                _vital("v4", now - 24 * HOUR, 140, 90, 88, 38.1, 94, 20),
                _vital("v5", now - 2 * HOUR, 135, 85, 84, 37.5, 96, 19),
            ),
        ),
        Patient(
            id="P-1003",
            name="Martin Doyle",
            age=45,
            gender="Male",
            diagnosis="Observation - hypertension",
            room="203",
            bed="A",
            admission_date=now - 5 * HOUR,
            risk_tier=RiskTier.MEDIUM,
            thresholds=replace(defaults, systolic_high=150),
            vitals=(
                _vital("v6", now - 4 * HOUR, 160, 100, 95, 36.5, 98, 18),
            ),
        ),
    ]
