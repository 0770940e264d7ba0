# patients.py
# Copy-and-replace updates: every function returns a new Patient and leaves
# the one it was given untouched.
from dataclasses import replace
from typing import Any, Dict, Iterable, Optional

from config import ORDERS
from errors import ValidationError
from models import (
    Anamnesis, FluidRecord, MedicalOrder, OrderStatus, Patient,
    RiskTier, ThresholdSet, VitalReading, new_record_id, now_ms,
)


def admit_patient(
    patient_id: str,
    name: str,
    age: int,
    gender: str,
    diagnosis: str,
    room: str,
    bed: str,
    risk_tier: RiskTier = RiskTier.LOW,
    thresholds: Optional[ThresholdSet] = None,
    admission_date: Optional[int] = None,
) -> Patient:
    if not patient_id.strip():
        raise ValidationError("id", "patient identifier is required")
    if not name.strip():
        raise ValidationError("name", "patient name is required")
    return Patient(
        id=patient_id.strip(),
        name=name.strip(),
        age=int(age),
        gender=gender,
        diagnosis=diagnosis.strip(),
        room=room.strip(),
        bed=bed.strip(),
        admission_date=admission_date if admission_date is not None else now_ms(),
        thresholds=thresholds or ThresholdSet(),
        risk_tier=risk_tier,
    )


def append_vital(patient: Patient, reading: VitalReading) -> Patient:
    return replace(patient, vitals=patient.vitals + (reading,))


def add_fluid_record(patient: Patient, record: FluidRecord) -> Patient:
    # Newest first
    return replace(patient, fluid_records=(record,) + patient.fluid_records)


def update_thresholds(patient: Patient, thresholds: ThresholdSet) -> Patient:
    return replace(patient, thresholds=thresholds)


def set_risk_tier(patient: Patient, tier: RiskTier) -> Patient:
    return replace(patient, risk_tier=tier)


def set_anamnesis(patient: Patient, anamnesis: Anamnesis) -> Patient:
    if not anamnesis.last_updated:
        anamnesis = replace(anamnesis, last_updated=now_ms())
    return replace(patient, anamnesis=anamnesis)


def new_local_order(
    medication: str,
    dosage: str = "",
    frequency: str = "",
    route: str = "",
    start_date: Optional[int] = None,
    doctor_notes: str = "",
) -> MedicalOrder:
    if not medication.strip():
        raise ValidationError("medication", "medication name is required")
    now = now_ms()
    return MedicalOrder(
        id=f"{ORDERS['local_prefix']}{now}-{new_record_id()[:8]}",
        medication=medication.strip(),
        dosage=dosage.strip() or "-",
        frequency=frequency.strip() or "1x1",
        route=route.strip() or "Oral",
        status=OrderStatus.ACTIVE,
        start_date=start_date if start_date is not None else now,
        doctor_notes=doctor_notes.strip() or None,
    )


def add_order(patient: Patient, order: MedicalOrder) -> Patient:
    return prepend_orders(patient, [order])


def prepend_orders(patient: Patient, orders: Iterable[MedicalOrder]) -> Patient:
    return replace(patient, medical_orders=tuple(orders) + patient.medical_orders)


def delete_order(patient: Patient, order_id: str) -> Patient:
    return replace(
        patient,
        medical_orders=tuple(o for o in patient.medical_orders if o.id != order_id),
    )


def set_order_status(patient: Patient, order_id: str, status: OrderStatus) -> Patient:
    return replace(
        patient,
        medical_orders=tuple(
            replace(o, status=status) if o.id == order_id else o
            for o in patient.medical_orders
        ),
    )


def anamnesis_from_form(form: Dict[str, Any]) -> Anamnesis:
    return Anamnesis(
        complaint=(form.get("complaint") or "").strip(),
        history=(form.get("history") or "").strip(),
        past_medical_history=(form.get("past_medical_history") or "").strip(),
        family_history=(form.get("family_history") or "").strip(),
        medications=(form.get("medications") or "").strip(),
        allergies=(form.get("allergies") or "").strip(),
        habits=(form.get("habits") or "").strip(),
        system_review=(form.get("system_review") or "").strip() or None,
        last_updated=now_ms(),
    )
