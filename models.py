# models.py
import logging
import math
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple
from uuid import uuid4

from config import DEFAULT_THRESHOLDS
from errors import ValidationError

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_record_id() -> str:
    return uuid4().hex


def _parse_number(name: str, raw: Any) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(name, "value is required")
    if isinstance(raw, bool):
        raise ValidationError(name, f"not a number: {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(name, f"not a number: {raw!r}")
    if not math.isfinite(value):
        raise ValidationError(name, f"not a finite number: {raw!r}")
    return value


def _optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


class RiskTier(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_label(cls, label: Any) -> Optional["RiskTier"]:
        """Map 'high', 'High', RiskTier.HIGH ... to a tier; None if unknown."""
        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            return None
        for tier in cls:
            if tier.value.lower() == label.strip().lower():
                return tier
        return None


class OrderStatus(str, Enum):
    ACTIVE = "Active"
    DISCONTINUED = "Discontinued"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class VitalReading:
    """One committed set of bedside measurements."""
    id: str
    timestamp: int
    systolic: float
    diastolic: float
    heart_rate: float
    temperature: float
    spo2: float
    respiratory_rate: float
    notes: Optional[str] = None

    MEASUREMENTS = (
        "systolic", "diastolic", "heart_rate",
        "temperature", "spo2", "respiratory_rate",
    )

    @classmethod
    def from_form(cls, form: Dict[str, Any], now: Optional[int] = None) -> "VitalReading":
        """
        Build a reading from raw form input.

        Raises:
            ValidationError: a measurement is missing or not a finite number.
        """
        values = {name: _parse_number(name, form.get(name)) for name in cls.MEASUREMENTS}
        return cls(
            id=new_record_id(),
            timestamp=now if now is not None else now_ms(),
            notes=_optional_text(form.get("notes")),
            **values,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VitalReading":
        return cls(
            id=str(d["id"]),
            timestamp=int(d["timestamp"]),
            systolic=float(d["systolic"]),
            diastolic=float(d["diastolic"]),
            heart_rate=float(d["heart_rate"]),
            temperature=float(d["temperature"]),
            spo2=float(d["spo2"]),
            respiratory_rate=float(d["respiratory_rate"]),
            notes=d.get("notes"),
        )


@dataclass(frozen=True)
class ThresholdSet:
    systolic_high: float = DEFAULT_THRESHOLDS["systolic_high"]
    systolic_low: float = DEFAULT_THRESHOLDS["systolic_low"]
    diastolic_high: float = DEFAULT_THRESHOLDS["diastolic_high"]
    diastolic_low: float = DEFAULT_THRESHOLDS["diastolic_low"]
    heart_rate_high: float = DEFAULT_THRESHOLDS["heart_rate_high"]
    heart_rate_low: float = DEFAULT_THRESHOLDS["heart_rate_low"]
    temperature_high: float = DEFAULT_THRESHOLDS["temperature_high"]
    temperature_low: float = DEFAULT_THRESHOLDS["temperature_low"]
    spo2_low: float = DEFAULT_THRESHOLDS["spo2_low"]

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "ThresholdSet":
        """Absent keys keep the ward defaults."""
        d = d or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in d.items() if k in known and v is not None})

    @classmethod
    def from_form(cls, form: Dict[str, Any]) -> "ThresholdSet":
        return cls(**{f.name: _parse_number(f.name, form.get(f.name)) for f in fields(cls)})


@dataclass(frozen=True)
class MedicalOrder:
    id: str
    medication: str
    dosage: str
    frequency: str
    route: str
    status: OrderStatus
    start_date: int
    doctor_notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d["status"] = self.status.value
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MedicalOrder":
        return cls(
            id=str(d["id"]),
            medication=str(d["medication"]),
            dosage=str(d.get("dosage") or "-"),
            frequency=str(d.get("frequency") or "1x1"),
            route=str(d.get("route") or "Oral"),
            status=OrderStatus(d.get("status") or OrderStatus.ACTIVE.value),
            start_date=int(d["start_date"]),
            doctor_notes=d.get("doctor_notes"),
        )


@dataclass(frozen=True)
class FluidRecord:
    id: str
    timestamp: int
    intake_ml: float
    output_ml: float
    type: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_form(cls, form: Dict[str, Any], now: Optional[int] = None) -> "FluidRecord":
        # Blank volumes count as zero, like the bedside chart
        intake = form.get("intake_ml") or 0
        output = form.get("output_ml") or 0
        intake_ml = _parse_number("intake_ml", intake)
        output_ml = _parse_number("output_ml", output)
        if intake_ml < 0 or output_ml < 0:
            raise ValidationError("intake_ml" if intake_ml < 0 else "output_ml", "volume cannot be negative")
        return cls(
            id=new_record_id(),
            timestamp=now if now is not None else now_ms(),
            intake_ml=intake_ml,
            output_ml=output_ml,
            type=_optional_text(form.get("type")),
            notes=_optional_text(form.get("notes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FluidRecord":
        return cls(
            id=str(d["id"]),
            timestamp=int(d["timestamp"]),
            intake_ml=float(d.get("intake_ml") or 0),
            output_ml=float(d.get("output_ml") or 0),
            type=d.get("type"),
            notes=d.get("notes"),
        )


def fluid_balance(records: Iterable[FluidRecord]) -> Tuple[float, float, float]:
    """Returns (total intake, total output, net balance) in mL."""
    intake = 0.0
    output = 0.0
    for r in records:
        intake += r.intake_ml
        output += r.output_ml
    return intake, output, intake - output


def filter_fluids(
    records: Iterable[FluidRecord],
    since_ms: Optional[int] = None,
    fluid_type: Optional[str] = None,
) -> Tuple[FluidRecord, ...]:
    """Records taken at or after `since_ms`, optionally of one fluid type. Order is kept."""
    return tuple(
        r for r in records
        if (since_ms is None or r.timestamp >= since_ms)
        and (fluid_type is None or r.type == fluid_type)
    )


def filter_vitals(
    readings: Iterable[VitalReading],
    start_ms: Optional[int] = None,
    end_ms: Optional[int] = None,
) -> Tuple[VitalReading, ...]:
    # Half-open window [start_ms, end_ms)
    return tuple(
        v for v in readings
        if (start_ms is None or v.timestamp >= start_ms)
        and (end_ms is None or v.timestamp < end_ms)
    )


@dataclass(frozen=True)
class Anamnesis:
    complaint: str = ""
    history: str = ""
    past_medical_history: str = ""
    family_history: str = ""
    medications: str = ""
    allergies: str = ""
    habits: str = ""
    system_review: Optional[str] = None
    last_updated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Anamnesis":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


@dataclass(frozen=True)
class Patient:
    id: str
    name: str
    age: int
    gender: str
    diagnosis: str
    room: str
    bed: str
    admission_date: int
    thresholds: ThresholdSet = field(default_factory=ThresholdSet)
    risk_tier: RiskTier = RiskTier.LOW
    vitals: Tuple[VitalReading, ...] = ()
    fluid_records: Tuple[FluidRecord, ...] = ()
    medical_orders: Tuple[MedicalOrder, ...] = ()
    anamnesis: Optional[Anamnesis] = None

    @property
    def last_vital(self) -> Optional[VitalReading]:
        return self.vitals[-1] if self.vitals else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "gender": self.gender,
            "diagnosis": self.diagnosis,
            "room": self.room,
            "bed": self.bed,
            "admission_date": self.admission_date,
            "thresholds": self.thresholds.to_dict(),
            "risk_tier": self.risk_tier.value,
            "vitals": [v.to_dict() for v in self.vitals],
            "fluid_records": [r.to_dict() for r in self.fluid_records],
            "medical_orders": [o.to_dict() for o in self.medical_orders],
            "anamnesis": self.anamnesis.to_dict() if self.anamnesis else None,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Patient":
        tier = RiskTier.from_label(d.get("risk_tier"))
        if tier is None:
            logger.warning(
                "Patient %s has unknown risk tier %r, using Low",
                d.get("id"), d.get("risk_tier"),
            )
            tier = RiskTier.LOW

        anamnesis = d.get("anamnesis")
        return cls(
            id=str(d["id"]),
            name=d.get("name") or "",
            age=int(d.get("age") or 0),
            gender=d.get("gender") or "Other",
            diagnosis=d.get("diagnosis") or "",
            room=str(d.get("room") or ""),
            bed=str(d.get("bed") or ""),
            admission_date=int(d.get("admission_date") or 0),
            thresholds=ThresholdSet.from_dict(d.get("thresholds")),
            risk_tier=tier,
            vitals=tuple(VitalReading.from_dict(v) for v in d.get("vitals") or []),
            fluid_records=tuple(FluidRecord.from_dict(r) for r in d.get("fluid_records") or []),
            medical_orders=tuple(MedicalOrder.from_dict(o) for o in d.get("medical_orders") or []),
            anamnesis=Anamnesis.from_dict(anamnesis) if anamnesis else None,
        )
