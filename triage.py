# triage.py
from typing import List, Optional

from models import ThresholdSet, VitalReading


def _fmt(value: float) -> str:
    # 165.0 -> "165", 38.5 -> "38.5"
    return f"{value:g}"


def vital_alerts(reading: Optional[VitalReading], thresholds: Optional[ThresholdSet]) -> List[str]:
    """
    Returns:
      alerts: human-readable notes, one per violated bound, in a fixed order
              (systolic, diastolic, heart rate, temperature, SpO2; high before low).

    A value sitting exactly on a bound is not an alert.
    """
    if reading is None or thresholds is None:
        return []

    alerts: List[str] = []

    if reading.systolic > thresholds.systolic_high:
        alerts.append(f"High systolic BP ({_fmt(reading.systolic)})")
    if reading.systolic < thresholds.systolic_low:
        alerts.append(f"Low systolic BP ({_fmt(reading.systolic)})")

    if reading.diastolic > thresholds.diastolic_high:
        alerts.append(f"High diastolic BP ({_fmt(reading.diastolic)})")
    if reading.diastolic < thresholds.diastolic_low:
        alerts.append(f"Low diastolic BP ({_fmt(reading.diastolic)})")

    if reading.heart_rate > thresholds.heart_rate_high:
        alerts.append(f"High heart rate ({_fmt(reading.heart_rate)})")
    if reading.heart_rate < thresholds.heart_rate_low:
        alerts.append(f"Low heart rate ({_fmt(reading.heart_rate)})")

    if reading.temperature > thresholds.temperature_high:
        alerts.append(f"High temperature ({_fmt(reading.temperature)}°C)")
    if reading.temperature < thresholds.temperature_low:
        alerts.append(f"Low temperature ({_fmt(reading.temperature)}°C)")

    # No upper SpO2 bound
    if reading.spo2 < thresholds.spo2_low:
        alerts.append(f"Low SpO2 ({_fmt(reading.spo2)}%)")

    return alerts


def blood_pressure_critical(reading: Optional[VitalReading], thresholds: Optional[ThresholdSet]) -> bool:
    if reading is None or thresholds is None:
        return False
    return (
        reading.systolic > thresholds.systolic_high
        or reading.systolic < thresholds.systolic_low
        or reading.diastolic > thresholds.diastolic_high
        or reading.diastolic < thresholds.diastolic_low
    )
