"""
Unit tests for the vital-sign threshold evaluator
"""

from dataclasses import replace

import pytest

from conftest import make_reading
from models import ThresholdSet
from triage import blood_pressure_critical, vital_alerts


def test_no_reading_no_alerts():
    assert vital_alerts(None, ThresholdSet()) == []


def test_missing_thresholds_no_alerts():
    assert vital_alerts(make_reading(systolic=250), None) == []


def test_normal_reading_no_alerts():
    assert vital_alerts(make_reading(), ThresholdSet()) == []


def test_systolic_high_and_spo2_low():
    """Systolic 165 over 160 and SpO2 90 under 92 give exactly two alerts"""
    thresholds = ThresholdSet(systolic_high=160, systolic_low=90, spo2_low=92)
    alerts = vital_alerts(make_reading(systolic=165, spo2=90), thresholds)

    assert len(alerts) == 2
    assert "systolic" in alerts[0].lower() and "165" in alerts[0]
    assert "spo2" in alerts[1].lower() and "90" in alerts[1]


def test_all_breaches_reported_in_fixed_order():
    thresholds = ThresholdSet()
    high = make_reading(systolic=200, diastolic=120, heart_rate=140, temperature=39.5, spo2=85)
    low = make_reading(systolic=70, diastolic=40, heart_rate=35, temperature=34.0, spo2=85)

    assert vital_alerts(high, thresholds) == [
        "High systolic BP (200)",
        "High diastolic BP (120)",
        "High heart rate (140)",
        "High temperature (39.5°C)",
        "Low SpO2 (85%)",
    ]
    assert vital_alerts(low, thresholds) == [
        "Low systolic BP (70)",
        "Low diastolic BP (40)",
        "Low heart rate (35)",
        "Low temperature (34°C)",
        "Low SpO2 (85%)",
    ]


def test_crossed_bounds_report_both_high_and_low():
    """A high bound below the low bound flags the value on both sides, high first"""
    thresholds = replace(ThresholdSet(), heart_rate_high=60, heart_rate_low=100)
    alerts = vital_alerts(make_reading(heart_rate=80), thresholds)

    assert alerts == ["High heart rate (80)", "Low heart rate (80)"]


@pytest.mark.parametrize("field,bound", [
    ("systolic", "systolic_high"),
    ("systolic", "systolic_low"),
    ("diastolic", "diastolic_high"),
    ("diastolic", "diastolic_low"),
    ("heart_rate", "heart_rate_high"),
    ("heart_rate", "heart_rate_low"),
    ("temperature", "temperature_high"),
    ("temperature", "temperature_low"),
    ("spo2", "spo2_low"),
])
def test_value_on_bound_is_not_an_alert(field, bound):
    thresholds = ThresholdSet()
    reading = make_reading(**{field: getattr(thresholds, bound)})

    assert vital_alerts(reading, thresholds) == []


@pytest.mark.parametrize("field,value", [
    ("systolic", 160.1),
    ("systolic", 89.9),
    ("diastolic", 100.5),
    ("heart_rate", 49),
    ("temperature", 38.1),
    ("spo2", 91.9),
])
def test_value_just_past_bound_is_an_alert(field, value):
    alerts = vital_alerts(make_reading(**{field: value}), ThresholdSet())

    assert len(alerts) == 1
    assert f"{value:g}" in alerts[0]


def test_high_spo2_never_alerts():
    assert vital_alerts(make_reading(spo2=100), ThresholdSet()) == []


def test_evaluator_is_repeatable():
    reading = make_reading(systolic=170, heart_rate=45)
    thresholds = ThresholdSet()

    assert vital_alerts(reading, thresholds) == vital_alerts(reading, thresholds)


def test_threshold_edit_changes_outcome():
    reading = make_reading(systolic=155)

    assert vital_alerts(reading, ThresholdSet()) == []
    assert vital_alerts(reading, ThresholdSet(systolic_high=150)) == ["High systolic BP (155)"]


def test_blood_pressure_critical():
    thresholds = ThresholdSet()

    assert blood_pressure_critical(make_reading(diastolic=45), thresholds) is True
    assert blood_pressure_critical(make_reading(heart_rate=150), thresholds) is False
    assert blood_pressure_critical(None, thresholds) is False
