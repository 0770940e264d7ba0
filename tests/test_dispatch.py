"""
Unit tests for the alert dispatch gate
"""

import logging
from dataclasses import replace

import pytest

from conftest import make_reading
from dispatch import alert_message, commit_vital
from errors import NotificationError, PatientNotFoundError
from patients import update_thresholds


class RecordingNotifier:
    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def __call__(self, title, body):
        self.calls.append((title, body))
        if self.fail_with is not None:
            raise self.fail_with


def test_normal_reading_is_stored_without_notification(store, stored_patient):
    notifier = RecordingNotifier()

    result = commit_vital(store, stored_patient.id, make_reading(), notifier=notifier)

    assert result.alerts == []
    assert result.notified is False
    assert notifier.calls == []
    assert len(store.get(stored_patient.id).vitals) == 1


def test_many_breaches_notify_once(store, stored_patient):
    notifier = RecordingNotifier()
    reading = make_reading(systolic=200, diastolic=120, heart_rate=150, temperature=40, spo2=80)

    result = commit_vital(store, stored_patient.id, reading, notifier=notifier)

    assert len(result.alerts) == 5
    assert result.notified is True
    assert len(notifier.calls) == 1


def test_notification_names_patient_room_and_alerts(store, stored_patient):
    notifier = RecordingNotifier()

    commit_vital(store, stored_patient.id, make_reading(systolic=165, spo2=90), notifier=notifier)

    title, body = notifier.calls[0]
    assert title == "EMERGENCY: Jane Roe"
    assert body == "High systolic BP (165), Low SpO2 (90%). Room: 204"


def test_alert_message_joins_alerts(patient):
    title, body = alert_message(patient, ["A", "B"])

    assert title == f"EMERGENCY: {patient.name}"
    assert body == f"A, B. Room: {patient.room}"


@pytest.mark.parametrize("error", [NotificationError("gateway down"), RuntimeError("boom")])
def test_notifier_failure_keeps_reading(store, stored_patient, error, caplog):
    notifier = RecordingNotifier(fail_with=error)
    reading = make_reading(heart_rate=140)

    with caplog.at_level(logging.ERROR, logger="dispatch"):
        result = commit_vital(store, stored_patient.id, reading, notifier=notifier)

    assert result.notified is False
    assert result.error is error
    assert result.alerts == ["High heart rate (140)"]
    assert store.get(stored_patient.id).vitals[-1] == reading
    assert "Alert notification failed" in caplog.text


def test_reading_committed_before_notifier_runs(store, stored_patient):
    seen = []

    def notifier(title, body):
        seen.append(len(store.get(stored_patient.id).vitals))

    commit_vital(store, stored_patient.id, make_reading(spo2=85), notifier=notifier)

    assert seen == [1]


def test_uses_thresholds_current_at_commit(store, stored_patient):
    store.upsert(update_thresholds(stored_patient, replace(stored_patient.thresholds, systolic_high=140)))
    notifier = RecordingNotifier()

    result = commit_vital(store, stored_patient.id, make_reading(systolic=150), notifier=notifier)

    assert result.alerts == ["High systolic BP (150)"]
    assert len(notifier.calls) == 1


def test_readings_append_in_order(store, stored_patient):
    first = make_reading(timestamp=1000, id="a")
    second = make_reading(timestamp=2000, id="b")

    commit_vital(store, stored_patient.id, first, notifier=RecordingNotifier())
    result = commit_vital(store, stored_patient.id, second, notifier=RecordingNotifier())

    assert [v.id for v in result.patient.vitals] == ["a", "b"]
    assert store.get(stored_patient.id).last_vital == second


def test_unknown_patient_stores_nothing(store):
    notifier = RecordingNotifier()

    with pytest.raises(PatientNotFoundError):
        commit_vital(store, "P-404", make_reading(spo2=80), notifier=notifier)

    assert notifier.calls == []
    assert store.list() == []
