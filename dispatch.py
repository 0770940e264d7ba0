# dispatch.py
import logging
from typing import Callable, List, NamedTuple, Optional

from models import Patient, VitalReading
from notifier import send_push_notification
from patients import append_vital
from storage import PatientStore
from triage import vital_alerts

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


class DispatchResult(NamedTuple):
    patient: Patient
    alerts: List[str]
    notified: bool
    error: Optional[Exception] = None


def alert_message(patient: Patient, alerts: List[str]):
    """Title and body of the single notification sent for one reading."""
    title = f"EMERGENCY: {patient.name}"
    body = f"{', '.join(alerts)}. Room: {patient.room}"
    return title, body


def commit_vital(
    store: PatientStore,
    patient_id: str,
    reading: VitalReading,
    notifier: Notifier = send_push_notification,
) -> DispatchResult:
    """
    Record a reading, then notify the on-call team once if it breaches any bound.

    The reading is stored before the notifier runs; a notifier failure is logged
    and reported on the result, never raised, and never undoes the commit.

    Raises:
        PatientNotFoundError: unknown patient (nothing is stored).
    """
    patient = append_vital(store.require(patient_id), reading)
    store.upsert(patient)

    alerts = vital_alerts(reading, patient.thresholds)
    if not alerts:
        return DispatchResult(patient, alerts, notified=False)

    title, body = alert_message(patient, alerts)
    try:
        notifier(title, body)
    except Exception as e:
        logger.error("Alert notification failed for %s: %s", patient.id, e, exc_info=True)
        return DispatchResult(patient, alerts, notified=False, error=e)

    logger.info("Alert dispatched for %s (%d breaches)", patient.id, len(alerts))
    return DispatchResult(patient, alerts, notified=True)
