# errors.py
"""
Exceptions raised by the vitals monitor.
"""


class VitalsMonitorError(Exception):
    """Base exception for all vitals monitor errors."""
    pass


class ValidationError(VitalsMonitorError):
    """Form input could not be turned into a record."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class PatientNotFoundError(VitalsMonitorError):
    """No patient with the given identifier in the store."""

    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        super().__init__(f"Patient {patient_id} not found on this ward")


class NotificationError(VitalsMonitorError):
    """Push notification could not be delivered."""
    pass


class OrderFetchError(VitalsMonitorError):
    """Remote order source failed or returned malformed data."""
    pass
