# scheduler.py
import logging
import threading
from typing import Any, Callable, NamedTuple, Optional

from config import FALLBACK_RISK_TIER, SCHEDULE, VITAL_CHECK_INTERVALS
from models import Patient, RiskTier, VitalReading, now_ms

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000

STATUS_OK = "ok"
STATUS_WARNING = "warning"
STATUS_OVERDUE = "overdue"

NEVER_MEASURED = "No measurement recorded yet"


class TimerStatus(NamedTuple):
    status: str
    message: str
    # Signed: negative when overdue, 0 when never measured
    minutes: int


def interval_for_tier(tier: Any) -> int:
    """Measurement interval in ms. Unknown or missing tiers get the Low interval."""
    resolved = RiskTier.from_label(tier)
    label = resolved.value if resolved is not None else FALLBACK_RISK_TIER
    return VITAL_CHECK_INTERVALS[label]


def vital_timer_status(
    last_reading: Optional[VitalReading],
    risk_tier: Any,
    now: Optional[int] = None,
) -> TimerStatus:
    """
    Classify the next mandatory measurement as ok / warning / overdue.

    Stateless: derived only from `now` (ms since epoch, wall clock by default)
    and the last reading's timestamp.
    """
    if last_reading is None:
        return TimerStatus(STATUS_OVERDUE, NEVER_MEASURED, 0)

    if now is None:
        now = now_ms()

    next_due = last_reading.timestamp + interval_for_tier(risk_tier)
    # Floor division rounds toward -inf, so 30s late already counts as 1 min late
    remaining = (next_due - now) // MS_PER_MINUTE

    if remaining < 0:
        return TimerStatus(STATUS_OVERDUE, f"{abs(remaining)} min overdue", remaining)
    if remaining <= SCHEDULE["warning_window_min"]:
        return TimerStatus(STATUS_WARNING, f"{remaining} min left", remaining)

    hours, mins = divmod(remaining, 60)
    return TimerStatus(STATUS_OK, f"due in {hours}h {mins}m", remaining)


def patient_timer_status(patient: Patient, now: Optional[int] = None) -> TimerStatus:
    return vital_timer_status(patient.last_vital, patient.risk_tier, now)


class RefreshTicker:
    """
    Calls `callback` every `interval_s` seconds on a daemon thread until stopped.

    The owner of a view starts one ticker and must call stop() when the view
    goes away.
    """

    def __init__(self, callback: Callable[[], None], interval_s: Optional[float] = None):
        self.callback = callback
        self.interval_s = interval_s if interval_s is not None else SCHEDULE["refresh_seconds"]
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "RefreshTicker":
        if self.running and not self._stop.is_set():
            return self
        # Each loop owns its stop event; a loop still inside a slow tick never resumes
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name="vitals-refresh", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join(timeout)
        if not thread.is_alive():
            self._thread = None

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval_s):
            try:
                self.callback()
            except Exception:
                logger.exception("Status refresh tick failed")

    def __enter__(self) -> "RefreshTicker":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
