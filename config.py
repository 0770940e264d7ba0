# config.py
# Ward defaults + settings (charge nurses can tweak these per ward)
from types import MappingProxyType

DEFAULT_THRESHOLDS = {
    # Blood pressure (mmHg)
    "systolic_high": 160,
    "systolic_low": 90,
    "diastolic_high": 100,
    "diastolic_low": 50,

    # Heart rate (bpm)
    "heart_rate_high": 110,
    "heart_rate_low": 50,

    # Body temperature (°C)
    "temperature_high": 38.0,
    "temperature_low": 35.5,

    # Oxygen saturation (%), low bound only
    "spo2_low": 92,
}

# Measurement interval per risk tier (milliseconds).
# High: 2h, Medium: 4h, Low: 8h. Unknown tiers use Low.
VITAL_CHECK_INTERVALS = MappingProxyType({
    "High": 2 * 60 * 60 * 1000,
    "Medium": 4 * 60 * 60 * 1000,
    "Low": 8 * 60 * 60 * 1000,
})

FALLBACK_RISK_TIER = "Low"

SCHEDULE = {
    # Remaining minutes at or below this count as "due soon"
    "warning_window_min": 30,
    # Status refresh granularity for dashboards and the console monitor
    "refresh_seconds": 60,
}

ORDERS = {
    "remote_prefix": "remote-ord-",
    "local_prefix": "ord-",
    # Simulated hospital order system latency when no REMOTE_ORDERS_URL is set
    "remote_latency_s": 1.5,
    "fetch_timeout_s": 10.0,

    # Order form dose warning (UI only)
    "dose_warn_g": 2,
    "dose_warn_mg": 2000,
}

NOTIFY = {
    "timeout_s": 5.0,
}

FLUID_TYPES = ["Oral", "IV", "NG tube", "Urine", "Drain", "Vomit"]

ROUTES = ["Oral", "IV", "IM", "SC", "Inhaled", "Topical"]

APP = {
    "title": "Bedside Vitals Monitor",
    "disclaimer": (
        "Ward support tool only. Alerts and overdue flags are advisory and "
        "do not replace clinical judgement or hospital escalation policy."
    ),
}
