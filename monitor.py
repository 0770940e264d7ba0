# monitor.py
"""
Headless ward watch: one line per patient with measurement status and alerts,
refreshed on a fixed tick until interrupted.

    python monitor.py --once
    python monitor.py --interval 60 --db-url sqlite:///ward.db
"""
import logging
import time
from typing import Optional

import click
from sqlalchemy import create_engine

from config import SCHEDULE
from demo_data import demo_patients
from logging_config import setup_logging
from models import Patient, now_ms
from scheduler import RefreshTicker, patient_timer_status
from storage import PatientStore
from triage import vital_alerts

logger = logging.getLogger(__name__)

STATUS_LABELS = {"ok": "OK", "warning": "DUE SOON", "overdue": "OVERDUE"}


def format_ward_line(patient: Patient, now: Optional[int] = None) -> str:
    timer = patient_timer_status(patient, now)
    alerts = vital_alerts(patient.last_vital, patient.thresholds)
    line = (
        f"{patient.id:<8} {patient.name:<20} room {patient.room:<5} "
        f"[{patient.risk_tier.value:<6}] {STATUS_LABELS[timer.status]:<8} {timer.message}"
    )
    if alerts:
        line += " | ALERTS: " + "; ".join(alerts)
    return line


def render_board(store: PatientStore, now: Optional[int] = None) -> str:
    now = now if now is not None else now_ms()
    lines = [format_ward_line(p, now) for p in store.list()]
    return "\n".join(lines) if lines else "No patients on this ward."


@click.command()
@click.option("--once", is_flag=True, help="print the board once and exit")
@click.option(
    "--interval",
    type=click.FloatRange(min=1.0),
    default=float(SCHEDULE["refresh_seconds"]),
    show_default=True,
    help="seconds between refreshes",
)
@click.option("--db-url", default=None, help="SQLAlchemy URL (default: DATABASE_URL or sqlite:///ward.db)")
@click.option("--seed-demo", is_flag=True, help="load the demo ward into an empty store")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING ...")
def main(once: bool, interval: float, db_url: Optional[str], seed_demo: bool, log_level: Optional[str]):
    """Print measurement status for every patient on the ward."""
    setup_logging(log_level)
    store = PatientStore(create_engine(db_url) if db_url else None)
    if seed_demo:
        store.seed(demo_patients())

    def tick():
        click.echo(f"--- {time.strftime('%H:%M:%S')} ---")
        click.echo(render_board(store))

    tick()
    if once:
        return

    ticker = RefreshTicker(tick, interval).start()
    try:
        while ticker.running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Ward watch stopped")
    finally:
        ticker.stop()


if __name__ == "__main__":
    main()
