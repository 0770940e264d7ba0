# storage.py
import os
import json
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import (
    create_engine, MetaData, Table, Column,
    String, DateTime, Text
)
from sqlalchemy.engine import Engine
from sqlalchemy.sql import select, insert, update, func
from sqlalchemy.pool import NullPool

from errors import PatientNotFoundError
from models import Patient

logger = logging.getLogger(__name__)


def _get_db_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        try:
            import streamlit as st
            url = str(st.secrets.get("DATABASE_URL", "")).strip()
        except Exception:
            # No secrets.toml outside a Streamlit deployment
            pass
    return url


_engine = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        db_url = _get_db_url()
        if db_url:
            _engine = create_engine(db_url, pool_pre_ping=True, poolclass=NullPool)
        else:
            _engine = create_engine("sqlite:///ward.db", connect_args={"check_same_thread": False})
    return _engine


metadata = MetaData()

patients = Table(
    "patients", metadata,
    Column("patient_id", String(80), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("room", String(40), nullable=True),
    Column("payload_json", Text, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)


def init_db(engine: Optional[Engine] = None) -> None:
    metadata.create_all(engine or get_engine())


class PatientStore:
    """
    The ward's patient collection, keyed by patient identifier.

    Patients are stored whole: upsert() replaces the entry with the new value.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()
        init_db(self.engine)

    def get(self, patient_id: str) -> Optional[Patient]:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(patients.c.payload_json).where(patients.c.patient_id == patient_id)
            ).fetchone()
        if not row:
            return None
        return Patient.from_dict(json.loads(row[0]))

    def require(self, patient_id: str) -> Patient:
        patient = self.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    def upsert(self, patient: Patient) -> None:
        now = datetime.now()
        payload = {
            "name": patient.name,
            "room": patient.room,
            "payload_json": json.dumps(patient.to_dict(), ensure_ascii=False),
            "updated_at": now,
        }

        with self.engine.begin() as conn:
            exists = conn.execute(
                select(patients.c.patient_id).where(patients.c.patient_id == patient.id)
            ).fetchone()

            if exists:
                conn.execute(
                    update(patients).where(patients.c.patient_id == patient.id).values(**payload)
                )
            else:
                payload["patient_id"] = patient.id
                payload["created_at"] = now
                conn.execute(insert(patients).values(**payload))
        logger.debug("Stored patient %s", patient.id)

    def list(self) -> List[Patient]:
        # Most recently admitted first, as on the ward board
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(patients.c.payload_json).order_by(patients.c.created_at.desc(), patients.c.patient_id)
            ).fetchall()
        return [Patient.from_dict(json.loads(r[0])) for r in rows]

    def count(self) -> int:
        with self.engine.begin() as conn:
            return int(conn.execute(select(func.count()).select_from(patients)).scalar_one())

    def seed(self, demo: Iterable[Patient]) -> int:
        """Insert demo patients into an empty store. Returns how many were added."""
        if self.count():
            return 0
        added = 0
        for patient in demo:
            self.upsert(patient)
            added += 1
        logger.info("Seeded ward with %d demo patients", added)
        return added
