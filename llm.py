# llm.py
import json
import os
import logging
from datetime import datetime
from typing import List

from openai import OpenAI

from models import Patient

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 6

UNAVAILABLE = "AI service is not available right now. Check the API connection in Settings."
NO_ANALYSIS = "No analysis could be generated."


def _client():
    api_key = os.getenv("GROQ_API_KEY", "")
    if not api_key:
        return None
    base_url = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    return OpenAI(api_key=api_key, base_url=base_url)


def _model() -> str:
    return os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")


def _vital_history(patient: Patient) -> str:
    lines = []
    for v in patient.vitals:
        when = datetime.fromtimestamp(v.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        lines.append(
            f"Time: {when}, BP: {v.systolic:g}/{v.diastolic:g}, HR: {v.heart_rate:g}, "
            f"Temp: {v.temperature:g}°C, SpO2: {v.spo2:g}%, RR: {v.respiratory_rate:g}"
        )
    return "\n".join(lines) or "No readings recorded."


def summarize_patient(patient: Patient) -> str:
    """Short clinical read of the vital-sign history (Markdown). Never raises."""
    client = _client()
    if client is None:
        return UNAVAILABLE

    prompt = (
        "You are a senior clinician. Review the vital-sign history of "
        f"{patient.name} (age {patient.age}, diagnosis: {patient.diagnosis}).\n\n"
        "Vital history (oldest first):\n"
        f"{_vital_history(patient)}\n\n"
        "Give a short assessment (max 150 words):\n"
        "1. Point out worrying trends (e.g. signs of sepsis, shock, respiratory distress).\n"
        "2. Comment on the patient's stability.\n"
        "3. Suggest urgent nursing interventions if needed.\n"
        "Format: Markdown bullet points. Be direct and professional."
    )

    try:
        resp = client.chat.completions.create(
            model=_model(),
            messages=[{"role": "user", "content": prompt}],
            temperature=0.3,
        )
        content = (resp.choices[0].message.content or "").strip()
        return content or NO_ANALYSIS
    except Exception:
        logger.exception("Vital analysis request failed for %s", patient.id)
        return UNAVAILABLE


def _strip_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def parse_suggestions(text: str) -> List[str]:
    """JSON array of strings if possible, otherwise a comma-separated list."""
    text = _strip_fences(text)
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Medication suggestions were not JSON, splitting on commas")
        data = text.split(",")
    if not isinstance(data, list):
        return []
    items = [str(x).strip() for x in data if str(x).strip()]
    return items[:MAX_SUGGESTIONS]


def suggest_medications(diagnosis: str) -> List[str]:
    """Common medications for a diagnosis, e.g. ["Paracetamol 500mg", ...]. Empty on failure."""
    client = _client()
    if client is None or not diagnosis.strip():
        return []

    prompt = (
        f'List standard medications commonly used for an adult patient diagnosed with "{diagnosis}".\n'
        "Rules:\n"
        "1. Only medication names with a standard dosage form (e.g. Paracetamol 500mg).\n"
        '2. Respond ONLY as a JSON array of strings: ["Drug 1", "Drug 2", ...].\n'
        "3. No other text, explanation or Markdown.\n"
        f"4. At most {MAX_SUGGESTIONS} core medications."
    )

    try:
        resp = client.chat.completions.create(
            model=_model(),
            messages=[{"role": "user", "content": prompt}],
            temperature=0.3,
        )
        content = (resp.choices[0].message.content or "[]").strip()
    except Exception:
        logger.exception("Medication suggestion request failed")
        return []

    return parse_suggestions(content)
