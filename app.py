import os
import re
from datetime import datetime, timedelta
from typing import Optional

import streamlit as st
import pandas as pd
import matplotlib.pyplot as plt
from streamlit_autorefresh import st_autorefresh

from config import APP, FLUID_TYPES, ORDERS, ROUTES, SCHEDULE
from demo_data import demo_patients
from dispatch import commit_vital
from errors import OrderFetchError, ValidationError
from llm import suggest_medications, summarize_patient
from logging_config import setup_logging
from models import (
    FluidRecord, OrderStatus, Patient, RiskTier, ThresholdSet, VitalReading,
    filter_fluids, filter_vitals, fluid_balance, now_ms,
)
from orders import sync_remote_orders
from patients import (
    add_fluid_record, add_order, admit_patient, anamnesis_from_form,
    delete_order, new_local_order, set_anamnesis, set_order_status,
    set_risk_tier, update_thresholds,
)
from scheduler import patient_timer_status
from storage import PatientStore
from triage import blood_pressure_critical, vital_alerts

st.set_page_config(page_title=APP["title"], layout="wide")

FLUID_WINDOW_MS = 24 * 60 * 60 * 1000


def _secret(name: str, default: str = "") -> str:
    try:
        return str(st.secrets.get(name, os.getenv(name, default)))
    except Exception:
        # No secrets.toml configured
        return os.getenv(name, default)


# Load Streamlit Secrets → environment variables
for _key, _default in [
    ("GROQ_API_KEY", ""),
    ("GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
    ("GROQ_MODEL", "llama-3.3-70b-versatile"),
    ("REMOTE_ORDERS_URL", ""),
    ("NOTIFY_WEBHOOK_URL", ""),
    ("LOG_LEVEL", "INFO"),
]:
    os.environ[_key] = _secret(_key, _default)


@st.cache_resource
def _store() -> PatientStore:
    setup_logging()
    store = PatientStore()
    store.seed(demo_patients())
    return store


store = _store()

# Re-run the script every minute so timer status stays fresh
st_autorefresh(interval=SCHEDULE["refresh_seconds"] * 1000, key="ward_refresh")

STATUS_ICONS = {"ok": "🟢", "warning": "🟠", "overdue": "🔴"}

# -------------------------
# Helpers
# -------------------------
def _fmt_time(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%d.%m %H:%M")


def _day_start_ms(day) -> int:
    return int(datetime(day.year, day.month, day.day).timestamp() * 1000)


def _selected() -> Optional[str]:
    return st.session_state.get("patient_id")


def _open(patient_id: Optional[str]) -> None:
    st.session_state["patient_id"] = patient_id
    st.session_state.pop("pending_vital", None)
    st.session_state.pop("ai_analysis", None)


def _dose_needs_confirmation(dosage: str) -> bool:
    """Crude form-level check: 2 g or more, or 2000 mg or more."""
    digits = re.sub(r"[^0-9.]", "", dosage)
    try:
        value = float(digits)
    except ValueError:
        return False
    lowered = dosage.lower()
    is_gram = "g" in lowered and "mg" not in lowered
    if is_gram:
        return value >= ORDERS["dose_warn_g"]
    return value >= ORDERS["dose_warn_mg"]


def _flash(kind: str, text: str) -> None:
    # Shown once after the next rerun
    st.session_state["flash"] = (kind, text)


def _show_flash() -> None:
    flash = st.session_state.pop("flash", None)
    if flash:
        kind, text = flash
        getattr(st, kind)(text)


def _show_timer(patient: Patient) -> None:
    timer = patient_timer_status(patient)
    text = f"{STATUS_ICONS[timer.status]} Next vitals: {timer.message}"
    if timer.status == "overdue":
        st.error(text)
    elif timer.status == "warning":
        st.warning(text)
    else:
        st.caption(text)


# -------------------------
# Header + Sidebar
# -------------------------
st.title(APP["title"])
st.caption(APP["disclaimer"])

with st.sidebar:
    st.subheader("Find patient")
    lookup = st.text_input("Patient ID (wristband)", placeholder="P-1001")
    if st.button("Open"):
        if store.get(lookup.strip()):
            _open(lookup.strip())
            st.rerun()
        else:
            st.error(f"No patient with ID {lookup.strip()} on this ward.")

    if _selected() and st.button("← Back to ward"):
        _open(None)
        st.rerun()

    with st.expander("Admit patient"):
        with st.form("admit_form", clear_on_submit=True):
            new_id = st.text_input("Patient ID")
            new_name = st.text_input("Full name")
            new_age = st.number_input("Age", min_value=0, max_value=120, value=50)
            new_gender = st.selectbox("Gender", ["Male", "Female", "Other"])
            new_dx = st.text_input("Diagnosis")
            c1, c2 = st.columns(2)
            with c1:
                new_room = st.text_input("Room")
            with c2:
                new_bed = st.text_input("Bed")
            new_tier = st.selectbox("Risk tier", [t.value for t in RiskTier])
            if st.form_submit_button("Admit"):
                try:
                    if store.get(new_id.strip()):
                        raise ValidationError("id", "a patient with this ID is already on the ward")
                    patient = admit_patient(
                        new_id, new_name, int(new_age), new_gender, new_dx,
                        new_room, new_bed, risk_tier=RiskTier(new_tier),
                    )
                    store.upsert(patient)
                    st.success(f"Admitted {patient.name}")
                except ValidationError as e:
                    st.error(str(e))


# -------------------------
# Ward overview
# -------------------------
def render_ward() -> None:
    patients = store.list()
    if not patients:
        st.info("No patients on this ward.")
        return

    alert_count = sum(1 for p in patients if vital_alerts(p.last_vital, p.thresholds))
    overdue_count = sum(1 for p in patients if patient_timer_status(p).status == "overdue")
    m1, m2, m3 = st.columns(3)
    m1.metric("Patients", len(patients))
    m2.metric("With alerts", alert_count)
    m3.metric("Vitals overdue", overdue_count)

    cols = st.columns(3)
    for i, p in enumerate(patients):
        with cols[i % 3]:
            with st.container(border=True):
                st.markdown(f"**{p.name}** · Room {p.room}{p.bed} · `{p.id}`")
                st.caption(f"{p.diagnosis} · Risk: {p.risk_tier.value}")
                _show_timer(p)
                for a in vital_alerts(p.last_vital, p.thresholds):
                    st.write("⚠️", a)
                if st.button("Open", key=f"open_{p.id}"):
                    _open(p.id)
                    st.rerun()


# -------------------------
# Patient detail
# -------------------------
def render_vitals(patient: Patient) -> None:
    last = patient.last_vital
    alerts = vital_alerts(last, patient.thresholds)
    if alerts:
        st.error("Active alerts: " + ", ".join(alerts))

    if last:
        c1, c2, c3, c4, c5, c6 = st.columns(6)
        bp = f"{last.systolic:g}/{last.diastolic:g}"
        c1.metric("BP" + (" ⚠️" if blood_pressure_critical(last, patient.thresholds) else ""), bp)
        c2.metric("HR", f"{last.heart_rate:g}")
        c3.metric("Temp °C", f"{last.temperature:g}")
        c4.metric("SpO2 %", f"{last.spo2:g}")
        c5.metric("RR", f"{last.respiratory_rate:g}")
        c6.caption(f"Last: {_fmt_time(last.timestamp)}")

    with st.expander("Record vitals", expanded=not patient.vitals):
        with st.form("vital_form"):
            c1, c2, c3 = st.columns(3)
            with c1:
                systolic = st.text_input("Systolic (mmHg)")
                diastolic = st.text_input("Diastolic (mmHg)")
            with c2:
                heart_rate = st.text_input("Heart rate (bpm)")
                temperature = st.text_input("Temperature (°C)")
            with c3:
                spo2 = st.text_input("SpO2 (%)")
                respiratory_rate = st.text_input("Respiratory rate (/min)")
            notes = st.text_input("Notes (optional)")
            if st.form_submit_button("Save reading"):
                st.session_state["pending_vital"] = {
                    "systolic": systolic, "diastolic": diastolic,
                    "heart_rate": heart_rate, "temperature": temperature,
                    "spo2": spo2, "respiratory_rate": respiratory_rate,
                    "notes": notes,
                }

    pending = st.session_state.get("pending_vital")
    if pending:
        st.info(
            f"Confirm reading: BP {pending['systolic']}/{pending['diastolic']}, "
            f"HR {pending['heart_rate']}, Temp {pending['temperature']}, "
            f"SpO2 {pending['spo2']}, RR {pending['respiratory_rate']}"
        )
        ok_col, cancel_col = st.columns(2)
        if ok_col.button("Confirm & save"):
            try:
                reading = VitalReading.from_form(pending)
            except ValidationError as e:
                st.error(f"Reading not saved: {e}")
            else:
                result = commit_vital(store, patient.id, reading)
                st.session_state.pop("pending_vital", None)
                st.session_state.pop("ai_analysis", None)
                if result.alerts and result.notified:
                    _flash("warning", "Alert sent to on-call team: " + ", ".join(result.alerts))
                elif result.error is not None:
                    _flash("error", f"Reading saved, but the alert could not be sent: {result.error}")
                else:
                    _flash("success", "Saved ✅")
                st.rerun()
        if cancel_col.button("Cancel"):
            st.session_state.pop("pending_vital", None)
            st.rerun()

    if not patient.vitals:
        st.info("No vitals recorded yet.")
        return

    first_day = datetime.fromtimestamp(min(v.timestamp for v in patient.vitals) / 1000).date()
    last_day = datetime.fromtimestamp(max(v.timestamp for v in patient.vitals) / 1000).date()
    picked = st.date_input("Show readings between", value=(first_day, last_day), key=f"vitals_range_{patient.id}")
    if isinstance(picked, (tuple, list)) and len(picked) == 2:
        start, end = picked
        shown = filter_vitals(patient.vitals, _day_start_ms(start), _day_start_ms(end + timedelta(days=1)))
    else:
        shown = patient.vitals
    if not shown:
        st.info("No readings in the selected dates.")
        return

    df = pd.DataFrame([v.to_dict() for v in shown])
    df["time"] = pd.to_datetime(df["timestamp"], unit="ms")

    st.write("### Trend")
    fig = plt.figure()
    plt.plot(df["time"], df["systolic"], label="Systolic")
    plt.plot(df["time"], df["diastolic"], label="Diastolic")
    plt.plot(df["time"], df["heart_rate"], label="HR")
    plt.plot(df["time"], df["spo2"], label="SpO2")
    plt.axhline(patient.thresholds.systolic_high, linestyle="--", linewidth=0.8)
    plt.axhline(patient.thresholds.spo2_low, linestyle=":", linewidth=0.8)
    plt.legend(loc="best", fontsize="small")
    plt.xticks(rotation=30)
    st.pyplot(fig)
    plt.close(fig)

    st.dataframe(
        df[["time", "systolic", "diastolic", "heart_rate", "temperature", "spo2", "respiratory_rate", "notes"]]
        .sort_values("time", ascending=False),
        use_container_width=True,
    )


def render_fluids(patient: Patient) -> None:
    p1, p2 = st.columns(2)
    period = p1.selectbox("Period", ["Last 24 h", "All records"], key="fluid_period")
    type_choice = p2.selectbox("Show type", ["All types"] + FLUID_TYPES, key="fluid_type_filter")
    since = now_ms() - FLUID_WINDOW_MS if period == "Last 24 h" else None
    shown = filter_fluids(
        patient.fluid_records,
        since_ms=since,
        fluid_type=None if type_choice == "All types" else type_choice,
    )

    intake, output, net = fluid_balance(shown)
    c1, c2, c3 = st.columns(3)
    c1.metric("Intake (mL)", f"{intake:g}")
    c2.metric("Output (mL)", f"{output:g}")
    c3.metric("Balance (mL)", f"{net:+g}")

    with st.form("fluid_form", clear_on_submit=True):
        f1, f2, f3 = st.columns(3)
        with f1:
            intake_ml = st.number_input("Intake (mL)", min_value=0.0, value=0.0, step=50.0)
        with f2:
            output_ml = st.number_input("Output (mL)", min_value=0.0, value=0.0, step=50.0)
        with f3:
            fluid_type = st.selectbox("Type", FLUID_TYPES)
        fluid_notes = st.text_input("Notes (optional)")
        if st.form_submit_button("Save fluid record"):
            try:
                record = FluidRecord.from_form({
                    "intake_ml": intake_ml, "output_ml": output_ml,
                    "type": fluid_type, "notes": fluid_notes,
                })
            except ValidationError as e:
                st.error(str(e))
            else:
                store.upsert(add_fluid_record(patient, record))
                st.rerun()

    if shown:
        fdf = pd.DataFrame([r.to_dict() for r in shown])
        fdf["time"] = pd.to_datetime(fdf["timestamp"], unit="ms")
        st.dataframe(fdf[["time", "type", "intake_ml", "output_ml", "notes"]], use_container_width=True)
    else:
        st.info("No fluid records for this filter.")


def render_orders(patient: Patient) -> None:
    if st.button("Sync orders from hospital system"):
        with st.spinner("Fetching remote orders…"):
            try:
                added = sync_remote_orders(store, patient.id)
            except OrderFetchError as e:
                st.error(f"Order sync failed, nothing changed: {e}")
            else:
                if added:
                    st.success(f"{len(added)} new order(s) added.")
                else:
                    st.info("No new orders.")

    with st.expander("New order"):
        if st.button("Suggest medications for diagnosis"):
            with st.spinner("Asking AI…"):
                st.session_state["med_suggestions"] = suggest_medications(patient.diagnosis)
        suggestions = st.session_state.get("med_suggestions") or []
        if suggestions:
            st.caption("Suggestions: " + " · ".join(suggestions))

        with st.form("order_form"):
            medication = st.text_input("Medication")
            o1, o2, o3 = st.columns(3)
            with o1:
                dosage = st.text_input("Dosage", placeholder="500mg")
            with o2:
                frequency = st.text_input("Frequency", placeholder="2x1")
            with o3:
                route = st.selectbox("Route", ROUTES)
            doctor_notes = st.text_input("Doctor notes (optional)")
            confirm_dose = st.checkbox("I confirm this dose")
            if st.form_submit_button("Save order"):
                if _dose_needs_confirmation(dosage) and not confirm_dose:
                    st.warning(f"{dosage} is an unusually high dose. Tick the confirmation box to save.")
                else:
                    try:
                        order = new_local_order(medication, dosage, frequency, route, doctor_notes=doctor_notes)
                    except ValidationError as e:
                        st.error(str(e))
                    else:
                        store.upsert(add_order(store.require(patient.id), order))
                        st.rerun()

    current = store.require(patient.id)
    if not current.medical_orders:
        st.info("No orders.")
        return

    for order in current.medical_orders:
        with st.container(border=True):
            remote = order.id.startswith(ORDERS["remote_prefix"])
            st.markdown(
                f"**{order.medication}** {order.dosage} · {order.frequency} · {order.route}"
                + (" · 🌐 remote" if remote else "")
            )
            st.caption(f"Started {_fmt_time(order.start_date)}" + (f" · {order.doctor_notes}" if order.doctor_notes else ""))
            s1, s2 = st.columns([3, 1])
            statuses = [s.value for s in OrderStatus]
            new_status = s1.selectbox(
                "Status", statuses, index=statuses.index(order.status.value), key=f"status_{order.id}",
            )
            if new_status != order.status.value:
                store.upsert(set_order_status(current, order.id, OrderStatus(new_status)))
                st.rerun()
            if s2.button("Delete", key=f"del_{order.id}"):
                store.upsert(delete_order(current, order.id))
                st.rerun()


def render_settings(patient: Patient) -> None:
    tiers = [t.value for t in RiskTier]
    tier = st.selectbox("Risk tier", tiers, index=tiers.index(patient.risk_tier.value))
    if tier != patient.risk_tier.value:
        store.upsert(set_risk_tier(patient, RiskTier(tier)))
        st.rerun()

    t = patient.thresholds
    with st.form("threshold_form"):
        st.caption("Changes apply to new readings only.")
        c1, c2 = st.columns(2)
        with c1:
            systolic_high = st.number_input("Systolic high", value=float(t.systolic_high))
            diastolic_high = st.number_input("Diastolic high", value=float(t.diastolic_high))
            heart_rate_high = st.number_input("Heart rate high", value=float(t.heart_rate_high))
            temperature_high = st.number_input("Temperature high", value=float(t.temperature_high), step=0.1)
            spo2_low = st.number_input("SpO2 low", value=float(t.spo2_low))
        with c2:
            systolic_low = st.number_input("Systolic low", value=float(t.systolic_low))
            diastolic_low = st.number_input("Diastolic low", value=float(t.diastolic_low))
            heart_rate_low = st.number_input("Heart rate low", value=float(t.heart_rate_low))
            temperature_low = st.number_input("Temperature low", value=float(t.temperature_low), step=0.1)
        if st.form_submit_button("Save thresholds"):
            try:
                thresholds = ThresholdSet.from_form({
                    "systolic_high": systolic_high, "systolic_low": systolic_low,
                    "diastolic_high": diastolic_high, "diastolic_low": diastolic_low,
                    "heart_rate_high": heart_rate_high, "heart_rate_low": heart_rate_low,
                    "temperature_high": temperature_high, "temperature_low": temperature_low,
                    "spo2_low": spo2_low,
                })
            except ValidationError as e:
                st.error(str(e))
            else:
                store.upsert(update_thresholds(patient, thresholds))
                st.success("Thresholds saved ✅")


def render_anamnesis(patient: Patient) -> None:
    a = patient.anamnesis
    if a and a.last_updated:
        st.caption(f"Last updated {_fmt_time(a.last_updated)}")
    with st.form("anamnesis_form"):
        form = {
            "complaint": st.text_area("Chief complaint", value=a.complaint if a else ""),
            "history": st.text_area("History of present illness", value=a.history if a else ""),
            "past_medical_history": st.text_area("Past medical history", value=a.past_medical_history if a else ""),
            "family_history": st.text_input("Family history", value=a.family_history if a else ""),
            "medications": st.text_input("Home medications", value=a.medications if a else ""),
            "allergies": st.text_input("Allergies", value=a.allergies if a else ""),
            "habits": st.text_input("Habits", value=a.habits if a else ""),
            "system_review": st.text_area("System review", value=(a.system_review or "") if a else ""),
        }
        if st.form_submit_button("Save anamnesis"):
            store.upsert(set_anamnesis(patient, anamnesis_from_form(form)))
            st.success("Saved ✅")


def render_ai(patient: Patient) -> None:
    st.caption("AI analysis is advisory only and may be unavailable.")
    if st.button("Analyse vital history"):
        with st.spinner("Analysing…"):
            st.session_state["ai_analysis"] = summarize_patient(patient)
    if st.session_state.get("ai_analysis"):
        st.markdown(st.session_state["ai_analysis"])


def render_patient(patient_id: str) -> None:
    patient = store.get(patient_id)
    if patient is None:
        st.error(f"Patient {patient_id} is no longer on this ward.")
        _open(None)
        return

    _show_flash()
    st.subheader(f"{patient.name} ({patient.age}, {patient.gender})")
    st.caption(
        f"{patient.id} · Room {patient.room}{patient.bed} · {patient.diagnosis} · "
        f"Admitted {_fmt_time(patient.admission_date)} · Risk: {patient.risk_tier.value}"
    )
    _show_timer(patient)

    tabs = st.tabs(["1) Vitals", "2) Fluids", "3) Orders", "4) Thresholds", "5) Anamnesis", "6) AI"])
    with tabs[0]:
        render_vitals(patient)
    with tabs[1]:
        render_fluids(patient)
    with tabs[2]:
        render_orders(patient)
    with tabs[3]:
        render_settings(patient)
    with tabs[4]:
        render_anamnesis(patient)
    with tabs[5]:
        render_ai(patient)


if _selected():
    render_patient(_selected())
else:
    render_ward()
