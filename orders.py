# orders.py
import os
import logging
import time
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence

import requests

from config import ORDERS
from errors import OrderFetchError
from models import MedicalOrder, OrderStatus, now_ms
from patients import prepend_orders
from storage import PatientStore

logger = logging.getLogger(__name__)

OrderSource = Callable[[str], List[MedicalOrder]]


# ------------------------------------------------------------------------------
# Reconciliation (pure)
# ------------------------------------------------------------------------------

def new_remote_orders(
    existing: Iterable[MedicalOrder],
    fetched: Iterable[MedicalOrder],
) -> List[MedicalOrder]:
    """
    Fetched orders whose id is not already present. Equality is by id only:
    an order already on the chart is kept as-is even if the remote copy changed.
    """
    seen = {o.id for o in existing}
    fresh: List[MedicalOrder] = []
    for order in fetched:
        if order.id in seen:
            continue
        seen.add(order.id)
        fresh.append(order)
    return fresh


def merge_remote_orders(
    existing: Sequence[MedicalOrder],
    fetched: Iterable[MedicalOrder],
) -> List[MedicalOrder]:
    """New remote orders first, then the existing list unchanged."""
    return new_remote_orders(existing, fetched) + list(existing)


# ------------------------------------------------------------------------------
# Remote order source
# ------------------------------------------------------------------------------

def _remote_url() -> str:
    return os.getenv("REMOTE_ORDERS_URL", "").strip().rstrip("/")


def _with_remote_prefix(order: MedicalOrder) -> MedicalOrder:
    prefix = ORDERS["remote_prefix"]
    if order.id.startswith(prefix):
        return order
    return replace(order, id=f"{prefix}{order.id}")


def _parse_remote_payload(payload) -> List[MedicalOrder]:
    if isinstance(payload, dict):
        payload = payload.get("orders")
    if not isinstance(payload, list):
        raise OrderFetchError("Order source returned an unexpected payload shape")
    try:
        return [_with_remote_prefix(MedicalOrder.from_dict(item)) for item in payload]
    except (KeyError, TypeError, ValueError) as e:
        raise OrderFetchError(f"Malformed order in remote payload: {e}") from e


def _simulated_orders() -> List[MedicalOrder]:
    now = now_ms()
    prefix = ORDERS["remote_prefix"]
    return [
        MedicalOrder(
            id=f"{prefix}{now}-1",
            medication="Pantoprazole",
            dosage="40mg",
            frequency="1x1",
            route="IV",
            status=OrderStatus.ACTIVE,
            start_date=now,
            doctor_notes="Remote order: gastric protection. (Attending)",
        ),
        MedicalOrder(
            id=f"{prefix}{now}-2",
            medication="Furosemide",
            dosage="20mg",
            frequency="1x1",
            route="IV",
            status=OrderStatus.ACTIVE,
            start_date=now,
            doctor_notes="Remote order: oedema follow-up. (Attending)",
        ),
    ]


def fetch_remote_orders(patient_id: str, latency_s: Optional[float] = None) -> List[MedicalOrder]:
    """
    Orders entered for `patient_id` in the hospital order system.

    Without REMOTE_ORDERS_URL the hospital system is simulated after
    `latency_s` seconds (default from config).

    Raises:
        OrderFetchError: network, HTTP, JSON or payload problems.
    """
    url = _remote_url()
    if not url:
        time.sleep(ORDERS["remote_latency_s"] if latency_s is None else latency_s)
        return _simulated_orders()

    endpoint = f"{url}/patients/{patient_id}/orders"
    try:
        resp = requests.get(endpoint, timeout=ORDERS["fetch_timeout_s"])
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise OrderFetchError(f"Failed GET {endpoint}: {e}") from e
    return _parse_remote_payload(payload)


# ------------------------------------------------------------------------------
# Sync
# ------------------------------------------------------------------------------

def sync_remote_orders(
    store: PatientStore,
    patient_id: str,
    source: OrderSource = fetch_remote_orders,
) -> List[MedicalOrder]:
    """
    Pull remote orders for a patient and prepend the ones not yet on the chart.

    Returns the orders that were added (possibly none).

    Raises:
        PatientNotFoundError: unknown patient.
        OrderFetchError: the fetch failed; the store is left unchanged.
    """
    store.require(patient_id)

    try:
        fetched = source(patient_id)
    except OrderFetchError:
        logger.error("Remote order sync failed for %s", patient_id, exc_info=True)
        raise

    # Re-read after the slow fetch so the merge sees the latest chart
    patient = store.require(patient_id)
    added = new_remote_orders(patient.medical_orders, fetched)
    if added:
        store.upsert(prepend_orders(patient, added))
    logger.info("Remote order sync for %s: %d fetched, %d new", patient_id, len(fetched), len(added))
    return added
