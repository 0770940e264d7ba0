"""
Unit tests for remote order reconciliation and sync
"""

from dataclasses import replace

import pytest
import requests

import orders
from conftest import NOW
from errors import OrderFetchError, PatientNotFoundError
from models import MedicalOrder, OrderStatus
from orders import (
    fetch_remote_orders,
    merge_remote_orders,
    new_remote_orders,
    sync_remote_orders,
)
from patients import add_order, set_order_status


def _order(order_id, medication="Paracetamol", **overrides):
    values = dict(
        id=order_id,
        medication=medication,
        dosage="500mg",
        frequency="3x1",
        route="IV",
        status=OrderStatus.ACTIVE,
        start_date=NOW,
    )
    values.update(overrides)
    return MedicalOrder(**values)


def _ids(order_list):
    return [o.id for o in order_list]


def test_only_unseen_ids_are_added():
    existing = [_order("o1")]
    fetched = [_order("o1"), _order("remote-2")]

    assert _ids(new_remote_orders(existing, fetched)) == ["remote-2"]
    assert _ids(merge_remote_orders(existing, fetched)) == ["remote-2", "o1"]


def test_existing_copy_wins_over_changed_remote_copy():
    existing = [_order("remote-1", dosage="500mg")]
    fetched = [_order("remote-1", dosage="1g")]

    merged = merge_remote_orders(existing, fetched)

    assert len(merged) == 1
    assert merged[0].dosage == "500mg"


def test_duplicate_ids_within_batch_keep_first():
    fetched = [_order("remote-1", medication="A"), _order("remote-1", medication="B")]

    fresh = new_remote_orders([], fetched)

    assert [o.medication for o in fresh] == ["A"]


def test_merge_is_idempotent():
    existing = [_order("o1"), _order("o2")]
    batch = [_order("remote-1"), _order("o2"), _order("remote-3")]

    once = merge_remote_orders(existing, batch)
    twice = merge_remote_orders(once, batch)

    assert twice == once
    assert len(set(_ids(twice))) == len(twice)


def test_empty_batch_leaves_list_unchanged():
    existing = [_order("o1")]

    assert merge_remote_orders(existing, []) == existing


def test_sync_prepends_new_orders(store, stored_patient):
    store.upsert(add_order(stored_patient, _order("o1")))

    added = sync_remote_orders(store, stored_patient.id, source=lambda pid: [_order("o1"), _order("remote-2")])

    assert _ids(added) == ["remote-2"]
    assert _ids(store.get(stored_patient.id).medical_orders) == ["remote-2", "o1"]


def test_sync_twice_does_not_duplicate(store, stored_patient):
    batch = [_order("remote-1"), _order("remote-2")]

    sync_remote_orders(store, stored_patient.id, source=lambda pid: batch)
    added = sync_remote_orders(store, stored_patient.id, source=lambda pid: batch)

    assert added == []
    assert _ids(store.get(stored_patient.id).medical_orders) == ["remote-1", "remote-2"]


def test_sync_failure_leaves_store_intact(store, stored_patient):
    store.upsert(add_order(stored_patient, _order("o1")))
    before = store.get(stored_patient.id)

    def failing(pid):
        raise OrderFetchError("timeout")

    with pytest.raises(OrderFetchError):
        sync_remote_orders(store, stored_patient.id, source=failing)

    assert store.get(stored_patient.id) == before


def test_sync_unknown_patient(store):
    with pytest.raises(PatientNotFoundError):
        sync_remote_orders(store, "P-404", source=lambda pid: [])


def test_simulated_source_uses_remote_prefix(monkeypatch):
    monkeypatch.delenv("REMOTE_ORDERS_URL", raising=False)

    fetched = fetch_remote_orders("P-1", latency_s=0)

    assert len(fetched) == 2
    assert all(o.id.startswith("remote-ord-") for o in fetched)
    assert len(set(_ids(fetched))) == 2


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_http_source_parses_orders(monkeypatch):
    monkeypatch.setenv("REMOTE_ORDERS_URL", "http://his.local/api/")
    seen = {}

    def fake_get(url, timeout):
        seen["url"] = url
        return _FakeResponse({"orders": [
            {"id": "77", "medication": "Furosemide", "dosage": "20mg", "frequency": "1x1",
             "route": "IV", "status": "Active", "start_date": NOW},
        ]})

    monkeypatch.setattr(orders.requests, "get", fake_get)

    fetched = fetch_remote_orders("P-1")

    assert seen["url"] == "http://his.local/api/patients/P-1/orders"
    assert _ids(fetched) == ["remote-ord-77"]
    assert fetched[0].status is OrderStatus.ACTIVE


@pytest.mark.parametrize("response", [
    _FakeResponse([], status=503),
    _FakeResponse(ValueError("not json")),
    _FakeResponse({"unexpected": True}),
    _FakeResponse([{"id": "1"}]),
    _FakeResponse([{"id": "1", "medication": "X", "start_date": NOW, "status": "Paused"}]),
])
def test_http_source_failures_raise(monkeypatch, response):
    monkeypatch.setenv("REMOTE_ORDERS_URL", "http://his.local/api")
    monkeypatch.setattr(orders.requests, "get", lambda url, timeout: response)

    with pytest.raises(OrderFetchError):
        fetch_remote_orders("P-1")


def test_http_source_network_error(monkeypatch):
    monkeypatch.setenv("REMOTE_ORDERS_URL", "http://his.local/api")

    def boom(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(orders.requests, "get", boom)

    with pytest.raises(OrderFetchError):
        fetch_remote_orders("P-1")


def test_status_change_keeps_identifier(patient):
    updated = add_order(patient, _order("o1"))

    changed = set_order_status(updated, "o1", OrderStatus.DISCONTINUED)

    assert changed.medical_orders[0] == replace(_order("o1"), status=OrderStatus.DISCONTINUED)
    assert updated.medical_orders[0].status is OrderStatus.ACTIVE
