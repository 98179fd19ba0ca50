"""Tests for the in-memory incident store."""

import threading
from datetime import timedelta

import pytest

from core.errors import IncidentNotFoundError
from store.memory import InMemoryIncidentStore, new_incident_id

from conftest import NOW, ORIGIN, north_of


class TestCreateAndGet:
    def test_create_assigns_id(self, store, make_record):
        stored = store.create(make_record(incident_id=""))
        assert stored.incident_id.startswith("incident-")
        assert store.get(stored.incident_id) == stored

    def test_new_incident_id_unique(self):
        assert new_incident_id() != new_incident_id()

    def test_reads_are_copies(self, store, make_record):
        stored = store.create(make_record())
        stored.description = "tampered"
        assert store.get(stored.incident_id).description != "tampered"

    def test_get_missing(self, store):
        assert store.get("nope") is None


class TestIncrement:
    def test_increment(self, store, make_record):
        stored = store.create(make_record())
        assert store.increment_corroboration(stored.incident_id).corroboration_count == 2
        assert store.get(stored.incident_id).updated_at is not None

    def test_increment_missing(self, store):
        with pytest.raises(IncidentNotFoundError):
            store.increment_corroboration("nope")

    def test_concurrent_increments_all_land(self, store, make_record):
        stored = store.create(make_record())
        threads = [
            threading.Thread(target=store.increment_corroboration, args=(stored.incident_id,))
            for _ in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get(stored.incident_id).corroboration_count == 21


class TestUpdateDelete:
    def test_update(self, store, make_record):
        stored = store.create(make_record())
        updated = store.update(stored.incident_id, status="Dispatched", assigned_to="Engine 7")
        assert updated.status == "Dispatched"
        assert updated.assigned_to == "Engine 7"
        assert updated.updated_at is not None

    def test_update_protected_field_rejected(self, store, make_record):
        stored = store.create(make_record())
        with pytest.raises(ValueError):
            store.update(stored.incident_id, corroboration_count=10)

    def test_delete(self, store, make_record):
        stored = store.create(make_record())
        assert store.delete(stored.incident_id).incident_id == stored.incident_id
        assert len(store) == 0
        with pytest.raises(IncidentNotFoundError):
            store.delete(stored.incident_id)


class TestFindNear:
    def test_window_radius_category_status(self, make_record):
        store = InMemoryIncidentStore([
            make_record(incident_id="hit", point=north_of(ORIGIN, 300)),
            make_record(incident_id="far", point=north_of(ORIGIN, 700)),
            make_record(incident_id="old", age=timedelta(hours=3)),
            make_record(incident_id="medical", category="Medical"),
            make_record(incident_id="closed", status="Closed"),
        ])
        found = store.find_near(ORIGIN, 500, NOW - timedelta(hours=2), "Fire", exclude_statuses={"Closed"})
        assert [r.incident_id for r in found] == ["hit"]

    def test_no_radius_returns_window_in_insertion_order(self, make_record):
        store = InMemoryIncidentStore([
            make_record(incident_id="b", point=north_of(ORIGIN, 5000)),
            make_record(incident_id="a"),
        ])
        found = store.find_near(ORIGIN, None, NOW - timedelta(minutes=30))
        assert [r.incident_id for r in found] == ["b", "a"]

    def test_missing_coordinates_skipped_with_radius(self, make_record):
        store = InMemoryIncidentStore([make_record(lat=None, lng=None)])
        assert store.find_near(ORIGIN, 500, NOW - timedelta(hours=2)) == []


class TestListIncidents:
    def test_newest_first_and_filters(self, make_record):
        store = InMemoryIncidentStore([
            make_record(incident_id="older", age=timedelta(hours=1)),
            make_record(incident_id="newer", age=timedelta(minutes=1)),
            make_record(incident_id="high", severity="High", age=timedelta(minutes=30)),
        ])
        assert [r.incident_id for r in store.list_incidents()] == ["newer", "high", "older"]
        assert [r.incident_id for r in store.list_incidents(severity="High")] == ["high"]
        assert [r.incident_id for r in store.list_incidents(since=NOW - timedelta(minutes=45))] == ["newer", "high"]

    def test_near_sorts_by_distance(self, make_record):
        store = InMemoryIncidentStore([
            make_record(incident_id="mid", point=north_of(ORIGIN, 400)),
            make_record(incident_id="close", point=north_of(ORIGIN, 50)),
            make_record(incident_id="far", point=north_of(ORIGIN, 3000)),
        ])
        rows = store.list_incidents(near=ORIGIN, radius_m=1000)
        assert [r.incident_id for r in rows] == ["close", "mid"]
