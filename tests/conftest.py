"""Pytest fixtures for incident triage tests."""

import math
import time
from datetime import datetime, timedelta, timezone

import pytest

from core.engine import TriageEngine
from core.models import Category, GeoPoint, IncidentRecord, IncidentReport, OracleJudgment
from matching.geo import EARTH_RADIUS_M
from store.memory import InMemoryIncidentStore

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
ORIGIN = GeoPoint(37.7749, -122.4194)


def north_of(point: GeoPoint, metres: float) -> GeoPoint:
    """Point `metres` due north (same longitude), so haversine gives back `metres`."""
    return GeoPoint(point.lat + math.degrees(metres / EARTH_RADIUS_M), point.lng)


class StubOracle:
    """Returns canned judgments and records what it was asked."""

    def __init__(self, judgments):
        self.judgments = list(judgments)
        self.calls = []

    def compare(self, report, candidates):
        self.calls.append((report, list(candidates)))
        return self.judgments


class FailingOracle:
    def compare(self, report, candidates):
        raise RuntimeError("oracle down")


class SlowOracle:
    def __init__(self, delay: float):
        self.delay = delay

    def compare(self, report, candidates):
        time.sleep(self.delay)
        return [OracleJudgment(candidate_index=0, confidence=100, rationale="late")]


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def broadcast(self, event_kind, payload, room=None):
        self.events.append((event_kind, payload, room))

    def kinds(self):
        return [k for k, _, _ in self.events]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_record():
    """Factory for stored incidents; defaults to a fresh Fire at ORIGIN."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        point = overrides.pop("point", ORIGIN)
        age = overrides.pop("age", timedelta(minutes=10))
        fields = {
            "incident_id": f"inc-{counter['n']}",
            "category": Category.FIRE.value,
            "description": "Smoke coming out of the apartment building",
            "lat": point.lat,
            "lng": point.lng,
            "created_at": NOW - age,
        }
        fields.update(overrides)
        return IncidentRecord(**fields)

    return _make


@pytest.fixture
def make_report():
    def _make(category=Category.FIRE, point=ORIGIN, description="Fire on the third floor", **kw):
        return IncidentReport(category=category, description=description, location=point, **kw)

    return _make


@pytest.fixture
def store():
    return InMemoryIncidentStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(store, notifier):
    return TriageEngine(store, notifier=notifier, merge_policy="first", duplicate_same_category=True)


@pytest.fixture
def app_client(monkeypatch):
    """FastAPI TestClient. Clears in-memory incidents and disables model calls."""
    from fastapi.testclient import TestClient
    import api.main as main_module
    main_module.store.clear()
    monkeypatch.setattr(main_module.engine, "oracle", None)
    monkeypatch.setattr(main_module.engine, "analyzer", None)
    return TestClient(main_module.app)
