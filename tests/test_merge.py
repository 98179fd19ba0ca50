"""Tests for the tight-tier merge: thresholds, policies, and what a merge changes."""

from datetime import timedelta

import pytest

from core.models import Category
from events.notifier import UPVOTE_UPDATE
from matching.merge import find_merge_target

from conftest import NOW, ORIGIN, north_of


class TestFindMergeTarget:
    def test_within_radius_and_window(self, make_report, make_record):
        rec = make_record(point=north_of(ORIGIN, 80), age=timedelta(minutes=10))
        target = find_merge_target(make_report(), [rec], NOW)
        assert target.record is rec
        assert target.distance_m == pytest.approx(80, abs=1e-6)

    def test_too_far(self, make_report, make_record):
        rec = make_record(point=north_of(ORIGIN, 150))
        assert find_merge_target(make_report(), [rec], NOW) is None

    def test_too_old(self, make_report, make_record):
        rec = make_record(age=timedelta(minutes=31))
        assert find_merge_target(make_report(), [rec], NOW) is None

    def test_category_must_match(self, make_report, make_record):
        rec = make_record(category=Category.MEDICAL.value)
        assert find_merge_target(make_report(), [rec], NOW) is None

    def test_missing_coordinates_skipped(self, make_report, make_record):
        broken = make_record(lat=None, lng=None)
        ok = make_record(point=north_of(ORIGIN, 50))
        assert find_merge_target(make_report(), [broken, ok], NOW).record is ok

    def test_first_policy_takes_lookup_order(self, make_report, make_record):
        a = make_record(point=north_of(ORIGIN, 90))
        b = make_record(point=north_of(ORIGIN, 20))
        assert find_merge_target(make_report(), [a, b], NOW, policy="first").record is a

    def test_nearest_policy_takes_closest(self, make_report, make_record):
        a = make_record(point=north_of(ORIGIN, 90))
        b = make_record(point=north_of(ORIGIN, 20))
        assert find_merge_target(make_report(), [a, b], NOW, policy="nearest").record is b

    def test_nearest_policy_tie_keeps_lookup_order(self, make_report, make_record):
        a = make_record(point=north_of(ORIGIN, 40))
        b = make_record(point=north_of(ORIGIN, 40))
        assert find_merge_target(make_report(), [a, b], NOW, policy="nearest").record is a

    def test_unknown_policy_rejected(self, make_report):
        with pytest.raises(ValueError):
            find_merge_target(make_report(), [], NOW, policy="best")


class TestEngineMerge:
    def test_fire_80m_10min_merges(self, engine, store, notifier, make_report, make_record):
        existing = store.create(make_record(point=north_of(ORIGIN, 80), age=timedelta(minutes=10)))
        outcome = engine.process_report(make_report(), now=NOW)

        assert outcome.status == "merged"
        assert outcome.merged
        assert outcome.incident.incident_id == existing.incident_id
        assert outcome.incident.corroboration_count == existing.corroboration_count + 1
        assert len(store) == 1
        assert notifier.kinds() == [UPVOTE_UPDATE]

    def test_merge_changes_nothing_but_corroboration(self, engine, store, make_report, make_record):
        existing = store.create(make_record(severity="High", description="first description"))
        engine.process_report(make_report(description="different words"), now=NOW)
        after = store.get(existing.incident_id)
        assert after.description == "first description"
        assert after.severity == "High"
        assert after.status == existing.status
        assert after.created_at == existing.created_at
        assert after.lat == existing.lat

    def test_fire_150m_creates(self, engine, store, make_report, make_record):
        existing = store.create(make_record(point=north_of(ORIGIN, 150), age=timedelta(minutes=10)))
        outcome = engine.process_report(make_report(), now=NOW)

        assert outcome.status == "created"
        assert outcome.incident.incident_id != existing.incident_id
        assert outcome.incident.corroboration_count == 1
        assert store.get(existing.incident_id).corroboration_count == 1
        assert len(store) == 2

    def test_repeated_reports_accumulate(self, engine, store, make_report):
        first = engine.process_report(make_report(), now=NOW)
        for i in range(3):
            engine.process_report(make_report(point=north_of(ORIGIN, 10 * (i + 1))), now=NOW + timedelta(minutes=i))
        assert len(store) == 1
        assert store.get(first.incident.incident_id).corroboration_count == 4

    def test_resolved_incident_still_absorbs_tight_match(self, engine, store, make_report, make_record):
        existing = store.create(make_record(status="Resolved"))
        outcome = engine.process_report(make_report(), now=NOW)
        assert outcome.merged
        assert outcome.incident.incident_id == existing.incident_id

    def test_nearest_policy_engine(self, store, notifier, make_report, make_record):
        from core.engine import TriageEngine
        engine = TriageEngine(store, notifier=notifier, merge_policy="nearest")
        store.create(make_record(incident_id="far", point=north_of(ORIGIN, 90)))
        store.create(make_record(incident_id="close", point=north_of(ORIGIN, 20)))
        outcome = engine.process_report(make_report(), now=NOW)
        assert outcome.incident.incident_id == "close"
