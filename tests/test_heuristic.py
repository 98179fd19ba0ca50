"""Tests for heuristic duplicate confidence and candidate scoring."""

from datetime import timedelta

import pytest

from core.models import Category
from matching.heuristic import distance_score, heuristic_confidence, score_candidates, time_score

from conftest import NOW, ORIGIN, north_of


class TestHeuristicConfidence:
    def test_same_spot_same_time_same_category(self):
        assert heuristic_confidence(0, timedelta(0), True) == 100

    def test_same_spot_different_category(self):
        # 200 / 2.2 = 90.9
        assert heuristic_confidence(0, timedelta(0), False) == 91

    def test_halfway(self):
        # distance 50 + time 50 + bonus 20 = 120 / 2.2 = 54.5
        assert heuristic_confidence(250, timedelta(hours=1), True) == 55

    def test_edge_of_loose_window(self):
        # 0 + 0 + 20 = 20 / 2.2 = 9.09
        assert heuristic_confidence(500, timedelta(hours=2), True) == 9

    def test_terms_floor_at_zero(self):
        assert distance_score(5000) == 0
        assert time_score(timedelta(days=1)) == 0
        assert heuristic_confidence(5000, timedelta(days=1), False) == 0

    def test_future_timestamp_counts_as_now(self):
        assert time_score(timedelta(minutes=-5)) == 100

    @pytest.mark.parametrize("same_category", [True, False])
    @pytest.mark.parametrize("minutes", [0, 30, 90])
    def test_non_increasing_in_distance(self, same_category, minutes):
        elapsed = timedelta(minutes=minutes)
        scores = [heuristic_confidence(d, elapsed, same_category) for d in range(0, 601, 10)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    @pytest.mark.parametrize("same_category", [True, False])
    @pytest.mark.parametrize("metres", [0, 200, 450])
    def test_non_increasing_in_time(self, same_category, metres):
        scores = [heuristic_confidence(metres, timedelta(minutes=m), same_category) for m in range(0, 150, 5)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))


class TestScoreCandidates:
    def test_keeps_confident_sorted_best_first(self, make_report, make_record):
        far = make_record(point=north_of(ORIGIN, 300), age=timedelta(minutes=30))
        near = make_record(point=north_of(ORIGIN, 100), age=timedelta(minutes=10))
        out = score_candidates(make_report(), [far, near], NOW)
        assert [c.record.incident_id for c in out] == [near.incident_id, far.incident_id]
        # 80 + 91.67 + 20 = 191.67 / 2.2 = 87.1
        assert out[0].heuristic_confidence == 87
        # 40 + 75 + 20 = 135 / 2.2 = 61.4
        assert out[1].heuristic_confidence == 61
        assert out[0].confidence == out[0].heuristic_confidence

    def test_low_confidence_dropped(self, make_report, make_record):
        stale = make_record(point=north_of(ORIGIN, 400), age=timedelta(minutes=100))
        assert score_candidates(make_report(), [stale], NOW) == []

    def test_missing_coordinates_skipped(self, make_report, make_record):
        broken = make_record(lat=None, lng=None)
        ok = make_record()
        out = score_candidates(make_report(), [broken, ok], NOW)
        assert [c.record.incident_id for c in out] == [ok.incident_id]

    def test_beyond_radius_skipped(self, make_report, make_record):
        rec = make_record(point=north_of(ORIGIN, 600), age=timedelta(0))
        assert score_candidates(make_report(), [rec], NOW) == []

    def test_type_bonus_only_for_same_category(self, make_report, make_record):
        rec = make_record(category=Category.MEDICAL.value, age=timedelta(0))
        out = score_candidates(make_report(), [rec], NOW)
        assert out[0].heuristic_confidence == 91
