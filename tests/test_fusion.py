"""Tests for oracle fusion: averaging, re-ranking, and heuristic fallback on failure or timeout."""

import math
from datetime import timedelta

import pytest

from core.models import DuplicateCandidate, OracleJudgment
from matching.fusion import fuse_judgments, semantic_fusion
from oracle.similarity import parse_judgments

from conftest import FailingOracle, SlowOracle, StubOracle


def _candidates(make_record, *scores):
    return [
        DuplicateCandidate(
            record=make_record(),
            distance_m=50.0 * i,
            elapsed=timedelta(minutes=5 * i),
            heuristic_confidence=s,
        )
        for i, s in enumerate(scores)
    ]


class TestFuseJudgments:
    def test_average_and_rerank(self, make_record):
        cands = _candidates(make_record, 80, 60)
        fused = fuse_judgments(cands, [
            OracleJudgment(candidate_index=0, confidence=20, rationale="different building"),
            OracleJudgment(candidate_index=1, confidence=90, rationale="same fire"),
        ])
        assert [c.confidence for c in fused] == [75, 50]
        assert fused[0].record is cands[1].record
        assert fused[0].rationale == "same fire"
        assert fused[0].heuristic_confidence == 60

    def test_unjudged_keep_heuristic(self, make_record):
        cands = _candidates(make_record, 70, 65)
        fused = fuse_judgments(cands, [OracleJudgment(candidate_index=1, confidence=95)])
        assert fused[0].fused_confidence == 80
        assert fused[1].fused_confidence is None
        assert fused[1].confidence == 70

    def test_rounds_half_up(self, make_record):
        cands = _candidates(make_record, 61)
        fused = fuse_judgments(cands, [OracleJudgment(candidate_index=0, confidence=40)])
        assert fused[0].confidence == 51

    def test_out_of_range_index_ignored(self, make_record):
        cands = _candidates(make_record, 70)
        fused = fuse_judgments(cands, [OracleJudgment(candidate_index=3, confidence=10)])
        assert fused[0].confidence == 70

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_confidence_ignored(self, make_record, bad):
        cands = _candidates(make_record, 42)
        fused = fuse_judgments(cands, [OracleJudgment(candidate_index=0, confidence=bad)])
        assert fused[0].fused_confidence is None
        assert fused[0].confidence == 42

    def test_does_not_mutate_input(self, make_record):
        cands = _candidates(make_record, 70)
        fuse_judgments(cands, [OracleJudgment(candidate_index=0, confidence=10)])
        assert cands[0].fused_confidence is None


class TestSemanticFusion:
    def test_uses_oracle(self, make_report, make_record):
        cands = _candidates(make_record, 50, 45)
        oracle = StubOracle([OracleJudgment(candidate_index=1, confidence=95)])
        out = semantic_fusion(make_report(), cands, oracle)
        assert out[0].record is cands[1].record
        assert out[0].confidence == 70
        _, asked = oracle.calls[0]
        assert asked == [c.record for c in cands]

    def test_timeout_returns_heuristic_list_unchanged(self, make_report, make_record):
        cands = _candidates(make_record, 80, 60, 45)
        out = semantic_fusion(make_report(), cands, SlowOracle(0.5), timeout=0.05)
        assert out == cands
        assert [c.fused_confidence for c in out] == [None, None, None]

    def test_failure_returns_heuristic_list(self, make_report, make_record):
        cands = _candidates(make_record, 80, 60)
        assert semantic_fusion(make_report(), cands, FailingOracle()) == cands

    def test_unusable_response_ignored(self, make_report, make_record):
        cands = _candidates(make_record, 80)
        assert semantic_fusion(make_report(), cands, StubOracle(["not a judgment"])) == cands

    def test_nan_reply_keeps_heuristic_score(self, make_report, make_record):
        cands = _candidates(make_record, 42)
        judgments = parse_judgments('[{"index": 1, "confidence": NaN, "reason": "?"}]', 1)
        out = semantic_fusion(make_report(), cands, StubOracle(judgments))
        assert out[0].confidence == 42

    def test_skipped_without_description(self, make_report, make_record):
        oracle = StubOracle([OracleJudgment(candidate_index=0, confidence=0)])
        cands = _candidates(make_record, 80)
        assert semantic_fusion(make_report(description=""), cands, oracle) == cands
        assert oracle.calls == []

    def test_skipped_without_candidates(self, make_report):
        oracle = StubOracle([])
        assert semantic_fusion(make_report(), [], oracle) == []
        assert oracle.calls == []

    def test_no_oracle(self, make_report, make_record):
        cands = _candidates(make_record, 80)
        assert semantic_fusion(make_report(), cands, None) is cands
