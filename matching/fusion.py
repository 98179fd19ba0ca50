"""
Blend heuristic duplicate confidence with the similarity oracle's judgment.

For each candidate the oracle judged: fused = round((heuristic + oracle) / 2), then re-rank.
The oracle is best-effort: a failure, an unparsable answer, or a timeout leaves the
heuristic list exactly as it was. Nothing here ever raises into report processing.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import replace
from typing import Optional

from core.config import oracle_timeout_seconds
from core.models import DuplicateCandidate, IncidentReport, OracleJudgment, round_half_up

logger = logging.getLogger("incident_triage.matching.fusion")

# Bounded pool so a stalled oracle cannot pile up threads per request.
_oracle_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="similarity-oracle")


def fuse_judgments(
    candidates: list[DuplicateCandidate],
    judgments: list[OracleJudgment],
) -> list[DuplicateCandidate]:
    """Average in each judgment by candidate index; unjudged candidates keep their heuristic score."""
    by_index: dict[int, OracleJudgment] = {}
    for j in judgments:
        if 0 <= j.candidate_index < len(candidates):
            by_index[j.candidate_index] = j
        else:
            logger.debug("ignoring judgment for out-of-range candidate_index=%s", j.candidate_index)

    fused = []
    for i, cand in enumerate(candidates):
        j = by_index.get(i)
        if j is None:
            fused.append(cand)
            continue
        oracle_conf = float(j.confidence)
        if not math.isfinite(oracle_conf):
            logger.debug("ignoring non-finite confidence for candidate_index=%s", i)
            fused.append(cand)
            continue
        oracle_conf = max(0.0, min(100.0, oracle_conf))
        fused.append(replace(
            cand,
            fused_confidence=round_half_up((cand.heuristic_confidence + oracle_conf) / 2),
            rationale=j.rationale or None,
        ))
    fused.sort(key=lambda c: c.confidence, reverse=True)
    return fused


def request_judgments(
    oracle,
    report: IncidentReport,
    candidates: list[DuplicateCandidate],
    timeout: Optional[float] = None,
) -> Optional[list[OracleJudgment]]:
    """Ask the oracle about the candidates; None means "no semantic signal"."""
    timeout = timeout if timeout is not None else oracle_timeout_seconds()
    records = [c.record for c in candidates]
    future = _oracle_pool.submit(oracle.compare, report, records)
    try:
        result = future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        logger.warning("similarity oracle timed out after %.1fs; using heuristic scores", timeout)
        return None
    except Exception as e:
        logger.warning("similarity oracle failed: %s; using heuristic scores", e)
        return None
    if not isinstance(result, (list, tuple)) or not all(isinstance(j, OracleJudgment) for j in result):
        logger.warning("similarity oracle returned unusable response type=%s", type(result).__name__)
        return None
    return list(result)


def semantic_fusion(
    report: IncidentReport,
    candidates: list[DuplicateCandidate],
    oracle=None,
    timeout: Optional[float] = None,
) -> list[DuplicateCandidate]:
    if not candidates or oracle is None:
        return candidates
    if not report.description:
        logger.debug("similarity oracle skipped: report has no description")
        return candidates
    judgments = request_judgments(oracle, report, candidates, timeout=timeout)
    if judgments is None:
        return candidates
    logger.info("similarity oracle judged %d of %d candidates", len(judgments), len(candidates))
    return fuse_judgments(candidates, judgments)
