"""
Heuristic duplicate confidence: distance + recency + category match → 0–100.

Deterministic and independent of the similarity oracle:
- distance score: max(0, 100 - metres / 5)
- time score:     max(0, 100 - elapsed_ms / 72000)
- type bonus:     +20 when categories match
- confidence:     round((distance + time + bonus) / 2.2), clamped to [0, 100]
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable

from core.config import DUPLICATE_RADIUS_M, MIN_DUPLICATE_CONFIDENCE
from core.models import DuplicateCandidate, IncidentRecord, IncidentReport, enum_value, ensure_utc, round_half_up
from matching.geo import distance_to_record

logger = logging.getLogger("incident_triage.matching.heuristic")

TYPE_MATCH_BONUS = 20


def distance_score(distance_m: float) -> float:
    return max(0.0, 100.0 - distance_m / 5)


def time_score(elapsed: timedelta) -> float:
    elapsed_ms = max(0.0, elapsed.total_seconds() * 1000)
    return max(0.0, 100.0 - elapsed_ms / 72000)


def type_bonus(report_category, record_category) -> int:
    return TYPE_MATCH_BONUS if enum_value(report_category) == enum_value(record_category) else 0


def heuristic_confidence(distance_m: float, elapsed: timedelta, same_category: bool) -> int:
    bonus = TYPE_MATCH_BONUS if same_category else 0
    raw = (distance_score(distance_m) + time_score(elapsed) + bonus) / 2.2
    return max(0, min(100, round_half_up(raw)))


def score_candidates(
    report: IncidentReport,
    records: Iterable[IncidentRecord],
    now: datetime,
    *,
    radius_m: float = DUPLICATE_RADIUS_M,
    min_confidence: int = MIN_DUPLICATE_CONFIDENCE,
) -> list[DuplicateCandidate]:
    """
    Score every record against the report; keep those above min_confidence, best first.
    Records without coordinates or beyond radius_m are never scored.
    """
    now = ensure_utc(now)
    out = []
    for record in records:
        dist = distance_to_record(report.location, record)
        if dist is None:
            continue
        if dist > radius_m:
            logger.debug("skipping incident_id=%s: %.0fm beyond %.0fm", record.incident_id, dist, radius_m)
            continue
        elapsed = now - record.created_at
        conf = heuristic_confidence(dist, elapsed, type_bonus(report.category, record.category) > 0)
        if conf <= min_confidence:
            continue
        out.append(DuplicateCandidate(
            record=record,
            distance_m=dist,
            elapsed=elapsed,
            heuristic_confidence=conf,
        ))
    out.sort(key=lambda c: c.heuristic_confidence, reverse=True)
    return out
