"""
Tight-tier auto-merge: a report folds into an existing incident of the same category
reported within the last 30 minutes and no more than 100 m away.

Policy "first" takes the first qualifying record in lookup order (no oracle, no ranking).
Policy "nearest" takes the closest one; equal distances keep lookup order.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from core.config import FIRST_MATCH, MERGE_RADIUS_M, MERGE_WINDOW, NEAREST_MATCH
from core.models import IncidentRecord, IncidentReport, enum_value, ensure_utc
from matching.geo import distance_to_record

logger = logging.getLogger("incident_triage.matching.merge")


@dataclass
class MergeTarget:
    record: IncidentRecord
    distance_m: float


def find_merge_target(
    report: IncidentReport,
    records: Iterable[IncidentRecord],
    now: datetime,
    *,
    radius_m: float = MERGE_RADIUS_M,
    window: timedelta = MERGE_WINDOW,
    policy: str = FIRST_MATCH,
) -> Optional[MergeTarget]:
    if policy not in (FIRST_MATCH, NEAREST_MATCH):
        raise ValueError(f"unknown merge policy: {policy!r}")
    since = ensure_utc(now) - window
    category = enum_value(report.category)
    best: Optional[MergeTarget] = None

    for record in records:
        if record.category != category or record.created_at < since:
            continue
        dist = distance_to_record(report.location, record)
        if dist is None or dist > radius_m:
            continue
        if policy == FIRST_MATCH:
            return MergeTarget(record=record, distance_m=dist)
        if best is None or dist < best.distance_m:
            best = MergeTarget(record=record, distance_m=dist)
    return best
