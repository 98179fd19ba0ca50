"""
Priority score for the responder queue (0–200), recomputed on every request.

Terms, summed then rounded and clamped:
1. severity base          Critical 100, High 70, Medium 40, Low 10 (unknown → 40)
2. time decay             max(0, 30 - floor(age_minutes / 10) * 5), stepped
3. corroboration boost    min(count * 2, 20)
4. responder distance     -min(km * 2, 30), only when a responder point is given
5. verification           +15
6. status                 In Progress -20, Resolved -50
7. category urgency       Medical/Fire +10, Crime/Accident +5, else 0
"""

import math
from datetime import datetime
from typing import Optional

from core.models import GeoPoint, IncidentRecord, Status, ensure_utc, round_half_up, utcnow
from matching.geo import distance_m

SEVERITY_POINTS = {"Critical": 100, "High": 70, "Medium": 40, "Low": 10}
DEFAULT_SEVERITY_POINTS = 40

CATEGORY_URGENCY = {"Medical": 10, "Fire": 10, "Crime": 5, "Accident": 5, "Infrastructure": 0}

STATUS_ADJUSTMENT = {Status.IN_PROGRESS.value: -20, Status.RESOLVED.value: -50}

MAX_TIME_SCORE = 30
MAX_CORROBORATION_BOOST = 20
MAX_DISTANCE_PENALTY = 30
VERIFIED_BONUS = 15
MIN_PRIORITY = 0
MAX_PRIORITY = 200

# (threshold, label), highest first
PRIORITY_LEVELS = ((120, "CRITICAL"), (90, "HIGH"), (60, "MEDIUM"))


def time_decay(age_minutes: float) -> int:
    # Records stamped ahead of `now` count as brand new.
    return max(0, MAX_TIME_SCORE - math.floor(max(0.0, age_minutes) / 10) * 5)


def priority_components(
    incident: IncidentRecord,
    responder: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> dict[str, float]:
    """Per-term contributions; calculate_priority sums these."""
    now = ensure_utc(now) if now is not None else utcnow()
    age_minutes = (now - incident.created_at).total_seconds() / 60

    distance_penalty = 0.0
    loc = incident.location
    if responder is not None and loc is not None:
        km = distance_m(responder, loc) / 1000
        distance_penalty = -min(km * 2, MAX_DISTANCE_PENALTY)

    return {
        "severity": SEVERITY_POINTS.get(incident.severity, DEFAULT_SEVERITY_POINTS),
        "time_decay": time_decay(age_minutes),
        "corroboration": min(incident.corroboration_count * 2, MAX_CORROBORATION_BOOST),
        "distance": distance_penalty,
        "verified": VERIFIED_BONUS if incident.verified else 0,
        "status": STATUS_ADJUSTMENT.get(incident.status, 0),
        "category": CATEGORY_URGENCY.get(incident.category, 0),
    }


def calculate_priority(
    incident: IncidentRecord,
    responder: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> int:
    total = sum(priority_components(incident, responder, now).values())
    return max(MIN_PRIORITY, min(MAX_PRIORITY, round_half_up(total)))


def priority_level(score: int) -> str:
    for threshold, label in PRIORITY_LEVELS:
        if score >= threshold:
            return label
    return "LOW"
