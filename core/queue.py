"""Responder queue: rank active incidents by priority and cap the view."""

from datetime import datetime
from typing import Iterable, Optional

from core.config import DEFAULT_QUEUE_LIMIT
from core.models import GeoPoint, IncidentRecord, RankedIncident, ensure_utc, utcnow
from core.priority import calculate_priority, priority_level


def rank_incidents(
    incidents: Iterable[IncidentRecord],
    responder: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> list[RankedIncident]:
    """Score every incident against one `now`; highest first, ties keep input order."""
    now = ensure_utc(now) if now is not None else utcnow()
    ranked = []
    for incident in incidents:
        score = calculate_priority(incident, responder, now)
        ranked.append(RankedIncident(record=incident, priority=score, priority_level=priority_level(score)))
    ranked.sort(key=lambda r: r.priority, reverse=True)
    return ranked


def build_priority_queue(
    incidents: Iterable[IncidentRecord],
    responder: Optional[GeoPoint] = None,
    limit: Optional[int] = DEFAULT_QUEUE_LIMIT,
    now: Optional[datetime] = None,
) -> list[RankedIncident]:
    """Resolved/Closed incidents never enter the queue, whatever their score."""
    active = [i for i in incidents if not i.is_terminal]
    ranked = rank_incidents(active, responder, now)
    if limit is not None:
        ranked = ranked[:max(0, limit)]
    return ranked
